import logging
from fastapi import APIRouter, HTTPException, Depends, Query, status
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from pymongo.errors import DuplicateKeyError

from pos_backend.core.config import settings
from pos_backend.core.exceptions import Conflict, InvalidArgument
from pos_backend.models.product import Product, StockStatus
from pos_backend.models.category import Category
from pos_backend.schemas.product import (
    ProductCreate, ProductUpdate, ProductList, ProductQuickView,
    ProductDetails, ProductPrint, ProductSuggestion,
)
from pos_backend.dependencies.auth import Actor, get_current_actor, get_catalog_manager
from pos_backend.services import catalog, product_codes
from pos_backend.services.stock_ledger import page_count

router = APIRouter()
logger = logging.getLogger(__name__)


async def _get_product_or_404(product_id: UUID) -> Product:
    product = await Product.get(product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return product


async def _category_name(category_id: Optional[UUID]) -> Optional[str]:
    if not category_id:
        return None
    category = await Category.get(category_id)
    return category.name if category else None


# ==========================================
# 🔒 CATALOG MANAGERS (Admin + Super Admin)
# ==========================================

@router.post("", response_model=ProductDetails, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    manager: Actor = Depends(get_catalog_manager)
):
    """
    Add a product. SKU, product code, QR code and barcode image are generated here;
    `initialQuantity` becomes the opening stock.
    """
    category = await Category.get(product_data.category_id)
    if not category:
        raise InvalidArgument("Invalid category selected.")

    product_code = product_codes.generate_product_code()
    sku = product_codes.generate_sku(product_data.name)
    barcode_value = product_data.barcode_value or product_codes.generate_barcode_value()

    new_product = Product(
        **product_data.model_dump(exclude={"barcode_value"}),
        product_code=product_code,
        sku=sku,
        stock_quantity=product_data.initial_quantity,
        barcode_value=barcode_value,
        qr_code=product_codes.render_qr_code(sku),
        barcode=product_codes.render_barcode(barcode_value),
    )

    try:
        await new_product.insert()
    except DuplicateKeyError:
        raise Conflict("Duplicate value detected (product code or SKU).")

    logger.info("Product %s (%s) created by %s", new_product.product_code, new_product.name, manager.id)
    return catalog.details(new_product, category.name)


@router.put("/{product_id}", response_model=ProductDetails)
async def update_product(
    product_id: UUID,
    update_data: ProductUpdate,
    manager: Actor = Depends(get_catalog_manager)
):
    """Edit catalog fields. Stock is not editable here; use /inventory."""
    product = await _get_product_or_404(product_id)

    data_dict = update_data.model_dump(exclude_unset=True)

    # Verify the new category before touching anything
    if data_dict.get("category_id"):
        if not await Category.get(data_dict["category_id"]):
            raise InvalidArgument("Invalid category selected.")

    if data_dict.get("barcode_value"):
        data_dict["barcode"] = product_codes.render_barcode(data_dict["barcode_value"])

    data_dict["updated_at"] = datetime.utcnow()

    # $set only the edited fields; a full save would race the ledger's $inc on stock
    try:
        await product.update({"$set": data_dict})
    except DuplicateKeyError:
        raise Conflict()

    product = await _get_product_or_404(product_id)
    return catalog.details(product, await _category_name(product.category_id))


@router.delete("/{product_id}")
async def delete_product(
    product_id: UUID,
    manager: Actor = Depends(get_catalog_manager)
):
    product = await _get_product_or_404(product_id)
    await product.delete()
    logger.info("Product %s deleted by %s", product_id, manager.id)
    return {"message": "Product deleted successfully"}


# ==========================================
# 🌍 STAFF ACTIONS (any signed-in user)
# ==========================================

@router.get("", response_model=ProductList)
async def get_products(
    search: Optional[str] = None,
    category: Optional[UUID] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    stock_status: Optional[StockStatus] = Query(None, alias="stockStatus"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.PRODUCT_PAGE_SIZE, ge=1, le=100),
    actor: Actor = Depends(get_current_actor)
):
    """Paged product list, most recently updated first."""
    query = catalog.build_product_filter(search, category, min_price, max_price, stock_status)

    products = await Product.find(query).sort(-Product.updated_at).skip((page - 1) * limit).limit(limit).to_list()
    total = await Product.find(query).count()

    category_ids = list({p.category_id for p in products})
    categories = await Category.find({"_id": {"$in": category_ids}}).to_list()
    names = {c.id: c.name for c in categories}

    return {
        "products": [catalog.list_item(p, names.get(p.category_id, "")) for p in products],
        "pagination": {"total": total, "page": page, "pages": page_count(total, limit), "limit": limit},
    }


@router.get("/lookup", response_model=ProductQuickView)
async def lookup_product(
    code: str = Query(..., min_length=1),
    actor: Actor = Depends(get_current_actor)
):
    """Scanner lookup: matches product code, SKU, barcode value or exact name."""
    product = await Product.find_one(catalog.code_lookup_filter(code.strip()))
    if not product:
        raise HTTPException(404, "Product not found")
    return catalog.quick_view(product, await _category_name(product.category_id) or "")


@router.get("/suggestions", response_model=List[ProductSuggestion])
async def product_suggestions(
    q: str = "",
    actor: Actor = Depends(get_current_actor)
):
    if not q.strip():
        return []
    return await Product.find(catalog.suggestion_filter(q.strip())).limit(10).to_list()


@router.get("/{product_id}/quick-view", response_model=ProductQuickView)
async def get_product_quick_view(product_id: UUID, actor: Actor = Depends(get_current_actor)):
    product = await _get_product_or_404(product_id)
    return catalog.quick_view(product, await _category_name(product.category_id) or "")


@router.get("/{product_id}/print", response_model=ProductPrint)
async def get_product_print(product_id: UUID, actor: Actor = Depends(get_current_actor)):
    """Label data: name, price and the two code images."""
    return await _get_product_or_404(product_id)


@router.get("/{product_id}", response_model=ProductDetails)
async def get_product(product_id: UUID, actor: Actor = Depends(get_current_actor)):
    product = await _get_product_or_404(product_id)
    return catalog.details(product, await _category_name(product.category_id))
