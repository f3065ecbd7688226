"""Query building and response shaping shared by the product endpoints."""
import re
from typing import Optional
from uuid import UUID

from pos_backend.core.exceptions import InvalidArgument
from pos_backend.models.product import Product, StockStatus


def stock_status_filter(status: StockStatus) -> dict:
    """Same thresholds as ``stock_status``, expressed as a query so paging stays in the database."""
    if status is StockStatus.OUT_OF_STOCK:
        return {"stock_quantity": 0}
    if status is StockStatus.LOW_STOCK:
        return {"$expr": {"$and": [
            {"$gt": ["$stock_quantity", 0]},
            {"$lte": ["$stock_quantity", "$reorder_threshold"]},
        ]}}
    return {"$expr": {"$gt": ["$stock_quantity", "$reorder_threshold"]}}


def build_product_filter(
    search: Optional[str] = None,
    category_id: Optional[UUID] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    status: Optional[StockStatus] = None,
) -> dict:
    query = {}

    if search:
        query["name"] = {"$regex": re.escape(search), "$options": "i"}
    if category_id:
        query["category_id"] = category_id
    if min_price is not None and max_price is not None:
        if min_price > max_price:
            raise InvalidArgument("minPrice cannot be greater than maxPrice.")
        query["price"] = {"$gte": min_price, "$lte": max_price}
    if status:
        query.update(stock_status_filter(status))

    return query


def code_lookup_filter(code: str) -> dict:
    return {"$or": [
        {"product_code": code},
        {"sku": code},
        {"barcode_value": code},
        {"name": code},
    ]}


def suggestion_filter(q: str) -> dict:
    pattern = {"$regex": re.escape(q), "$options": "i"}
    return {"$or": [
        {"name": pattern},
        {"product_code": pattern},
        {"sku": pattern},
        {"barcode_value": pattern},
    ]}


def list_item(product: Product, category_name: str = "") -> dict:
    return {
        "id": product.id,
        "product_code": product.product_code,
        "thumbnail": product.image,
        "name": product.name,
        "sku": product.sku,
        "category": category_name,
        "category_id": product.category_id,
        "stock_qty": product.stock_quantity,
        "initial_quantity": product.initial_quantity,
        "cost_price": product.cost_price,
        "price": product.price,
        "reorder_threshold": product.reorder_threshold,
        "batch_number": product.batch_number,
        "expiry_date": product.expiry_date,
        "qr_code": product.qr_code,
        "barcode": product.barcode,
        "status": product.status,
        "last_updated": product.updated_at,
    }


def quick_view(product: Product, category_name: str = "") -> dict:
    return {
        "id": product.id,
        "product_code": product.product_code,
        "name": product.name,
        "sku": product.sku,
        "category": category_name,
        "price": product.price,
        "cost_price": product.cost_price,
        "profit": product.profit,
        "initial_qty": product.initial_quantity,
        "stock_qty": product.stock_quantity,
        "reorder_threshold": product.reorder_threshold,
        "status": product.status,
        "qr_code": product.qr_code,
        "barcode": product.barcode,
        "thumbnail": product.image,
        "last_updated": product.updated_at,
    }


def details(product: Product, category_name: Optional[str] = None) -> dict:
    return {
        "id": product.id,
        "product_code": product.product_code,
        "name": product.name,
        "sku": product.sku,
        "category": category_name,
        "category_id": product.category_id,
        "description": product.description,
        "price": product.price,
        "cost_price": product.cost_price,
        "profit": product.profit,
        "stock_quantity": product.stock_quantity,
        "initial_quantity": product.initial_quantity,
        "reorder_threshold": product.reorder_threshold,
        "status": product.status,
        "image": product.image,
        "batch_number": product.batch_number,
        "expiry_date": product.expiry_date,
        "qr_code": product.qr_code,
        "barcode_value": product.barcode_value,
        "barcode": product.barcode,
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }
