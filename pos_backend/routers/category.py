import logging
from fastapi import APIRouter, HTTPException, Depends, status
from typing import List
from uuid import UUID
from datetime import datetime

from pos_backend.core.exceptions import Conflict
from pos_backend.models.category import Category
from pos_backend.models.product import Product
from pos_backend.schemas.category import CategoryCreate, CategoryUpdate, CategoryResponse
from pos_backend.dependencies.auth import Actor, get_catalog_manager, get_current_actor

router = APIRouter()
logger = logging.getLogger(__name__)


# ==========================================
# 🔒 CATALOG MANAGERS (Create, Update, Delete)
# ==========================================

@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a New Category",
    description="Creates a product category. Requires an Admin or Super Admin token."
)
async def create_category(
    category_data: CategoryCreate,
    manager: Actor = Depends(get_catalog_manager)
):
    """
    - **name**: Must be unique.
    """
    name = category_data.name.strip()
    if await Category.find_one(Category.name == name):
        raise Conflict("Category with this name already exists")

    new_category = Category(name=name, description=category_data.description or "")
    await new_category.insert()
    logger.info("Category '%s' created by %s", name, manager.id)
    return new_category


@router.put(
    "/{category_id}",
    response_model=CategoryResponse,
    summary="Update Category",
)
async def update_category(
    category_id: UUID,
    update_data: CategoryUpdate,
    manager: Actor = Depends(get_catalog_manager)
):
    category = await Category.get(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    data_dict = update_data.model_dump(exclude_unset=True, exclude_none=True)

    if "name" in data_dict:
        data_dict["name"] = data_dict["name"].strip()
        clash = await Category.find_one(Category.name == data_dict["name"])
        if clash and clash.id != category.id:
            raise Conflict("Category with this name already exists")

    data_dict["updated_at"] = datetime.utcnow()
    await category.update({"$set": data_dict})
    return await Category.get(category_id)


@router.delete(
    "/{category_id}",
    summary="Delete Category",
    description="Deletes a category that no product is assigned to."
)
async def delete_category(
    category_id: UUID,
    manager: Actor = Depends(get_catalog_manager)
):
    category = await Category.get(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    # Products keep a category_id; deleting a referenced category would orphan them
    in_use = await Product.find(Product.category_id == category_id).count()
    if in_use > 0:
        raise Conflict(
            f"Cannot delete Category. It is currently assigned to {in_use} products. "
            "Please reassign or delete them first."
        )

    await category.delete()
    logger.info("Category '%s' deleted by %s", category.name, manager.id)
    return {"message": "Category deleted successfully"}


# ==========================================
# 🌍 READ ENDPOINTS (any signed-in user)
# ==========================================

@router.get(
    "",
    response_model=List[CategoryResponse],
    summary="List All Categories",
)
async def get_categories(actor: Actor = Depends(get_current_actor)):
    return await Category.find_all().sort(+Category.name).to_list()


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    summary="Get Single Category",
)
async def get_category(category_id: UUID, actor: Actor = Depends(get_current_actor)):
    category = await Category.get(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category
