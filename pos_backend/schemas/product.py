from pydantic import Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from pos_backend.models.product import StockStatus
from pos_backend.schemas.base import APIModel
from pos_backend.schemas.stock import Pagination


class ProductCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=200)
    category_id: UUID
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    cost_price: float = Field(..., ge=0)
    initial_quantity: int = Field(..., ge=0)
    reorder_threshold: int = Field(..., ge=0)
    batch_number: Optional[str] = None
    expiry_date: Optional[datetime] = None
    barcode_value: Optional[str] = Field(default=None, min_length=1, max_length=48, description="Scanned code; generated when omitted.")
    image: Optional[str] = None


class ProductUpdate(APIModel):
    """Every editable field. Stock only moves through /inventory."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category_id: Optional[UUID] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    cost_price: Optional[float] = Field(default=None, ge=0)
    reorder_threshold: Optional[int] = Field(default=None, ge=0)
    batch_number: Optional[str] = None
    expiry_date: Optional[datetime] = None
    barcode_value: Optional[str] = Field(default=None, min_length=1, max_length=48)
    image: Optional[str] = None


class ProductListItem(APIModel):
    id: UUID
    product_code: str
    thumbnail: Optional[str] = None
    name: str
    sku: str
    category: str = ""
    category_id: Optional[UUID] = None
    stock_qty: int
    initial_quantity: int
    cost_price: float
    price: float
    reorder_threshold: int
    batch_number: Optional[str] = None
    expiry_date: Optional[datetime] = None
    qr_code: Optional[str] = None
    barcode: Optional[str] = None
    status: StockStatus
    last_updated: datetime


class ProductList(APIModel):
    products: List[ProductListItem]
    pagination: Pagination


class ProductQuickView(APIModel):
    id: UUID
    product_code: str
    name: str
    sku: str
    category: str = ""
    price: float
    cost_price: float
    profit: float
    initial_qty: int
    stock_qty: int
    reorder_threshold: int
    status: StockStatus
    qr_code: Optional[str] = None
    barcode: Optional[str] = None
    thumbnail: Optional[str] = None
    last_updated: datetime


class ProductDetails(APIModel):
    id: UUID
    product_code: str
    name: str
    sku: str
    category: Optional[str] = None
    category_id: UUID
    description: Optional[str] = None
    price: float
    cost_price: float
    profit: float
    stock_quantity: int
    initial_quantity: int
    reorder_threshold: int
    status: StockStatus
    image: Optional[str] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[datetime] = None
    qr_code: Optional[str] = None
    barcode_value: Optional[str] = None
    barcode: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ProductPrint(APIModel):
    id: UUID
    name: str
    product_code: str
    price: float
    qr_code: Optional[str] = None
    barcode: Optional[str] = None
    barcode_value: Optional[str] = None


class ProductSuggestion(APIModel):
    id: UUID
    name: str
    product_code: str
    sku: str
    image: Optional[str] = None
    barcode_value: Optional[str] = None
