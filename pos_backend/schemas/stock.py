from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from pos_backend.models.stock import TransactionType
from pos_backend.schemas.base import APIModel


# --- Input: POST /inventory ---
class StockTransactionCreate(APIModel):
    product_id: UUID
    type: TransactionType
    quantity: Optional[int] = Field(default=None, description="Positive magnitude of the movement.")
    delta: Optional[int] = Field(default=None, description="Adjustments only: signed change, e.g. -3 or 5.")
    reference: Optional[str] = Field(default=None, max_length=200, description="PO number, receipt number...")


# --- Output: POST /inventory ---
class ProductStockSnapshot(APIModel):
    id: UUID
    stock_quantity: int


class StockTransactionRecorded(APIModel):
    message: str
    transaction_id: UUID
    product: ProductStockSnapshot


# --- Output: GET /inventory ---
class TransactionProduct(APIModel):
    id: UUID
    name: Optional[str] = None
    product_code: Optional[str] = None
    price: Optional[float] = None


class TransactionActor(APIModel):
    id: UUID
    username: Optional[str] = None
    email: Optional[str] = None


class StockTransactionOut(APIModel):
    id: UUID
    product: Optional[TransactionProduct] = None
    type: TransactionType
    quantity: int
    delta: int
    reference: Optional[str] = None
    performed_by: Optional[TransactionActor] = None
    timestamp: datetime


class Pagination(APIModel):
    total: int
    page: int
    pages: int
    limit: Optional[int] = None


class SalesSummary(APIModel):
    count: int = 0
    total_quantity: int = 0
    total_amount: str = "0.00"


class StockTransactionList(APIModel):
    transactions: List[StockTransactionOut]
    pagination: Pagination
    sales_summary: SalesSummary
