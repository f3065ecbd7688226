from beanie import Document, Indexed
from pydantic import Field
from typing import Optional, Annotated
from uuid import UUID, uuid4
from datetime import datetime
from enum import Enum


class StockStatus(str, Enum):
    OUT_OF_STOCK = "out-of-stock"
    LOW_STOCK = "low-stock"
    IN_STOCK = "in-stock"


def stock_status(stock_quantity: int, reorder_threshold: int) -> StockStatus:
    """Badge shown next to a product; computed on read, never stored."""
    if stock_quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if stock_quantity <= reorder_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


class Product(Document):
    id: UUID = Field(default_factory=uuid4)

    # --- Identification ---
    product_code: Annotated[str, Indexed(unique=True)]  # read-only 6-digit code
    name: str
    sku: Annotated[str, Indexed(unique=True)]
    description: Optional[str] = None
    category_id: Annotated[UUID, Indexed()]

    # --- Financials ---
    cost_price: float = Field(..., ge=0)
    price: float = Field(..., ge=0)

    # --- Stock ---
    # stock_quantity is only ever moved by the stock ledger after creation
    initial_quantity: int = Field(default=0, ge=0)
    stock_quantity: int = Field(default=0, ge=0)
    reorder_threshold: int = Field(default=0, ge=0)

    # --- Codes & Media ---
    barcode_value: Optional[str] = None
    barcode: Optional[str] = None   # Code128 PNG data URL
    qr_code: Optional[str] = None   # QR PNG data URL
    image: Optional[str] = None

    # --- Lifecycle ---
    batch_number: Optional[str] = None
    expiry_date: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "products"

    @property
    def profit(self) -> float:
        return self.price - self.cost_price

    @property
    def status(self) -> StockStatus:
        return stock_status(self.stock_quantity, self.reorder_threshold)
