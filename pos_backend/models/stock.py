from typing import Optional, Annotated
from beanie import Document, Indexed
from pydantic import Field
from uuid import UUID, uuid4
from datetime import datetime
from enum import Enum


class TransactionType(str, Enum):
    RESTOCK = "restock"
    SALE = "sale"
    ADJUSTMENT = "adjustment"


class StockTransaction(Document):
    """
    One immutable ledger entry per stock movement.
    quantity is always the positive magnitude; delta is the signed change applied to the product.
    """
    id: UUID = Field(default_factory=uuid4)

    product_id: Annotated[UUID, Indexed()]
    type: TransactionType
    quantity: int = Field(..., gt=0)
    delta: int
    reference: Optional[str] = None
    performed_by: Annotated[UUID, Indexed()]
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "inventory_transactions"
        indexes = [
            [("timestamp", -1)],
            [("performed_by", 1), ("timestamp", -1)],
        ]
