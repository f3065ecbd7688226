from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pos_backend.core.config import settings
from pos_backend.dependencies.auth import Actor, get_current_actor
from pos_backend.models.stock import TransactionType
from pos_backend.schemas.stock import StockTransactionCreate, StockTransactionRecorded, StockTransactionList
from pos_backend.services import stock_ledger

router = APIRouter()


@router.post("", response_model=StockTransactionRecorded, status_code=status.HTTP_201_CREATED)
async def create_inventory_transaction(
    data: StockTransactionCreate,
    actor: Actor = Depends(get_current_actor)
):
    """
    Record a restock, sale or adjustment and move the product's stock with it.

    - **restock**: adds `quantity`.
    - **sale**: removes `quantity`; refused when stock is short.
    - **adjustment**: applies `delta` (signed), or removes `quantity` when no delta is given.
    """
    recorded = await stock_ledger.record_transaction(
        product_id=data.product_id,
        tx_type=data.type,
        quantity=data.quantity,
        reference=data.reference,
        actor_id=actor.id,
        delta=data.delta,
    )

    return {
        "message": "Inventory transaction recorded.",
        "transaction_id": recorded.transaction_id,
        "product": {
            "id": recorded.product_id,
            "stock_quantity": recorded.stock_quantity,
        },
    }


@router.get("", response_model=StockTransactionList)
async def list_inventory_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=200),
    product_id: Optional[UUID] = Query(None, alias="productId"),
    type: Optional[TransactionType] = None,
    date_from: Optional[str] = Query(None, alias="dateFrom", description="ISO date or datetime, inclusive"),
    date_to: Optional[str] = Query(None, alias="dateTo", description="ISO date or datetime, inclusive"),
    performed_by: Optional[UUID] = Query(None, alias="performedBy"),
    actor: Actor = Depends(get_current_actor)
):
    """
    Ledger entries, newest first, plus a sales summary over the same filter.

    Access Control:
    - Super Admin: everyone's entries, optionally narrowed with `performedBy`
    - Everyone else: only their own entries (`performedBy` is ignored)
    """
    query = stock_ledger.TransactionQuery(
        page=page,
        limit=limit,
        product_id=product_id,
        type=type,
        date_from=stock_ledger.parse_date_bound(date_from),
        date_to=stock_ledger.parse_date_bound(date_to, end_of_day=True),
        performed_by=performed_by,
    )
    return await stock_ledger.list_transactions(query, actor)
