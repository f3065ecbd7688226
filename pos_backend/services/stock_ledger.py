"""
Stock ledger: the only code path that moves ``Product.stock_quantity``.

Invariants:
- Every change to a product's stock is paired with exactly one immutable
  ``inventory_transactions`` entry, committed in the same unit of work.
- ``stock_quantity`` never goes below zero. Decrements are guarded inside the
  atomic update itself, so concurrent sales cannot oversell.
- Entries store ``quantity`` as a positive magnitude and ``delta`` as the signed
  change, so ``stock_quantity == initial_quantity + sum(delta)`` per product.

Visibility:
- Only the super admin sees everyone's entries; any other role is pinned to
  its own ``performed_by``, whatever the request asked for.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from uuid import UUID, uuid4

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from pos_backend.core.config import settings
from pos_backend.core.exceptions import InsufficientStock, InvalidArgument, NotFound
from pos_backend.dependencies.auth import Actor, is_super_admin
from pos_backend.models.product import Product
from pos_backend.models.stock import StockTransaction, TransactionType
from pos_backend.models.user import User

logger = logging.getLogger(__name__)

# Sign applied to the magnitude when the caller does not give an explicit delta
EFFECT = {
    TransactionType.RESTOCK: 1,
    TransactionType.SALE: -1,
    TransactionType.ADJUSTMENT: -1,
}


@dataclass
class RecordedTransaction:
    transaction_id: UUID
    product_id: UUID
    type: TransactionType
    quantity: int
    delta: int
    stock_quantity: int


@dataclass
class TransactionQuery:
    page: int = 1
    limit: int = 20
    product_id: Optional[UUID] = None
    type: Optional[TransactionType] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    performed_by: Optional[UUID] = None


# ---------------------------------------------------------
# STORAGE HANDLES
# ---------------------------------------------------------
def _collections():
    return (
        Product.get_motor_collection(),
        StockTransaction.get_motor_collection(),
        User.get_motor_collection(),
    )


def _client():
    return Product.get_motor_collection().database.client


async def _in_unit_of_work(body):
    """
    Runs ``body(session)`` inside one transaction, or with ``session=None`` when
    transactions are disabled.

    ``with_transaction`` aborts and re-runs the whole body on errors labelled
    ``TransientTransactionError`` (write conflicts between concurrent sales of
    the same product) and retries the commit on ``UnknownTransactionCommitResult``.
    Anything else, including domain errors, aborts and propagates.
    """
    if not settings.MONGODB_TRANSACTIONS:
        return await body(None)

    async def attempt(session):
        try:
            return await body(session)
        except PyMongoError as exc:
            if exc.has_error_label("TransientTransactionError"):
                logger.warning("Transaction aborted by a transient error (%s); retrying", exc)
            raise

    async with await _client().start_session() as session:
        return await session.with_transaction(attempt)


# ---------------------------------------------------------
# 1. VALIDATION
# ---------------------------------------------------------
def parse_type(value) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in TransactionType)
        raise InvalidArgument(f"type must be one of: {allowed}.")


def resolve_delta(tx_type: TransactionType, quantity: Optional[int], delta: Optional[int] = None) -> int:
    """
    Signed change to apply to stock.

    restock and sale take a positive ``quantity``; an adjustment may instead
    carry an explicit non-zero ``delta`` (its sign is the direction), and
    without one it is a write-down of ``quantity``.
    """
    if delta is not None:
        if tx_type is not TransactionType.ADJUSTMENT:
            raise InvalidArgument("delta is only accepted for adjustment transactions.")
        if delta == 0:
            raise InvalidArgument("delta must be a non-zero number.")
        if quantity is not None and quantity != abs(delta):
            raise InvalidArgument("quantity must equal the magnitude of delta.")
        return delta

    if quantity is None:
        raise InvalidArgument("productId, type, and quantity are required.")
    if quantity <= 0:
        raise InvalidArgument("Quantity must be a positive number.")
    return EFFECT[tx_type] * quantity


# ---------------------------------------------------------
# 2. RECORD A TRANSACTION
# ---------------------------------------------------------
async def record_transaction(
    product_id: UUID,
    tx_type,
    quantity: Optional[int],
    reference: Optional[str],
    actor_id: UUID,
    delta: Optional[int] = None,
) -> RecordedTransaction:
    tx_type = parse_type(tx_type)
    change = resolve_delta(tx_type, quantity, delta)
    magnitude = abs(change)
    products, ledger, _ = _collections()

    async def apply(session):
        if tx_type is TransactionType.SALE:
            current = await products.find_one({"_id": product_id}, {"stock_quantity": 1}, session=session)
            if current is None:
                raise NotFound("Product not found.")
            if current.get("stock_quantity", 0) < magnitude:
                logger.warning(
                    "Sale of %s rejected for product %s: only %s in stock",
                    magnitude, product_id, current.get("stock_quantity", 0),
                )
                raise InsufficientStock(available=current.get("stock_quantity", 0), requested=magnitude)

        now = datetime.utcnow()
        guard = {"_id": product_id}
        if change < 0:
            guard["stock_quantity"] = {"$gte": magnitude}

        updated = await products.find_one_and_update(
            guard,
            {"$inc": {"stock_quantity": change}, "$set": {"updated_at": now}},
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        if updated is None:
            exists = await products.find_one({"_id": product_id}, {"stock_quantity": 1}, session=session)
            if exists is None:
                raise NotFound("Product not found.")
            logger.warning("%s of %s on product %s refused by the stock guard", tx_type.value, magnitude, product_id)
            message = None if tx_type is TransactionType.SALE else "Insufficient stock for this adjustment."
            raise InsufficientStock(message, available=exists.get("stock_quantity", 0), requested=magnitude)

        entry = {
            "_id": uuid4(),
            "product_id": product_id,
            "type": tx_type.value,
            "quantity": magnitude,
            "delta": change,
            "reference": reference,
            "performed_by": actor_id,
            "timestamp": now,
        }
        try:
            await ledger.insert_one(entry, session=session)
        except PyMongoError:
            if session is None:
                # No transaction to abort: put the stock back before surfacing the failure
                await products.update_one({"_id": product_id}, {"$inc": {"stock_quantity": -change}})
                logger.error("Ledger append failed for product %s; stock change reverted", product_id)
            raise
        return entry, updated

    entry, updated = await _in_unit_of_work(apply)

    logger.info(
        "Recorded %s of %s on product %s by %s (stock now %s)",
        tx_type.value, magnitude, product_id, actor_id, updated["stock_quantity"],
    )
    return RecordedTransaction(
        transaction_id=entry["_id"],
        product_id=product_id,
        type=tx_type,
        quantity=magnitude,
        delta=change,
        stock_quantity=updated["stock_quantity"],
    )


# ---------------------------------------------------------
# 3. LISTING
# ---------------------------------------------------------
def parse_date_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    ISO date or datetime -> naive UTC datetime, the form timestamps are stored in.
    A bare date used as an upper bound covers that whole day.
    """
    if not value:
        return None
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidArgument(f"Invalid date: {value!r}.")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if end_of_day and len(text) == 10:
        parsed = parsed + timedelta(days=1, microseconds=-1)
    return parsed


def build_transaction_filter(actor: Actor, query: TransactionQuery) -> dict:
    mongo_filter = {}

    if not is_super_admin(actor):
        mongo_filter["performed_by"] = actor.id
    elif query.performed_by:
        mongo_filter["performed_by"] = query.performed_by

    if query.product_id:
        mongo_filter["product_id"] = query.product_id
    if query.type:
        mongo_filter["type"] = parse_type(query.type).value
    if query.date_from or query.date_to:
        mongo_filter["timestamp"] = {}
        if query.date_from:
            mongo_filter["timestamp"]["$gte"] = query.date_from
        if query.date_to:
            mongo_filter["timestamp"]["$lte"] = query.date_to

    return mongo_filter


def sales_summary_pipeline(mongo_filter: dict, products_collection: str = "products") -> list:
    return [
        {"$match": {**mongo_filter, "type": TransactionType.SALE.value}},
        {"$lookup": {
            "from": products_collection,
            "localField": "product_id",
            "foreignField": "_id",
            "as": "prod",
        }},
        {"$unwind": "$prod"},
        {"$group": {
            "_id": None,
            "count": {"$sum": 1},
            "totalQuantity": {"$sum": "$quantity"},
            "totalAmount": {"$sum": {"$multiply": ["$quantity", "$prod.price"]}},
        }},
    ]


def format_amount(value) -> str:
    return str(Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def summarize_sales(rows: list) -> dict:
    row = rows[0] if rows else {}
    return {
        "count": row.get("count", 0),
        "totalQuantity": row.get("totalQuantity", 0),
        "totalAmount": format_amount(row.get("totalAmount", 0)),
    }


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


async def list_transactions(query: TransactionQuery, actor: Actor) -> dict:
    if query.page < 1 or query.limit < 1:
        raise InvalidArgument("page and limit must be positive numbers.")

    products, ledger, users = _collections()
    mongo_filter = build_transaction_filter(actor, query)
    skip = (query.page - 1) * query.limit

    docs = await ledger.find(mongo_filter).sort("timestamp", -1).skip(skip).limit(query.limit).to_list(length=query.limit)
    total = await ledger.count_documents(mongo_filter)
    summary_rows = await ledger.aggregate(sales_summary_pipeline(mongo_filter, products.name)).to_list(length=1)

    product_ids = list({d["product_id"] for d in docs})
    actor_ids = list({d["performed_by"] for d in docs if d.get("performed_by")})
    product_docs = await products.find(
        {"_id": {"$in": product_ids}}, {"name": 1, "product_code": 1, "price": 1}
    ).to_list(length=None)
    user_docs = await users.find(
        {"_id": {"$in": actor_ids}}, {"username": 1, "email": 1}
    ).to_list(length=None)
    products_by_id = {p["_id"]: p for p in product_docs}
    users_by_id = {u["_id"]: u for u in user_docs}

    transactions = []
    for d in docs:
        prod = products_by_id.get(d["product_id"])
        user = users_by_id.get(d.get("performed_by"))
        transactions.append({
            "id": d["_id"],
            "product": {
                "id": prod["_id"],
                "name": prod.get("name"),
                "productCode": prod.get("product_code"),
                "price": prod.get("price"),
            } if prod else None,
            "type": d["type"],
            "quantity": d["quantity"],
            "delta": d.get("delta", EFFECT[TransactionType(d["type"])] * d["quantity"]),
            "reference": d.get("reference"),
            "performedBy": {
                "id": user["_id"],
                "username": user.get("username"),
                "email": user.get("email"),
            } if user else None,
            "timestamp": d["timestamp"],
        })

    return {
        "transactions": transactions,
        "pagination": {
            "total": total,
            "page": query.page,
            "pages": page_count(total, query.limit),
            "limit": query.limit,
        },
        "salesSummary": summarize_sales(summary_rows),
    }
