import asyncio
import copy
import os
from types import SimpleNamespace
from uuid import uuid4

import pytest
from pymongo.errors import OperationFailure, PyMongoError

# Settings are read at import time, so the environment must be in place first
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("DATABASE_NAME", "inventory_pos_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from pos_backend.core.config import settings  # noqa: E402
from pos_backend.core.security import create_access_token  # noqa: E402
from pos_backend.models.user import UserRole  # noqa: E402
from pos_backend.services import accounts, stock_ledger  # noqa: E402


# ---------------------------------------------------------
# In-memory stand-ins for the Motor collections the ledger talks to
# ---------------------------------------------------------
def _matches(doc: dict, query: dict) -> bool:
    for key, cond in query.items():
        value = doc.get(key)
        if isinstance(cond, dict):
            for op, arg in cond.items():
                if op == "$gte" and not (value is not None and value >= arg):
                    return False
                if op == "$lte" and not (value is not None and value <= arg):
                    return False
                if op == "$in" and value not in arg:
                    return False
        elif value != cond:
            return False
    return True


def _apply(doc: dict, update: dict) -> None:
    for field, amount in update.get("$inc", {}).items():
        doc[field] = doc.get(field, 0) + amount
    for field, value in update.get("$set", {}).items():
        doc[field] = value


def _resolve(row: dict, expr):
    if isinstance(expr, str) and expr.startswith("$"):
        value = row
        for part in expr[1:].split("."):
            value = value.get(part) if isinstance(value, dict) else None
        return value
    if isinstance(expr, dict) and "$multiply" in expr:
        result = 1
        for term in expr["$multiply"]:
            result *= _resolve(row, term)
        return result
    return expr


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction):
        self._docs = sorted(self._docs, key=lambda d: d[key], reverse=direction == -1)
        return self

    def skip(self, n):
        self._docs = self._docs[n:]
        return self

    def limit(self, n):
        self._docs = self._docs[:n]
        return self

    async def to_list(self, length=None):
        docs = [copy.deepcopy(d) for d in self._docs]
        return docs if length is None else docs[:length]


def write_conflict():
    return OperationFailure(
        "WriteConflict error: this operation conflicted with another operation.",
        code=112,
        details={"code": 112, "errorLabels": ["TransientTransactionError"]},
    )


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.docs = {}
        self.database = {}
        self.insert_error = None
        # Number of transactional updates still to fail with a write conflict
        self.conflicts = 0
        self.aggregate_rows = None
        self.pipelines = []

    # Every call yields to the loop first so concurrent callers interleave
    async def find_one(self, query, projection=None, session=None):
        await asyncio.sleep(0)
        for doc in self.docs.values():
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def find_one_and_update(self, query, update, return_document=None, session=None):
        await asyncio.sleep(0)
        if session is not None and self.conflicts > 0:
            self.conflicts -= 1
            raise write_conflict()
        for doc in self.docs.values():
            if _matches(doc, query):
                _apply(doc, update)
                return copy.deepcopy(doc)
        return None

    async def update_one(self, query, update, session=None):
        await asyncio.sleep(0)
        for doc in self.docs.values():
            if _matches(doc, query):
                _apply(doc, update)
                return

    async def insert_one(self, doc, session=None):
        await asyncio.sleep(0)
        if self.insert_error is not None:
            raise self.insert_error
        self.docs[doc["_id"]] = copy.deepcopy(doc)

    async def count_documents(self, query):
        return sum(1 for d in self.docs.values() if _matches(d, query))

    def find(self, query, projection=None):
        return FakeCursor([d for d in self.docs.values() if _matches(d, query)])

    def aggregate(self, pipeline):
        self.pipelines.append(pipeline)
        if self.aggregate_rows is not None:
            return FakeCursor(list(self.aggregate_rows))
        return FakeCursor(self._run_pipeline(pipeline))

    def _run_pipeline(self, pipeline):
        """Evaluates the $match / $lookup / $unwind / $group subset the ledger uses."""
        rows = [copy.deepcopy(d) for d in self.docs.values()]
        for stage in pipeline:
            (op, arg), = stage.items()
            if op == "$match":
                rows = [r for r in rows if _matches(r, arg)]
            elif op == "$lookup":
                foreign = self.database[arg["from"]].docs.values()
                for row in rows:
                    row[arg["as"]] = [
                        copy.deepcopy(f) for f in foreign if f.get(arg["foreignField"]) == row.get(arg["localField"])
                    ]
            elif op == "$unwind":
                field = (arg["path"] if isinstance(arg, dict) else arg).lstrip("$")
                rows = [{**row, field: item} for row in rows for item in row.get(field, [])]
            elif op == "$group":
                if not rows:
                    return []
                group = {"_id": None}
                for key, accumulator in arg.items():
                    if key != "_id":
                        group[key] = sum(_resolve(row, accumulator["$sum"]) for row in rows)
                rows = [group]
            else:
                raise NotImplementedError(op)
        return rows


class FakeSession:
    """
    Runs ``with_transaction`` callbacks one at a time, restoring every
    collection when a callback raises and re-running it on transient errors.
    """

    def __init__(self, client):
        self.client = client

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def with_transaction(self, callback):
        async with self.client.lock():
            while True:
                self.client.attempts += 1
                snapshot = [copy.deepcopy(c.docs) for c in self.client.collections]
                try:
                    return await callback(self)
                except Exception as exc:
                    for collection, docs in zip(self.client.collections, snapshot):
                        collection.docs = docs
                    if isinstance(exc, PyMongoError) and exc.has_error_label("TransientTransactionError"):
                        continue
                    raise


class FakeClient:
    def __init__(self, collections):
        self.collections = collections
        self.sessions = 0
        self.attempts = 0
        self._lock = None
        self._loop = None

    def lock(self):
        # One lock per event loop: each asyncio.run gets a fresh loop
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            self._lock, self._loop = asyncio.Lock(), loop
        return self._lock

    async def start_session(self):
        self.sessions += 1
        return FakeSession(self)


@pytest.fixture
def store(monkeypatch):
    products = FakeCollection("products")
    ledger = FakeCollection("inventory_transactions")
    users = FakeCollection("users")
    client = FakeClient([products, ledger, users])
    for collection in client.collections:
        collection.database = {c.name: c for c in client.collections}

    monkeypatch.setattr(stock_ledger, "_collections", lambda: (products, ledger, users))
    monkeypatch.setattr(stock_ledger, "_client", lambda: client)
    monkeypatch.setattr(settings, "MONGODB_TRANSACTIONS", True)

    def add_product(stock=0, price=10.0, reorder_threshold=5, name="Cola"):
        product_id = uuid4()
        products.docs[product_id] = {
            "_id": product_id,
            "name": name,
            "product_code": "123456",
            "price": price,
            "initial_quantity": stock,
            "stock_quantity": stock,
            "reorder_threshold": reorder_threshold,
        }
        return product_id

    def add_user(username="cashier1", role=UserRole.CASHIER):
        user_id = uuid4()
        users.docs[user_id] = {"_id": user_id, "username": username, "email": f"{username}@cornershop.com", "role": role.value}
        return user_id

    return SimpleNamespace(
        products=products, ledger=ledger, users=users, client=client,
        add_product=add_product, add_user=add_user,
    )


# ---------------------------------------------------------
# Identities and tokens
# ---------------------------------------------------------
def make_actor(role=UserRole.CASHIER, username="cashier1"):
    from pos_backend.dependencies.auth import Actor
    return Actor(id=uuid4(), role=role, username=username)


def bearer(actor) -> dict:
    token = create_access_token({"sub": str(actor.id), "role": actor.role.value, "username": actor.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def accounts_on_file(monkeypatch):
    """Stored accounts keyed by id; the auth dependency resolves tokens against these."""
    on_file = {}

    async def find_user(user_id):
        return on_file.get(user_id)

    monkeypatch.setattr(accounts, "find_user", find_user)
    return on_file


@pytest.fixture
def cashier(accounts_on_file):
    actor = make_actor(UserRole.CASHIER, "cashier1")
    accounts_on_file[actor.id] = actor
    return actor


@pytest.fixture
def admin(accounts_on_file):
    actor = make_actor(UserRole.ADMIN, "admin1")
    accounts_on_file[actor.id] = actor
    return actor


@pytest.fixture
def super_admin(accounts_on_file):
    actor = make_actor(UserRole.SUPER_ADMIN, "owner")
    accounts_on_file[actor.id] = actor
    return actor


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from pos_backend.main import app

    # Not used as a context manager: the lifespan (database connection) never runs
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def auth_header():
    return bearer
