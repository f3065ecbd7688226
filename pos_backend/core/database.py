import logging

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie
from pos_backend.core.config import settings
from pos_backend.models.user import User
from pos_backend.models.category import Category
from pos_backend.models.product import Product
from pos_backend.models.stock import StockTransaction
from pos_backend.models.otp import Otp

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [User, Category, Product, StockTransaction, Otp]


async def init_db() -> AsyncIOMotorClient:
    """Connect to MongoDB and initialize Beanie"""

    # Standard UUID encoding lets the ledger query Motor collections with uuid.UUID directly
    client = AsyncIOMotorClient(
        settings.MONGODB_URL,
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=settings.MONGODB_TIMEOUT_MS,
    )

    await init_beanie(
        database=client[settings.DATABASE_NAME],
        document_models=DOCUMENT_MODELS
    )

    logger.info("Beanie initialized with database '%s'", settings.DATABASE_NAME)
    return client
