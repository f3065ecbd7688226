import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from pos_backend.core.config import settings
from pos_backend.core.database import init_db
from pos_backend.core.exceptions import register_exception_handlers
from pos_backend.core.logging import configure_logging
from pos_backend.routers import auth, user, category, product, inventory
from pos_backend.services.bootstrap import ensure_super_admin

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# 1. LIFESPAN MANAGER (Startup/Shutdown)
# ---------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- STARTUP ---
    configure_logging()
    logger.info("Initialization started")
    try:
        client = await init_db()
    except Exception:
        logger.exception("Could not connect to database '%s'", settings.DATABASE_NAME)
        raise
    logger.info("Connected to database '%s'", settings.DATABASE_NAME)

    await ensure_super_admin()

    yield

    # --- SHUTDOWN ---
    client.close()
    logger.info("System shutting down")


# ---------------------------------------------------------
# 2. APP INITIALIZATION
# ---------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    lifespan=lifespan,
    debug=settings.DEBUG,
    description="Inventory and point-of-sale API: catalog, stock ledger and staff accounts"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ---------------------------------------------------------
# 3. ROUTER REGISTRATION
# ---------------------------------------------------------
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(user.router, prefix="/users", tags=["User Management"])
app.include_router(category.router, prefix="/categories", tags=["Category Management"])
app.include_router(product.router, prefix="/products", tags=["Product Management"])
app.include_router(inventory.router, prefix="/inventory", tags=["Inventory Management"])


# ---------------------------------------------------------
# 4. BASIC ROUTES (Health Checks)
# ---------------------------------------------------------
@app.get("/", tags=["System"])
async def root():
    """Root endpoint to verify the API is online."""
    return {
        "system": settings.APP_NAME,
        "status": "Online",
        "documentation": "/docs"
    }


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "ok"}
