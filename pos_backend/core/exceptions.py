import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# 1. DOMAIN ERRORS (raised by services, rendered by handlers)
# ---------------------------------------------------------
class InventoryError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Unexpected error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request."


class NotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found."


class InsufficientStock(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Insufficient stock to complete sale."

    def __init__(self, message: str | None = None, available: int | None = None, requested: int | None = None):
        self.available = available
        self.requested = requested
        super().__init__(message)


class Conflict(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Duplicate value detected."


# ---------------------------------------------------------
# 2. HANDLERS (every failure leaves as {"error": ...})
# ---------------------------------------------------------
async def inventory_error_handler(request: Request, exc: InventoryError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request.", "details": details},
    )


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    logger.info("Duplicate key on %s %s: %s", request.method, request.url.path, exc.details)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": Conflict.default_message},
    )


async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Database operation failed.", "details": type(exc).__name__},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error.", "details": type(exc).__name__},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InventoryError, inventory_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
