# storefront/api/errors.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from storefront.domain.errors import ErrorKind, OrderError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# jedyne miejsce mapowania bledow domeny na HTTP
STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.PRODUCT_NOT_FOUND: 404,
    ErrorKind.INSUFFICIENT_STOCK: 400,
    ErrorKind.ORDER_NOT_FOUND: 404,
    ErrorKind.NOT_AUTHORIZED: 403,
    ErrorKind.ALREADY_PAID: 400,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.STORAGE: 500,
}

STORAGE_MESSAGE = "Internal server error"


def _storage_response() -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_KIND[ErrorKind.STORAGE],
        content={"detail": STORAGE_MESSAGE, "kind": ErrorKind.STORAGE.value},
    )


async def order_error_handler(request: Request, exc: OrderError) -> JSONResponse:
    if exc.kind == ErrorKind.STORAGE:
        logger.error(f"{request.method} {request.url.path}: {exc.message}", exc_info=exc)
        return _storage_response()

    logger.info(f"{request.method} {request.url.path} -> {exc.kind.value}: {exc.message}")
    return JSONResponse(
        status_code=STATUS_BY_KIND[exc.kind],
        content={"detail": exc.message, "kind": exc.kind.value},
    )


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path}: blad bazy", exc_info=exc)
    return _storage_response()


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "message": "Validation failed",
            "errors": [
                {"field": ".".join(str(p) for p in e["loc"][1:]) or str(e["loc"][0]), "message": e["msg"]}
                for e in exc.errors()
            ],
        },
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(OrderError, order_error_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
