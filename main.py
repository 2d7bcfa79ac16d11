# main.py
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from souq.core.logging_config import configure_logging
from souq.core.db import init_models
from souq.core.exceptions import SouqError, RateLimitedError
from souq.middleware.activity_logger import ActivityLoggerMiddleware
from souq.schemas.response_schemas import ErrorResponse, ErrorBody
from souq.routers import vouchers_router, orders_router, seller_router, products_router, admin_router
from souq.services.notification_service import notification_dispatcher

configure_logging()
logger = logging.getLogger("souq")

app = FastAPI(
    title="Souq Marketplace API",
    description="FastAPI backend for the Souq multi-seller marketplace: vouchers, wallet, orders and ranking",
    version="0.1.0"
)
# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # adjust for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ActivityLoggerMiddleware)


def _error_response(status_code: int, error: dict, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(ErrorResponse(error=ErrorBody(**error)), exclude_none=True),
        headers=headers,
    )


@app.exception_handler(SouqError)
async def souq_error_handler(request: Request, exc: SouqError):
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return _error_response(exc.status_code, exc.to_payload(), headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    codes = {401: "UNAUTHORIZED", 403: "FORBIDDEN", 404: "NOT_FOUND"}
    return _error_response(
        exc.status_code,
        {"code": codes.get(exc.status_code, "ERROR"), "message": str(exc.detail)},
        getattr(exc, "headers", None),
    )


def _clean_errors(errors) -> list:
    # ctx may hold exception instances
    return [{k: v for k, v in e.items() if k != "ctx"} for e in errors]


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return _error_response(
        400,
        {"code": "VALIDATION_ERROR", "message": "Invalid request", "details": {"errors": _clean_errors(exc.errors())}},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, {"code": "INTERNAL_ERROR", "message": "Internal server error"})


# Health check endpoint
@app.get("/", tags=["Health"])
async def health_check():
    return {"ok": True, "data": {"status": "ok", "message": "Backend is running"}}

# Register routers
app.include_router(vouchers_router)
app.include_router(orders_router)
app.include_router(seller_router)
app.include_router(products_router)
app.include_router(admin_router)


@app.on_event("startup")
async def on_startup():
    await init_models()
    await notification_dispatcher.start()


@app.on_event("shutdown")
async def on_shutdown():
    await notification_dispatcher.stop()
