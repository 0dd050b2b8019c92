"""FastAPI application for the IPL payment ledger."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.payment import router as payment_router
from src.api.system_config import router as system_config_router
from src.services.errors import (
    ConflictError,
    HouseOwnershipError,
    IllegalStateError,
    LedgerError,
    NotFoundError,
    UploadWindowClosedError,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="IPL Ledger",
    description="Neighborhood fee payments - month ledger and approval workflow",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(payment_router)
app.include_router(system_config_router)

# Most specific first; anything else in the taxonomy is a 400
ERROR_STATUS = [
    (HouseOwnershipError, 403),
    (UploadWindowClosedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (IllegalStateError, 409),
]


def status_for_error(error: LedgerError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 400


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = status_for_error(exc)
    logger.info(f"{request.method} {request.url.path} -> {status_code} {exc.code}: {exc.message}")
    body = {"error": exc.code, "detail": exc.message}
    if getattr(exc, "field", None):
        body["field"] = exc.field
    if isinstance(exc, ConflictError):
        body["months"] = [{"year": y, "month": m} for y, m in exc.months]
    return JSONResponse(status_code=status_code, content=body)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    return {"status": "ok"}
