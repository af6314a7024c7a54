from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from fxdeals.api.errors import (
    deal_import_exception_handler,
    storage_unavailable_handler,
    unexpected_exception_handler,
    validation_exception_handler,
)
from fxdeals.api.routes_deals import router as deals_router
from fxdeals.api.routes_seed import router as seed_router
from fxdeals.config import load_settings
from fxdeals.db.database import StorageUnavailableError
from fxdeals.importer.errors import DealImportError
from fxdeals.logging_utils import setup_logging

settings = load_settings()
setup_logging(settings.log_level)

app = FastAPI(
    title="FX Deals Warehouse",
    version="0.1.0",
    description="Import, validate and retrieve foreign-exchange deal records",
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(DealImportError, deal_import_exception_handler)
app.add_exception_handler(StorageUnavailableError, storage_unavailable_handler)
app.add_exception_handler(Exception, unexpected_exception_handler)
app.include_router(deals_router)
app.include_router(seed_router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "service": settings.service_name}
