"""
Bullion Ledger — FastAPI Application.

This is the entry point for the application.
All routers are registered here, along with the single handler
that turns service errors into HTTP responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bullion_ledger.config import get_settings
from bullion_ledger.errors import LedgerServiceError
from bullion_ledger.logging_config import configure_logging
from bullion_ledger.api.health import router as health_router
from bullion_ledger.api.ledger import router as ledger_router
from bullion_ledger.api.vouchers import router as vouchers_router
from bullion_ledger.api.settlements import router as settlements_router
from bullion_ledger.api.stock import router as stock_router

settings = get_settings()
configure_logging()

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Ledger, stock and reversal engine for a jewellery business",
)


@app.exception_handler(LedgerServiceError)
async def ledger_service_error_handler(request: Request, exc: LedgerServiceError):
    """Every rejection carries its error kind and a readable reason."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Register routers
app.include_router(health_router)
app.include_router(ledger_router)
app.include_router(vouchers_router)
app.include_router(settlements_router)
app.include_router(stock_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("bullion_ledger.main:app", host=settings.HOST, port=settings.PORT)
