"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import settings
from src.sw_account.api.router import router as balance_router
from src.sw_admin.api.router import router as admin_router
from src.sw_common.database import engine, ping_database
from src.sw_common.errors import AppError
from src.sw_common.response import error_response
from src.sw_gateway.middleware.request_log import RequestLogMiddleware
from src.sw_settlement.application.sweeper import SettlementSweeper
from src.sw_wager.api.router import router as wager_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB connection, start the settlement sweeper. Shutdown: stop, dispose."""
    await ping_database()

    sweep_task: asyncio.Task[None] | None = None
    if settings.SETTLEMENT_SWEEP_ENABLED:
        sweep_task = asyncio.create_task(
            SettlementSweeper().run_forever(settings.SETTLEMENT_INTERVAL_SECONDS)
        )
    yield
    try:
        if sweep_task is not None:
            sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweep_task
    finally:
        await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("Request failed: [%d] %s", exc.code, exc.message)
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(balance_router, prefix="/api/v1")
app.include_router(wager_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
