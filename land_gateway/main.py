from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from land_gateway.core.config import settings
from land_gateway.core.database import async_session_factory, engine
from land_gateway.core.dependencies import GatewayContainer, build_ledger_client
from land_gateway.core.errors import (
    GatewayError,
    gateway_error_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from land_gateway.core.sentry import init_sentry

import land_gateway.models  # noqa: F401  register all models at startup
from land_gateway.models.call_log import ApiCallLog

from land_gateway.middleware.call_log import CallLogMiddleware
from land_gateway.modules.land.router import getter_router, plot_router, setter_router
from land_gateway.modules.mirror.router import logs_router, router as mirror_router
from land_gateway.modules.transfers.router import router as transfers_router

# ── Sentry: must be initialised BEFORE FastAPI app is created ────────────────
init_sentry(settings.SENTRY_DSN, settings.SENTRY_ENVIRONMENT, settings.APP_VERSION)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    logger.info("Starting land registry gateway", env=settings.APP_ENV, rpc_url=settings.RPC_URL)

    ledger = build_ledger_client(settings)
    container = GatewayContainer.build(
        ledger, async_session_factory, call_log_enabled=settings.CALL_LOG_ENABLED
    )
    app.state.container = container

    async with engine.begin() as conn:
        await conn.run_sync(lambda c: ApiCallLog.__table__.create(c, checkfirst=True))

    if settings.MIRROR_SYNC_ON_STARTUP:
        reports = await container.reconciler.sync_all()
        logger.info("mirror_bootstrap_complete", reports=[r.to_dict() for r in reports])

    yield
    logger.info("Shutting down land registry gateway")
    await ledger.close()
    await engine.dispose()


_is_prod = settings.APP_ENV == "production"

app = FastAPI(
    title="Land Registry Gateway",
    description="Mirrors on-chain land tokens, plots and transfer requests; runs three-party transfer approvals.",
    version="1.0.0",
    docs_url=None if _is_prod else "/docs",
    redoc_url=None if _is_prod else "/redoc",
    openapi_url=None if _is_prod else "/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(CallLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept"],
)

app.add_exception_handler(GatewayError, gateway_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)


# ── Health check (root-level) ─────────────────────────────────────────────────


@app.get("/health")
async def health_check(request: Request) -> dict:
    """Probes the mirror store and the ledger RPC endpoint."""
    checks: dict[str, dict] = {}
    container: GatewayContainer | None = getattr(request.app.state, "container", None)
    if container is None:
        return {"status": "unhealthy", "service": "land-registry-gateway", "checks": checks}

    # ── Mirror store ──────────────────────────────────────────────────────────
    try:
        async with container.session_factory() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy"}
    except Exception as exc:
        checks["database"] = {"status": "unhealthy", "error": str(exc)}

    # ── Ledger ────────────────────────────────────────────────────────────────
    try:
        block = await container.ledger.read_block_number()
        checks["ledger"] = {"status": "healthy", "blockNumber": block}
    except Exception as exc:
        checks["ledger"] = {"status": "unhealthy", "error": str(exc)}

    overall = (
        "healthy"
        if all(c["status"] == "healthy" for c in checks.values())
        else "degraded"
    )
    return {"status": overall, "service": "land-registry-gateway", "checks": checks}


# ── /api router ───────────────────────────────────────────────────────────────

api = APIRouter(prefix="/api")

api.include_router(setter_router)
api.include_router(transfers_router)
api.include_router(getter_router)
api.include_router(plot_router)
api.include_router(mirror_router)
api.include_router(logs_router)

app.include_router(api)
