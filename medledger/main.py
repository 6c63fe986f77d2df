"""
MedLedger

FastAPI application entry point.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from medledger.config import get_settings
from medledger.database import async_session_maker, close_db, init_db, journal_session
from medledger.api.v1 import router as api_v1_router
from medledger.api.middleware.request_id import RequestIdMiddleware
from medledger.kernel.events.journal import restore_ledger
from medledger.kernel.ledger import (
    InvalidInputError,
    Ledger,
    LedgerError,
    NotFoundError,
    UnauthorizedError,
)
from medledger.schemas.common import HealthResponse
from medledger.logging_config import configure_logging, get_logger

settings = get_settings()
logger = get_logger(__name__)

# Ledger error kind -> HTTP status
LEDGER_ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    UnauthorizedError: status.HTTP_403_FORBIDDEN,
    InvalidInputError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Rebuilds the ledger from the journal on startup.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    app.state.journal_lock = asyncio.Lock()

    if settings.journal_enabled:
        await init_db()
        async with journal_session() as session:
            app.state.ledger = await restore_ledger(session, settings.admin_subject)
    else:
        logger.warning("Journal disabled; ledger state will not survive a restart")
        app.state.ledger = Ledger(admin=settings.admin_subject)

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    MedLedger

    Owner-controlled access to externally stored health records.

    ## Features

    - **Records**: register a content hash; the creator owns it forever
    - **Grants**: owners grant and revoke read access per subject
    - **Providers**: the provider role reads any record
    - **Audit**: every successful read is appended to a hash-chained access log

    ## Invariants

    1. Record ids are sequential and never reused
    2. Only a record's owner changes its grants
    3. Failed calls have no side effects and leave no audit entry
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first: CORS last so it wraps everything
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _request_id_headers(request: Request) -> dict:
    req_id = getattr(request.state, "request_id", None)
    return {"X-Request-ID": req_id} if req_id else {}


@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    """Surface typed ledger failures directly to the caller."""
    status_code = next(
        (code for kind, code in LEDGER_ERROR_STATUS.items() if isinstance(exc, kind)),
        status.HTTP_409_CONFLICT,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=_request_id_headers(request),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    headers = _request_id_headers(request)
    if exc.headers:
        headers.update(exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation error", "code": InvalidInputError.code, "errors": errors},
        headers=_request_id_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    req_id = getattr(request.state, "request_id", None)
    if settings.debug:
        content = {
            "detail": str(exc),
            "type": type(exc).__name__,
            "request_id": req_id,
        }
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=_request_id_headers(request),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Check application health."""
    ledger: Ledger = request.app.state.ledger
    database = "disabled"
    if settings.journal_enabled:
        try:
            async with async_session_maker() as session:
                await session.execute(text("SELECT 1"))
            database = "connected"
        except Exception:
            logger.exception("Health check database probe failed")
            database = "unavailable"

    return HealthResponse(
        status="ok" if database != "unavailable" else "degraded",
        version=settings.version,
        database=database,
        records=len(ledger.records),
        access_log_entries=len(ledger.access_log),
    )


app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "medledger.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
