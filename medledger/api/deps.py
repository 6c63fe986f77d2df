"""
FastAPI dependencies for caller identity, the ledger and database sessions.
"""

import asyncio
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from medledger.config import get_settings
from medledger.database import get_db
from medledger.kernel.events.journal import LedgerWriter
from medledger.kernel.identity.jwt import verify_access_token
from medledger.kernel.ledger import Ledger
from medledger.logging_config import caller_var


# Security scheme
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_ledger(request: Request) -> Ledger:
    """The process-wide ledger, built at startup and held on app.state."""
    return request.app.state.ledger


LedgerDep = Annotated[Ledger, Depends(get_ledger)]


async def get_current_subject(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> str:
    """Resolve the caller's subject from the bearer token or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    caller_var.set(payload.sub)
    return payload.sub


CurrentSubject = Annotated[str, Depends(get_current_subject)]


def get_journal_lock(request: Request) -> asyncio.Lock:
    """Lock serialising ledger writes with their journal commits."""
    lock = getattr(request.app.state, "journal_lock", None)
    if lock is None:
        lock = request.app.state.journal_lock = asyncio.Lock()
    return lock


def get_ledger_writer(
    ledger: LedgerDep,
    db: DbSession,
    lock: Annotated[asyncio.Lock, Depends(get_journal_lock)],
) -> LedgerWriter:
    return LedgerWriter(ledger, db, lock, journal_enabled=get_settings().journal_enabled)


LedgerWriterDep = Annotated[LedgerWriter, Depends(get_ledger_writer)]
