"""
Immutable journal of ledger events.

The ledger's full state is rebuilt by replaying these rows in sequence order.
This table is append-only: rows are never updated or deleted.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from medledger.kernel.models.base import Base


class LedgerEventLog(Base):
    """One journaled ledger event, keyed by its ledger sequence number."""
    
    __tablename__ = "ledger_events"
    
    # Assigned by the ledger outbox, not by the database
    sequence: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False,
    )
    
    event_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    
    # Entity references (denormalised from payload for querying)
    record_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
    )
    subject: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    
    # Full event, enough to rebuild it
    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    
    __table_args__ = (
        Index("ix_ledger_events_record_type", "record_id", "event_type"),
    )
    
    def __repr__(self) -> str:
        return f"<LedgerEventLog #{self.sequence} {self.event_type} record={self.record_id}>"
