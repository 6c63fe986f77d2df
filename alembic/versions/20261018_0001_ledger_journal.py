"""Ledger journal - append-only ledger_events table

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "ledger_events",
        # Sequence comes from the ledger outbox, never from the database
        sa.Column("sequence", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("record_id", sa.Integer(), nullable=True),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_ledger_events_event_type", "ledger_events", ["event_type"])
    op.create_index("ix_ledger_events_record_id", "ledger_events", ["record_id"])
    op.create_index("ix_ledger_events_subject", "ledger_events", ["subject"])
    op.create_index(
        "ix_ledger_events_record_type",
        "ledger_events",
        ["record_id", "event_type"],
    )


def downgrade() -> None:
    op.drop_index("ix_ledger_events_record_type", table_name="ledger_events")
    op.drop_index("ix_ledger_events_subject", table_name="ledger_events")
    op.drop_index("ix_ledger_events_record_id", table_name="ledger_events")
    op.drop_index("ix_ledger_events_event_type", table_name="ledger_events")
    op.drop_table("ledger_events")
