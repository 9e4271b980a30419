"""009: create webhook_events table

Revision ID: 009
Revises: 008
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE webhook_events (
            id              BIGSERIAL       PRIMARY KEY,
            source          VARCHAR(32)     NOT NULL,
            event_id        VARCHAR(128)    NOT NULL,
            event_type      VARCHAR(64)     NOT NULL,
            payload         JSONB           NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_webhook_events_source_event UNIQUE (source, event_id)
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS webhook_events CASCADE;")
