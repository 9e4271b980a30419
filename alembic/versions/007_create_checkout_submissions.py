"""007: create checkout_submissions table

Revision ID: 007
Revises: 006
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE checkout_submissions (
            buyer_id            VARCHAR(64)     NOT NULL,
            idempotency_key     VARCHAR(128)    NOT NULL,
            fingerprint         CHAR(64)        NOT NULL,
            response            JSONB           NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT pk_checkout_submissions PRIMARY KEY (buyer_id, idempotency_key)
        );
    """)
    op.execute(
        "COMMENT ON TABLE checkout_submissions IS 'Placed-order responses replayed for repeated idempotency keys';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS checkout_submissions CASCADE;")
