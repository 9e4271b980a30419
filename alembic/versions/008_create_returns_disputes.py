"""008: create returns, refund_instructions and disputes tables

Revision ID: 008
Revises: 007
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE disputes (
            id                  VARCHAR(64)     PRIMARY KEY,
            order_id            VARCHAR(64)     NOT NULL REFERENCES orders(id),
            reporter_id         VARCHAR(64)     NOT NULL,
            reported_user_id    VARCHAR(64)     NOT NULL,
            reason              VARCHAR(100)    NOT NULL,
            description         TEXT,
            status              VARCHAR(16)     NOT NULL DEFAULT 'pending',
            resolution          TEXT,
            admin_notes         TEXT,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            resolved_at         TIMESTAMPTZ,
            CONSTRAINT ck_disputes_status CHECK (
                status IN ('pending', 'investigating', 'resolved', 'dismissed')
            )
        );
    """)
    op.execute("CREATE INDEX idx_disputes_reporter ON disputes (reporter_id, id DESC);")
    op.execute("CREATE INDEX idx_disputes_reported ON disputes (reported_user_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_disputes_updated_at
            BEFORE UPDATE ON disputes
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE returns (
            id                      VARCHAR(64)     PRIMARY KEY,
            order_id                VARCHAR(64)     NOT NULL REFERENCES orders(id),
            buyer_id                VARCHAR(64)     NOT NULL,
            seller_id               VARCHAR(64)     NOT NULL,
            reason                  VARCHAR(200)    NOT NULL,
            description             TEXT,
            status                  VARCHAR(16)     NOT NULL DEFAULT 'pending',
            admin_notes             TEXT,
            refund_amount           BIGINT,
            return_tracking_number  VARCHAR(100),
            dispute_id              VARCHAR(64)     REFERENCES disputes(id),
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            resolved_at             TIMESTAMPTZ,
            CONSTRAINT ck_returns_status CHECK (
                status IN ('pending', 'approved', 'rejected', 'completed', 'cancelled')
            ),
            CONSTRAINT ck_returns_refund CHECK (refund_amount IS NULL OR refund_amount > 0)
        );
    """)
    # At most one open return per order.
    op.execute("""
        CREATE UNIQUE INDEX uq_returns_open_per_order ON returns (order_id)
            WHERE status IN ('pending', 'approved');
    """)
    op.execute("CREATE INDEX idx_returns_buyer ON returns (buyer_id, id DESC);")
    op.execute("CREATE INDEX idx_returns_seller ON returns (seller_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_returns_updated_at
            BEFORE UPDATE ON returns
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE refund_instructions (
            id                  VARCHAR(64)     PRIMARY KEY,
            return_id           VARCHAR(64)     NOT NULL REFERENCES returns(id),
            order_id            VARCHAR(64)     NOT NULL REFERENCES orders(id),
            buyer_id            VARCHAR(64)     NOT NULL,
            seller_id           VARCHAR(64)     NOT NULL,
            amount              BIGINT          NOT NULL,
            seller_debited      BIGINT          NOT NULL DEFAULT 0,
            shortfall           BIGINT          NOT NULL DEFAULT 0,
            status              VARCHAR(16)     NOT NULL DEFAULT 'pending',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            sent_at             TIMESTAMPTZ,
            CONSTRAINT uq_refund_instructions_return UNIQUE (return_id),
            CONSTRAINT ck_refund_instructions_status CHECK (status IN ('pending', 'sent')),
            CONSTRAINT ck_refund_instructions_split CHECK (
                amount > 0 AND seller_debited >= 0 AND shortfall >= 0
            )
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS refund_instructions CASCADE;")
    op.execute("DROP TABLE IF EXISTS returns CASCADE;")
    op.execute("DROP TABLE IF EXISTS disputes CASCADE;")
