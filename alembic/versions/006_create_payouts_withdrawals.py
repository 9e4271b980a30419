"""006: create payouts and withdrawals tables

Revision ID: 006
Revises: 005
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE payouts (
            id                  VARCHAR(64)     PRIMARY KEY,
            order_id            VARCHAR(64)     NOT NULL REFERENCES orders(id),
            seller_id           VARCHAR(64)     NOT NULL,
            gross_amount        BIGINT          NOT NULL,
            seller_commission   BIGINT          NOT NULL,
            buyer_fee           BIGINT          NOT NULL DEFAULT 0,
            net_amount          BIGINT          NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'pending',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            processed_at        TIMESTAMPTZ,
            CONSTRAINT uq_payouts_order     UNIQUE (order_id),
            CONSTRAINT ck_payouts_status    CHECK (status IN ('pending', 'processed', 'failed')),
            CONSTRAINT ck_payouts_split     CHECK (net_amount + seller_commission = gross_amount),
            CONSTRAINT ck_payouts_net       CHECK (net_amount >= 0 AND seller_commission >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_payouts_seller ON payouts (seller_id, id DESC);")
    op.execute(
        "CREATE INDEX idx_payouts_matured ON payouts (created_at) WHERE status = 'pending';"
    )

    op.execute("""
        CREATE TABLE withdrawals (
            id                  VARCHAR(64)     PRIMARY KEY,
            seller_id           VARCHAR(64)     NOT NULL,
            amount              BIGINT          NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'requested',
            transfer_reference  VARCHAR(128),
            failure_reason      VARCHAR(500),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            completed_at        TIMESTAMPTZ,
            CONSTRAINT ck_withdrawals_amount CHECK (amount > 0),
            CONSTRAINT ck_withdrawals_status CHECK (status IN ('requested', 'completed', 'failed'))
        );
    """)
    op.execute("CREATE INDEX idx_withdrawals_seller ON withdrawals (seller_id, id DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS withdrawals CASCADE;")
    op.execute("DROP TABLE IF EXISTS payouts CASCADE;")
