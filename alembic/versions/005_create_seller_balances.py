"""005: create seller_balances and balance_entries tables

Revision ID: 005
Revises: 004
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE seller_balances (
            seller_id               VARCHAR(64)     PRIMARY KEY,
            pending_balance         BIGINT          NOT NULL DEFAULT 0,
            payout_balance          BIGINT          NOT NULL DEFAULT 0,
            in_transfer_balance     BIGINT          NOT NULL DEFAULT 0,
            version                 BIGINT          NOT NULL DEFAULT 0,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_seller_balances_pending     CHECK (pending_balance >= 0),
            CONSTRAINT ck_seller_balances_available   CHECK (payout_balance >= 0),
            CONSTRAINT ck_seller_balances_in_transfer CHECK (in_transfer_balance >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_seller_balances_updated_at
            BEFORE UPDATE ON seller_balances
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE balance_entries (
            id              BIGSERIAL       PRIMARY KEY,
            seller_id       VARCHAR(64)     NOT NULL,
            entry_type      VARCHAR(32)     NOT NULL,
            bucket          VARCHAR(16)     NOT NULL,
            amount          BIGINT          NOT NULL,
            balance_after   BIGINT          NOT NULL,
            reference_type  VARCHAR(32),
            reference_id    VARCHAR(64),
            description     VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_balance_entries_bucket CHECK (
                bucket IN ('PENDING', 'AVAILABLE', 'IN_TRANSFER')
            ),
            CONSTRAINT ck_balance_entries_after CHECK (balance_after >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_balance_entries_seller ON balance_entries (seller_id, id DESC);")
    op.execute(
        "CREATE INDEX idx_balance_entries_reference ON balance_entries (reference_type, reference_id);"
    )
    op.execute("""
        CREATE TRIGGER trg_balance_entries_append_only
            BEFORE UPDATE OR DELETE ON balance_entries
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute("COMMENT ON TABLE balance_entries IS 'Append-only journal; per bucket, SUM(amount) equals the stored balance';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS balance_entries CASCADE;")
    op.execute("DROP TABLE IF EXISTS seller_balances CASCADE;")
