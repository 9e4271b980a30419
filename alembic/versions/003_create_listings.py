"""003: create listings table

Revision ID: 003
Revises: 002
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listings (
            id                  VARCHAR(64)     PRIMARY KEY,
            seller_id           VARCHAR(64)     NOT NULL,
            title               VARCHAR(200)    NOT NULL,
            price               BIGINT          NOT NULL,
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            cod_enabled         BOOLEAN         NOT NULL DEFAULT FALSE,
            cod_fee_bps         INT             NOT NULL DEFAULT 0,
            cod_fixed_fee       BIGINT          NOT NULL DEFAULT 0,
            cod_transport_fee   BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_price        CHECK (price >= 0),
            CONSTRAINT ck_listings_cod_fee_bps  CHECK (cod_fee_bps >= 0 AND cod_fee_bps <= 10000),
            CONSTRAINT ck_listings_cod_fixed    CHECK (cod_fixed_fee >= 0 AND cod_transport_fee >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_listings_seller ON listings (seller_id);")
    op.execute("""
        CREATE TRIGGER trg_listings_updated_at
            BEFORE UPDATE ON listings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
