"""004: create orders and order_events tables

Revision ID: 004
Revises: 003
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                      VARCHAR(64)     PRIMARY KEY,
            invoice_number          VARCHAR(64)     NOT NULL,
            buyer_id                VARCHAR(64)     NOT NULL,
            seller_id               VARCHAR(64)     NOT NULL,
            listing_id              VARCHAR(64)     NOT NULL,
            amount                  BIGINT          NOT NULL,
            shipping_cost           BIGINT          NOT NULL DEFAULT 0,
            buyer_fee               BIGINT          NOT NULL DEFAULT 0,
            payment_method          VARCHAR(8)      NOT NULL,
            shipping_method         VARCHAR(16)     NOT NULL,
            processor               VARCHAR(64),
            courier_id              VARCHAR(64),
            delivery_type           VARCHAR(8),
            locker_id               VARCHAR(64),
            cod_fee                 BIGINT          NOT NULL DEFAULT 0,
            status                  VARCHAR(16)     NOT NULL,
            paid_at                 TIMESTAMPTZ,
            carrier                 VARCHAR(100),
            tracking_number         VARCHAR(100),
            shipped_at              TIMESTAMPTZ,
            delivery_confirmed_at   TIMESTAMPTZ,
            closed_at               TIMESTAMPTZ,
            close_reason            VARCHAR(500),
            shipping_address        TEXT            NOT NULL,
            guest_email             VARCHAR(255),
            seller_commission       BIGINT,
            payout_amount           BIGINT,
            payout_status           VARCHAR(8)      NOT NULL DEFAULT 'none',
            refund_amount           BIGINT,
            refunded_amount_at      TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_status CHECK (
                status IN ('pending', 'paid', 'shipped', 'delivered', 'cancelled', 'refunded')
            ),
            CONSTRAINT ck_orders_payment_method CHECK (payment_method IN ('card', 'cod')),
            CONSTRAINT ck_orders_shipping_method CHECK (
                shipping_method IN ('standard', 'express', 'overnight')
            ),
            CONSTRAINT ck_orders_delivery_type CHECK (
                delivery_type IS NULL OR delivery_type IN ('home', 'locker')
            ),
            CONSTRAINT ck_orders_payout_status CHECK (payout_status IN ('none', 'pending', 'paid')),
            CONSTRAINT ck_orders_amounts CHECK (
                amount >= 0 AND shipping_cost >= 0 AND buyer_fee >= 0 AND cod_fee >= 0
            ),
            CONSTRAINT ck_orders_settlement CHECK (
                seller_commission IS NULL OR payout_amount + seller_commission = amount
            ),
            CONSTRAINT ck_orders_cod_fee CHECK (payment_method = 'cod' OR cod_fee = 0),
            CONSTRAINT ck_orders_refund CHECK (refund_amount IS NULL OR refund_amount <= amount)
        );
    """)
    op.execute("CREATE INDEX idx_orders_invoice ON orders (invoice_number);")
    op.execute("CREATE INDEX idx_orders_buyer ON orders (buyer_id, id DESC);")
    op.execute("CREATE INDEX idx_orders_seller ON orders (seller_id, id DESC);")
    op.execute("CREATE INDEX idx_orders_status ON orders (status);")
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE order_events (
            id              BIGSERIAL       PRIMARY KEY,
            order_id        VARCHAR(64)     NOT NULL REFERENCES orders(id),
            from_status     VARCHAR(16),
            to_status       VARCHAR(16)     NOT NULL,
            actor_id        VARCHAR(64),
            actor_role      VARCHAR(32)     NOT NULL,
            note            VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX idx_order_events_order ON order_events (order_id, id);")
    op.execute("""
        CREATE TRIGGER trg_order_events_append_only
            BEFORE UPDATE OR DELETE ON order_events
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS order_events CASCADE;")
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
