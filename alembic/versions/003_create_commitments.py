"""003: create commitments table

Revision ID: 003
Revises: 002
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE commitments (
            id                  VARCHAR(64)     PRIMARY KEY,
            user_id             VARCHAR(128)    NOT NULL,
            market_id           VARCHAR(64)     NOT NULL,
            option_id           VARCHAR(64)     NOT NULL,
            tokens_committed    BIGINT          NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'active',
            payout_amount       BIGINT          NOT NULL DEFAULT 0,
            refund_amount       BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            resolved_at         TIMESTAMPTZ,
            CONSTRAINT fk_commitments_option FOREIGN KEY (market_id, option_id)
                REFERENCES market_options (market_id, id),
            CONSTRAINT ck_commitments_tokens_gt_0   CHECK (tokens_committed > 0),
            CONSTRAINT ck_commitments_payout_gte_0  CHECK (payout_amount >= 0),
            CONSTRAINT ck_commitments_refund_gte_0  CHECK (refund_amount >= 0),
            CONSTRAINT ck_commitments_status CHECK (
                status IN ('active', 'won', 'lost', 'refunded', 'cancelled')
            )
        );
    """)
    op.execute("CREATE INDEX idx_commitments_market_status ON commitments (market_id, status);")
    op.execute("CREATE INDEX idx_commitments_user ON commitments (user_id, id DESC);")
    op.execute("COMMENT ON TABLE commitments IS 'Token stakes on market options — immutable except outcome columns';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS commitments CASCADE;")
