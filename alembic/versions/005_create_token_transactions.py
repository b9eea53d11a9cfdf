"""005: create token_transactions table (append-only per-user ledger)

Revision ID: 005
Revises: 004
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE token_transactions (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(128)    NOT NULL,
            type            VARCHAR(32)     NOT NULL,
            amount          BIGINT          NOT NULL,
            balance_after   BIGINT          NOT NULL,
            market_id       VARCHAR(64),
            reference_id    VARCHAR(64),
            description     TEXT,
            metadata        JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_token_transactions_type CHECK (
                type IN ('issuance', 'commitment', 'prediction_win', 'creator_fee',
                         'market_cancellation_refund')
            )
        );
    """)
    op.execute("CREATE INDEX idx_token_transactions_user ON token_transactions (user_id, id DESC);")
    op.execute("CREATE INDEX idx_token_transactions_market ON token_transactions (market_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS token_transactions CASCADE;")
