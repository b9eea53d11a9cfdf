"""002: create markets and market_options tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id                      VARCHAR(64)     PRIMARY KEY,
            title                   VARCHAR(500)    NOT NULL,
            description             TEXT,
            status                  VARCHAR(32)     NOT NULL DEFAULT 'active',
            created_by              VARCHAR(128)    NOT NULL,
            creator_fee_bps         SMALLINT        NOT NULL DEFAULT 200,
            end_at                  TIMESTAMPTZ,
            total_tokens            BIGINT          NOT NULL DEFAULT 0,
            participant_count       INT             NOT NULL DEFAULT 0,
            resolution_id           VARCHAR(64),
            resolved_at             TIMESTAMPTZ,
            cancelled_at            TIMESTAMPTZ,
            cancelled_by            VARCHAR(128),
            cancellation_reason     TEXT,
            refund_tokens           BOOLEAN,
            version                 BIGINT          NOT NULL DEFAULT 0,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_total_tokens_gte_0     CHECK (total_tokens >= 0),
            CONSTRAINT ck_markets_participants_gte_0     CHECK (participant_count >= 0),
            CONSTRAINT ck_markets_creator_fee CHECK (
                creator_fee_bps >= 100 AND creator_fee_bps <= 500
            ),
            CONSTRAINT ck_markets_status CHECK (
                status IN ('active', 'pending_resolution', 'resolving', 'resolved', 'cancelled')
            ),
            CONSTRAINT ck_markets_resolved_has_resolution CHECK (
                status <> 'resolved' OR resolution_id IS NOT NULL
            ),
            CONSTRAINT ck_markets_cancelled_has_reason CHECK (
                status <> 'cancelled' OR cancellation_reason IS NOT NULL
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status_created ON markets (status, created_at DESC, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TABLE market_options (
            market_id           VARCHAR(64)     NOT NULL REFERENCES markets(id) ON DELETE CASCADE,
            id                  VARCHAR(64)     NOT NULL,
            text                VARCHAR(200)    NOT NULL,
            position            SMALLINT        NOT NULL,
            total_tokens        BIGINT          NOT NULL DEFAULT 0,
            participant_count   INT             NOT NULL DEFAULT 0,
            PRIMARY KEY (market_id, id),
            CONSTRAINT uq_market_options_position     UNIQUE (market_id, position),
            CONSTRAINT ck_market_options_tokens_gte_0 CHECK (total_tokens >= 0),
            CONSTRAINT ck_market_options_part_gte_0   CHECK (participant_count >= 0)
        );
    """)
    op.execute("COMMENT ON TABLE markets IS 'Prediction markets — lifecycle, creator fee, stake totals';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS market_options CASCADE;")
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
