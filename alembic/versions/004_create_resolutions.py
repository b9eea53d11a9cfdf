"""004: create resolutions, payout and resolution_logs tables

Revision ID: 004
Revises: 003
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE resolutions (
            id                  VARCHAR(64)     PRIMARY KEY,
            market_id           VARCHAR(64)     NOT NULL REFERENCES markets(id),
            winning_option_id   VARCHAR(64)     NOT NULL,
            evidence            JSONB           NOT NULL DEFAULT '[]'::jsonb,
            resolved_by         VARCHAR(128)    NOT NULL,
            resolved_at         TIMESTAMPTZ     NOT NULL,
            total_pool          BIGINT          NOT NULL,
            total_payout        BIGINT          NOT NULL,
            winner_count        INT             NOT NULL,
            house_fee_amount    BIGINT          NOT NULL,
            house_fee_bps       SMALLINT        NOT NULL,
            creator_fee_amount  BIGINT          NOT NULL,
            creator_fee_bps     SMALLINT        NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'completed',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_resolutions_market UNIQUE (market_id),
            CONSTRAINT ck_resolutions_conservation CHECK (
                house_fee_amount + creator_fee_amount + total_payout <= total_pool
            ),
            CONSTRAINT ck_resolutions_status CHECK (
                status IN ('pending', 'completed', 'failed')
            )
        );
    """)
    op.execute("""
        CREATE TABLE resolution_payouts (
            id                  BIGSERIAL       PRIMARY KEY,
            resolution_id       VARCHAR(64)     NOT NULL REFERENCES resolutions(id),
            market_id           VARCHAR(64)     NOT NULL,
            commitment_id       VARCHAR(64)     NOT NULL REFERENCES commitments(id),
            user_id             VARCHAR(128)    NOT NULL,
            option_id           VARCHAR(64)     NOT NULL,
            tokens_staked       BIGINT          NOT NULL,
            payout_amount       BIGINT          NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'completed',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_resolution_payouts_commitment UNIQUE (commitment_id),
            CONSTRAINT ck_resolution_payouts_amount_gte_0 CHECK (payout_amount >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_resolution_payouts_user ON resolution_payouts (user_id, created_at DESC);")
    op.execute("""
        CREATE TABLE creator_payouts (
            id                  BIGSERIAL       PRIMARY KEY,
            resolution_id       VARCHAR(64)     NOT NULL REFERENCES resolutions(id),
            market_id           VARCHAR(64)     NOT NULL,
            creator_id          VARCHAR(128)    NOT NULL,
            fee_amount          BIGINT          NOT NULL,
            fee_bps             SMALLINT        NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'completed',
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_creator_payouts_resolution UNIQUE (resolution_id),
            CONSTRAINT ck_creator_payouts_amount_gt_0 CHECK (fee_amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_creator_payouts_creator ON creator_payouts (creator_id, created_at DESC);")
    op.execute("""
        CREATE TABLE house_payouts (
            id                  BIGSERIAL       PRIMARY KEY,
            resolution_id       VARCHAR(64)     NOT NULL REFERENCES resolutions(id),
            market_id           VARCHAR(64)     NOT NULL,
            fee_amount          BIGINT          NOT NULL,
            fee_bps             SMALLINT        NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_house_payouts_resolution UNIQUE (resolution_id),
            CONSTRAINT ck_house_payouts_amount_gte_0 CHECK (fee_amount >= 0)
        );
    """)
    op.execute("""
        CREATE TABLE resolution_logs (
            id                  BIGSERIAL       PRIMARY KEY,
            market_id           VARCHAR(64)     NOT NULL REFERENCES markets(id),
            action              VARCHAR(32)     NOT NULL,
            admin_id            VARCHAR(128)    NOT NULL,
            details             JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_resolution_logs_action CHECK (
                action IN ('resolution_started', 'evidence_validated', 'payouts_calculated',
                           'tokens_distributed', 'resolution_completed', 'market_cancelled')
            )
        );
    """)
    op.execute("CREATE INDEX idx_resolution_logs_market ON resolution_logs (market_id, created_at);")
    op.execute("COMMENT ON TABLE house_payouts IS 'Platform fee per resolution — audit only, credited to nobody';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS resolution_logs CASCADE;")
    op.execute("DROP TABLE IF EXISTS house_payouts CASCADE;")
    op.execute("DROP TABLE IF EXISTS creator_payouts CASCADE;")
    op.execute("DROP TABLE IF EXISTS resolution_payouts CASCADE;")
    op.execute("DROP TABLE IF EXISTS resolutions CASCADE;")
