"""001: create common functions and user_balances

Revision ID: 001
Revises: 
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE user_balances (
            user_id             VARCHAR(128) PRIMARY KEY,
            available_tokens    BIGINT      NOT NULL DEFAULT 0,
            committed_tokens    BIGINT      NOT NULL DEFAULT 0,
            total_earned        BIGINT      NOT NULL DEFAULT 0,
            total_spent         BIGINT      NOT NULL DEFAULT 0,
            version             BIGINT      NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_user_balances_available_gte_0 CHECK (available_tokens >= 0),
            CONSTRAINT ck_user_balances_committed_gte_0 CHECK (committed_tokens >= 0),
            CONSTRAINT ck_user_balances_earned_gte_0    CHECK (total_earned >= 0),
            CONSTRAINT ck_user_balances_spent_gte_0     CHECK (total_spent >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_user_balances_updated_at
            BEFORE UPDATE ON user_balances
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE user_balances IS 'Token balances per user — all amounts in platform tokens';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_balances CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
