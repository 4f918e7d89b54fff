"""002: create accounts table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE accounts (
            id                  BIGSERIAL       PRIMARY KEY,
            user_key            VARCHAR(255)    NOT NULL,
            balance             BIGINT          NOT NULL DEFAULT 0,
            total_purchased     BIGINT          NOT NULL DEFAULT 0,
            total_won           BIGINT          NOT NULL DEFAULT 0,
            total_lost          BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_accounts_user_key         UNIQUE (user_key),
            CONSTRAINT ck_accounts_balance_gte_0    CHECK (balance >= 0),
            CONSTRAINT ck_accounts_purchased_gte_0  CHECK (total_purchased >= 0),
            CONSTRAINT ck_accounts_lost_gte_0       CHECK (total_lost >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_accounts_updated_at
            BEFORE UPDATE ON accounts
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE accounts IS 'Token balances and lifetime counters, one row per user key';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS accounts CASCADE;")
