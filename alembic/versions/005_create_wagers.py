"""005: create wagers table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE wagers (
            id                  BIGSERIAL       PRIMARY KEY,
            user_key            VARCHAR(255)    NOT NULL,
            market_id           BIGINT          NOT NULL REFERENCES markets (id),
            position            VARCHAR(3)      NOT NULL,
            tokens_wagered      BIGINT          NOT NULL,
            potential_payout    BIGINT          NOT NULL,
            payout_multiplier   NUMERIC(6, 2)   NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'active',
            tokens_won          BIGINT          NOT NULL DEFAULT 0,
            placed_at           TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            settled_at          TIMESTAMPTZ,
            CONSTRAINT uq_wagers_user_market    UNIQUE (user_key, market_id),
            CONSTRAINT ck_wagers_position       CHECK (position IN ('yes', 'no')),
            CONSTRAINT ck_wagers_status CHECK (
                status IN ('active', 'won', 'lost', 'cancelled')
            ),
            CONSTRAINT ck_wagers_tokens_gt_0    CHECK (tokens_wagered > 0),
            CONSTRAINT ck_wagers_payout_gte_0   CHECK (potential_payout >= 0),
            CONSTRAINT ck_wagers_won_gte_0      CHECK (tokens_won >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_wagers_market_status ON wagers (market_id, status);")
    op.execute("CREATE INDEX idx_wagers_user_id ON wagers (user_key, id DESC);")
    op.execute("COMMENT ON TABLE wagers IS 'One fixed-payout wager per user per market';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS wagers CASCADE;")
