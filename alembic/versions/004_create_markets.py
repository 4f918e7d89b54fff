"""004: create markets table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id                  BIGSERIAL       PRIMARY KEY,
            category            VARCHAR(50)     NOT NULL,
            subcategory         VARCHAR(50),
            title               VARCHAR(255)    NOT NULL,
            description         TEXT,
            ticker              VARCHAR(64),
            source              VARCHAR(20)     NOT NULL DEFAULT 'internal',
            parameters          JSONB           NOT NULL DEFAULT '{}'::jsonb,
            yes_multiplier      NUMERIC(6, 2)   NOT NULL DEFAULT 2.00,
            no_multiplier       NUMERIC(6, 2)   NOT NULL DEFAULT 2.00,
            min_bet             INT             NOT NULL DEFAULT 10,
            max_bet             INT             NOT NULL DEFAULT 10000,
            opens_at            TIMESTAMPTZ     NOT NULL,
            closes_at           TIMESTAMPTZ     NOT NULL,
            resolves_at         TIMESTAMPTZ     NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'upcoming',
            outcome             VARCHAR(10),
            resolution_source   VARCHAR(500),
            resolved_at         TIMESTAMPTZ,
            resolved_by         VARCHAR(255),
            total_yes_tokens    BIGINT          NOT NULL DEFAULT 0,
            total_no_tokens     BIGINT          NOT NULL DEFAULT 0,
            total_bettors       INT             NOT NULL DEFAULT 0,
            featured            BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_status CHECK (
                status IN ('upcoming', 'open', 'closed', 'resolved')
            ),
            CONSTRAINT ck_markets_source CHECK (source IN ('internal', 'venue')),
            CONSTRAINT ck_markets_outcome CHECK (outcome IS NULL OR outcome IN ('yes', 'no')),
            CONSTRAINT ck_markets_resolved_has_outcome CHECK (
                (status = 'resolved') = (outcome IS NOT NULL)
            ),
            CONSTRAINT ck_markets_multipliers CHECK (yes_multiplier > 0 AND no_multiplier > 0),
            CONSTRAINT ck_markets_bet_bounds CHECK (min_bet >= 1 AND min_bet <= max_bet),
            CONSTRAINT ck_markets_schedule CHECK (opens_at <= closes_at AND closes_at <= resolves_at),
            CONSTRAINT ck_markets_volume_gte_0 CHECK (
                total_yes_tokens >= 0 AND total_no_tokens >= 0 AND total_bettors >= 0
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status_closes ON markets (status, closes_at);")
    op.execute("""
        CREATE INDEX idx_markets_scheduled
        ON markets (ticker, subcategory, resolves_at)
        WHERE source = 'internal';
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_markets_venue_ticker
        ON markets (source, ticker)
        WHERE source = 'venue';
    """)
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Fixed-multiplier yes/no markets, internal or mirrored from the venue';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
