"""006: create payout_requests table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE payout_requests (
            id                      BIGSERIAL       PRIMARY KEY,
            user_key                VARCHAR(255)    NOT NULL,
            tokens_amount           BIGINT          NOT NULL,
            usd_amount              NUMERIC(12, 2)  NOT NULL,
            method                  VARCHAR(20)     NOT NULL,
            destination             VARCHAR(255)    NOT NULL,
            status                  VARCHAR(20)     NOT NULL DEFAULT 'pending',
            reviewed_by             VARCHAR(255),
            reviewed_at             TIMESTAMPTZ,
            rejection_reason        TEXT,
            transaction_reference   VARCHAR(128),
            completed_at            TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_payouts_tokens_gt_0 CHECK (tokens_amount > 0),
            CONSTRAINT ck_payouts_method CHECK (method IN ('zelle', 'paypal')),
            CONSTRAINT ck_payouts_status CHECK (
                status IN ('pending', 'approved', 'completed', 'rejected')
            )
        );
    """)
    op.execute("CREATE INDEX idx_payouts_user_id ON payout_requests (user_key, id DESC);")
    op.execute("""
        CREATE INDEX idx_payouts_pending
        ON payout_requests (created_at)
        WHERE status = 'pending';
    """)
    op.execute("COMMENT ON TABLE payout_requests IS 'Token withdrawals awaiting or past admin review';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payout_requests CASCADE;")
