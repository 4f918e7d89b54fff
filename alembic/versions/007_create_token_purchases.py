"""007: create token_purchases table

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE token_purchases (
            id                  BIGSERIAL       PRIMARY KEY,
            user_key            VARCHAR(255)    NOT NULL,
            package_id          VARCHAR(32),
            tokens_amount       BIGINT          NOT NULL,
            external_reference  VARCHAR(128)    NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_token_purchases_reference UNIQUE (external_reference),
            CONSTRAINT ck_token_purchases_tokens_gt_0 CHECK (tokens_amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_token_purchases_user ON token_purchases (user_key, created_at DESC);")
    op.execute("COMMENT ON TABLE token_purchases IS 'Funds-in records; external_reference makes crediting exactly-once';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS token_purchases CASCADE;")
