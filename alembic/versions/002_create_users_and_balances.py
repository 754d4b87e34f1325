"""002: create users and balances tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            user_id     VARCHAR(64)     PRIMARY KEY,
            handle      VARCHAR(100),
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE TABLE balances (
            user_id             VARCHAR(64) PRIMARY KEY REFERENCES users (user_id),
            current_balance     BIGINT      NOT NULL DEFAULT 0,
            escrow_balance      BIGINT      NOT NULL DEFAULT 0,
            lifetime_earned     BIGINT      NOT NULL DEFAULT 0,
            lifetime_spent      BIGINT      NOT NULL DEFAULT 0,
            version             BIGINT      NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_balances_current_gte_0  CHECK (current_balance >= 0),
            CONSTRAINT ck_balances_escrow_gte_0   CHECK (escrow_balance >= 0),
            CONSTRAINT ck_balances_earned_gte_0   CHECK (lifetime_earned >= 0),
            CONSTRAINT ck_balances_spent_gte_0    CHECK (lifetime_spent >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_balances_updated_at
            BEFORE UPDATE ON balances
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE balances IS 'Spendable and escrowed sparks per user, in whole sparks';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS balances CASCADE;")
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
