"""003: create ledger_entries table

Revision ID: 003
Revises: 002
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ledger_entries (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL REFERENCES users (user_id),
            entry_type      VARCHAR(20)     NOT NULL,
            amount          BIGINT          NOT NULL,
            balance_after   BIGINT          NOT NULL,
            escrow_after    BIGINT          NOT NULL,
            reference_type  VARCHAR(32)     NOT NULL,
            reference_id    VARCHAR(64)     NOT NULL,
            description     VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ledger_entry_type CHECK (
                entry_type IN (
                    'earn', 'spend',
                    'escrow_in', 'escrow_out',
                    'refund', 'payout', 'void'
                )
            ),
            CONSTRAINT ck_ledger_amount_gt_0        CHECK (amount > 0),
            CONSTRAINT ck_ledger_balance_gte_0      CHECK (balance_after >= 0),
            CONSTRAINT ck_ledger_escrow_gte_0       CHECK (escrow_after >= 0),
            CONSTRAINT uq_ledger_idempotency_key
                UNIQUE (user_id, reference_type, reference_id, entry_type)
        );
    """)
    op.execute("CREATE INDEX idx_ledger_user_id ON ledger_entries (user_id, id DESC);")
    op.execute("CREATE INDEX idx_ledger_reference ON ledger_entries (reference_id, reference_type);")
    op.execute("""
        CREATE TRIGGER trg_ledger_append_only
            BEFORE UPDATE OR DELETE ON ledger_entries
            FOR EACH ROW EXECUTE FUNCTION fn_reject_ledger_mutation();
    """)
    op.execute("COMMENT ON TABLE ledger_entries IS 'Append-only record of every balance change; amounts always positive';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
