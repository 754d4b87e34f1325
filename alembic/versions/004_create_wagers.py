"""004: create wagers and participants tables

Revision ID: 004
Revises: 003
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE wagers (
            id              VARCHAR(64)     PRIMARY KEY,
            opener_id       VARCHAR(64)     NOT NULL REFERENCES users (user_id),
            statement       VARCHAR(200)    NOT NULL,
            odds_for        SMALLINT        NOT NULL,
            odds_against    SMALLINT        NOT NULL,
            status          VARCHAR(10)     NOT NULL DEFAULT 'open',
            outcome         VARCHAR(10),
            total_for       BIGINT          NOT NULL DEFAULT 0,
            total_against   BIGINT          NOT NULL DEFAULT 0,
            opens_at        TIMESTAMPTZ     NOT NULL,
            closes_at       TIMESTAMPTZ     NOT NULL,
            settled_at      TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wagers_status CHECK (status IN ('open', 'closed', 'settled', 'void')),
            CONSTRAINT ck_wagers_outcome CHECK (outcome IS NULL OR outcome IN ('for', 'against')),
            CONSTRAINT ck_wagers_outcome_iff_settled CHECK ((outcome IS NOT NULL) = (status = 'settled')),
            CONSTRAINT ck_wagers_settled_at CHECK ((settled_at IS NOT NULL) = (status IN ('settled', 'void'))),
            CONSTRAINT ck_wagers_odds_gt_0 CHECK (odds_for > 0 AND odds_against > 0),
            CONSTRAINT ck_wagers_totals_gte_0 CHECK (total_for >= 0 AND total_against >= 0),
            CONSTRAINT ck_wagers_window CHECK (closes_at > opens_at)
        );
    """)
    op.execute("CREATE INDEX idx_wagers_open_closes_at ON wagers (closes_at, id) WHERE status = 'open';")
    op.execute("""
        CREATE TRIGGER trg_wagers_updated_at
            BEFORE UPDATE ON wagers
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE participants (
            id          BIGSERIAL       PRIMARY KEY,
            wager_id    VARCHAR(64)     NOT NULL REFERENCES wagers (id),
            user_id     VARCHAR(64)     NOT NULL REFERENCES users (user_id),
            side        VARCHAR(10)     NOT NULL,
            amount      BIGINT          NOT NULL,
            joined_at   TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_participants_side CHECK (side IN ('for', 'against')),
            CONSTRAINT ck_participants_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT uq_participants_wager_user_side UNIQUE (wager_id, user_id, side)
        );
    """)
    op.execute("CREATE INDEX idx_participants_user ON participants (user_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS participants CASCADE;")
    op.execute("DROP TABLE IF EXISTS wagers CASCADE;")
