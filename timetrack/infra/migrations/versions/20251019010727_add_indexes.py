"""add indexes

Revision ID: 20251019010727_add_indexes
Revises: 20251018000000_initial_create
Create Date: 2025-10-19 01:07:27

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20251019010727_add_indexes"
down_revision: Union[str, Sequence[str], None] = "20251018000000_initial_create"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INDEXES = {
    "ix_time_entries_date": ["date"],
    "ix_time_entries_date_start_end": ["date", "start_time", "end_time"],
}


def upgrade() -> None:
    """Upgrade schema."""
    # Baselined databases may already carry some of these
    existing = {ix["name"] for ix in sa.inspect(op.get_bind()).get_indexes("time_entries")}
    for name, columns in INDEXES.items():
        if name not in existing:
            op.create_index(name, "time_entries", columns, unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    for name in reversed(list(INDEXES)):
        op.drop_index(name, table_name="time_entries")
