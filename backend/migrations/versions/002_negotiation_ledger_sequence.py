"""
Alembic migration: Negotiation ledger sequence.

Adds the 1-based ``sequence`` position of each entry within its order's
ledger. Existing rows are numbered by round, creation time and id, then the
column becomes mandatory and unique per order.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 15:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Add and backfill negotiations.sequence.
    """
    op.add_column(
        'negotiations',
        sa.Column('sequence', sa.Integer(), nullable=True,
                  comment="Position in the order's ledger, starting at 1"),
    )
    op.execute(
        """
        UPDATE negotiations AS n
        SET sequence = numbered.position
        FROM (
            SELECT id, row_number() OVER (
                PARTITION BY order_id ORDER BY round, created_at, id
            ) AS position
            FROM negotiations
        ) AS numbered
        WHERE n.id = numbered.id
        """
    )
    op.alter_column('negotiations', 'sequence', nullable=False)
    op.create_unique_constraint(
        'uq_negotiations_order_sequence',
        'negotiations',
        ['order_id', 'sequence'],
    )


def downgrade() -> None:
    """
    Drop negotiations.sequence.
    """
    op.drop_constraint('uq_negotiations_order_sequence', 'negotiations', type_='unique')
    op.drop_column('negotiations', 'sequence')
