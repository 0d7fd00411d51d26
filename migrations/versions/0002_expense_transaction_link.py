"""link expenses to their ledger transaction

Revision ID: 0002_expense_transaction
Revises: 0001_initial
Create Date: 2026-10-19 16:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0002_expense_transaction'
down_revision: Union[str, None] = '0001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    with op.batch_alter_table('expenses') as batch:
        batch.add_column(sa.Column('transaction_id', postgresql.UUID(as_uuid=True), nullable=True))
        batch.create_foreign_key('fk_expenses_transaction_id', 'transactions', ['transaction_id'], ['id'])

    # Existing expenses were written together with an EXPENSE transaction sharing
    # created_by, date, amount and category; pair them up where unambiguous.
    op.execute(
        """
        UPDATE expenses SET transaction_id = (
            SELECT t.id FROM transactions t
            WHERE t.type = 'EXPENSE'
              AND t.created_by = expenses.created_by
              AND t.date = expenses.date
              AND t.amount = expenses.amount
              AND t.category = expenses.category
            ORDER BY t.created_at
            LIMIT 1
        )
        WHERE transaction_id IS NULL
        """
    )


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table('expenses') as batch:
        batch.drop_constraint('fk_expenses_transaction_id', type_='foreignkey')
        batch.drop_column('transaction_id')
