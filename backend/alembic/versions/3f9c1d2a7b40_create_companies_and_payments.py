"""create_companies_and_payments

Revision ID: 3f9c1d2a7b40
Revises:
Create Date: 2026-10-19 09:12:44.381205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1d2a7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create companies (subscription record) and payments tables."""
    op.create_table(
        'companies',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True),
        sa.Column('subscription_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column(
            'ended_subscription_ids', sa.JSON(), nullable=False, server_default='[]'
        ),
        sa.Column('subscription_status', sa.String(32), nullable=True),
        sa.Column('subscription_plan', sa.String(32), nullable=True),
        sa.Column('subscription_period', sa.String(16), nullable=True),
        sa.Column('subscription_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('trial_start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('max_seats', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('seated_member_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_companies_id', 'companies', ['id'])
    op.create_index('ix_companies_name', 'companies', ['name'])
    op.create_index('ix_companies_deleted', 'companies', ['deleted'])
    op.create_index(
        'ix_companies_stripe_customer_id', 'companies', ['stripe_customer_id'], unique=True
    )

    op.create_table(
        'payments',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.BigInteger(), nullable=False),
        sa.Column('invoice_ref', sa.String(255), nullable=False),
        sa.Column('client_ref', sa.String(255), nullable=True),
        sa.Column('external_payment_ref', sa.String(255), nullable=False),
        sa.Column('amount', sa.Numeric(12, 3), nullable=False),
        sa.Column('currency', sa.String(8), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payments_id', 'payments', ['id'])
    op.create_index('ix_payments_company_id', 'payments', ['company_id'])
    op.create_index('ix_payments_invoice_ref', 'payments', ['invoice_ref'])
    # Dedup key for replayed payment webhooks
    op.create_index(
        'ix_payments_external_payment_ref', 'payments', ['external_payment_ref'], unique=True
    )


def downgrade() -> None:
    """Drop payments and companies."""
    op.drop_index('ix_payments_external_payment_ref', table_name='payments')
    op.drop_index('ix_payments_invoice_ref', table_name='payments')
    op.drop_index('ix_payments_company_id', table_name='payments')
    op.drop_index('ix_payments_id', table_name='payments')
    op.drop_table('payments')

    op.drop_index('ix_companies_stripe_customer_id', table_name='companies')
    op.drop_index('ix_companies_deleted', table_name='companies')
    op.drop_index('ix_companies_name', table_name='companies')
    op.drop_index('ix_companies_id', table_name='companies')
    op.drop_table('companies')
