"""add services and promotions

Revision ID: a1c3e5f7b9d2
Revises: 
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Каталог услуг
    op.create_table('services',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )

    # Промоакции
    op.create_table('promotions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discount_type', sa.String(length=20), nullable=False),
        sa.Column('discount_value', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('eligible_service_ids', sa.JSON(), nullable=True),
        sa.Column('minimum_quantity', sa.Integer(), nullable=True),
        sa.Column('minimum_value', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('uses_per_client', sa.Integer(), nullable=True),
        sa.Column('combo_config', sa.JSON(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_promotions_active_dates', 'promotions', ['is_active', 'start_date', 'end_date'], unique=False)

    # Использование промоакций
    op.create_table('promotion_usages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('promotion_id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('discount_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['promotion_id'], ['promotions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('promotion_id', 'order_id', 'client_id', name='uq_promotion_usages_promotion_order_client')
    )
    op.create_index(op.f('ix_promotion_usages_promotion_id'), 'promotion_usages', ['promotion_id'], unique=False)
    op.create_index(op.f('ix_promotion_usages_client_id'), 'promotion_usages', ['client_id'], unique=False)
    op.create_index(op.f('ix_promotion_usages_order_id'), 'promotion_usages', ['order_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_promotion_usages_order_id'), table_name='promotion_usages')
    op.drop_index(op.f('ix_promotion_usages_client_id'), table_name='promotion_usages')
    op.drop_index(op.f('ix_promotion_usages_promotion_id'), table_name='promotion_usages')
    op.drop_table('promotion_usages')
    op.drop_index('ix_promotions_active_dates', table_name='promotions')
    op.drop_table('promotions')
    op.drop_table('services')
