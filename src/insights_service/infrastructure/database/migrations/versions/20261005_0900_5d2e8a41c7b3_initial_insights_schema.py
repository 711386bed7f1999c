"""Initial insights schema

Revision ID: 5d2e8a41c7b3
Revises:
Create Date: 2026-10-05 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5d2e8a41c7b3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create search_queries table
    op.create_table('search_queries',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('query', sa.Text(), nullable=False),
    sa.Column('original_query', sa.Text(), nullable=True),
    sa.Column('result_count', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('category', sa.String(length=255), nullable=True),
    sa.Column('session_id', sa.String(length=255), nullable=True),
    sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='insights'
    )
    op.create_index('ix_search_queries_timestamp', 'search_queries', ['timestamp'], unique=False, schema='insights')

    # Create zero_result_searches table
    op.create_table('zero_result_searches',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('query', sa.Text(), nullable=False),
    sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='insights'
    )
    op.create_index('ix_zero_result_searches_timestamp', 'zero_result_searches', ['timestamp'], unique=False, schema='insights')

    # Create search_conversions table
    op.create_table('search_conversions',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('search_query', sa.Text(), nullable=False),
    sa.Column('conversion_type', sa.Enum('add_to_cart', 'checkout', name='conversiontype', schema='insights'), nullable=False),
    sa.Column('order_total', sa.Float(), nullable=True),
    sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='insights'
    )
    op.create_index('ix_search_conversions_timestamp', 'search_conversions', ['timestamp'], unique=False, schema='insights')

    # Create inventory_items table
    op.create_table('inventory_items',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('external_product_id', sa.String(length=255), nullable=False),
    sa.Column('name', sa.String(length=500), nullable=False),
    sa.Column('stock_level', sa.Integer(), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='insights'
    )
    op.create_index(op.f('ix_insights_inventory_items_external_product_id'), 'inventory_items', ['external_product_id'], unique=True, schema='insights')

    # Create digest_schedules table
    op.create_table('digest_schedules',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('frequency', sa.Enum('daily', 'weekly', 'monthly', name='digestfrequency', schema='insights'), nullable=False),
    sa.Column('recipients', sa.JSON(), nullable=True),
    sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.Column('payload_days', sa.Integer(), nullable=False, server_default='30'),
    sa.Column('next_scheduled_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('last_sent_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_by', sa.String(length=255), nullable=False, server_default='system'),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='insights'
    )
    op.create_index('ix_digest_schedules_due', 'digest_schedules', ['enabled', 'next_scheduled_at'], unique=False, schema='insights')

    # Create audit_events table
    op.create_table('audit_events',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('event_type', sa.String(length=100), nullable=False),
    sa.Column('performed_by', sa.String(length=255), nullable=True),
    sa.Column('details', postgresql.JSONB(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    schema='insights'
    )
    op.create_index(op.f('ix_insights_audit_events_event_type'), 'audit_events', ['event_type'], unique=False, schema='insights')


def downgrade() -> None:
    op.drop_index(op.f('ix_insights_audit_events_event_type'), table_name='audit_events', schema='insights')
    op.drop_table('audit_events', schema='insights')
    op.drop_index('ix_digest_schedules_due', table_name='digest_schedules', schema='insights')
    op.drop_table('digest_schedules', schema='insights')
    op.drop_index(op.f('ix_insights_inventory_items_external_product_id'), table_name='inventory_items', schema='insights')
    op.drop_table('inventory_items', schema='insights')
    op.drop_index('ix_search_conversions_timestamp', table_name='search_conversions', schema='insights')
    op.drop_table('search_conversions', schema='insights')
    op.drop_index('ix_zero_result_searches_timestamp', table_name='zero_result_searches', schema='insights')
    op.drop_table('zero_result_searches', schema='insights')
    op.drop_index('ix_search_queries_timestamp', table_name='search_queries', schema='insights')
    op.drop_table('search_queries', schema='insights')
    sa.Enum(name='digestfrequency', schema='insights').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='conversiontype', schema='insights').drop(op.get_bind(), checkfirst=True)
