"""Capital pools, positions, sales, ledger and snapshots

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create capital_pools table
    op.create_table('capital_pools',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('initial_capital', sa.Float(), nullable=False),
        sa.Column('total_capital', sa.Float(), nullable=False),
        sa.Column('available_capital', sa.Float(), nullable=False),
        sa.Column('distributed_capital', sa.Float(), nullable=False),
        sa.Column('total_profit_loss', sa.Float(), nullable=False),
        sa.Column('total_profit_loss_percent', sa.Float(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_capital_pools_id'), 'capital_pools', ['id'], unique=False)
    op.create_index(op.f('ix_capital_pools_name'), 'capital_pools', ['name'], unique=True)

    # Create positions table
    op.create_table('positions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pool_id', sa.Integer(), nullable=False),
        sa.Column('instrument_id', sa.String(length=64), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('percentage', sa.Float(), nullable=False),
        sa.Column('allocated_amount', sa.Float(), nullable=False),
        sa.Column('shares', sa.Float(), nullable=False),
        sa.Column('acquired_shares', sa.Float(), nullable=False),
        sa.Column('entry_price', sa.Float(), nullable=False),
        sa.Column('current_price', sa.Float(), nullable=False),
        sa.Column('unrealized_pl', sa.Float(), nullable=True),
        sa.Column('unrealized_pl_percent', sa.Float(), nullable=True),
        sa.Column('realized_pl', sa.Float(), nullable=True),
        sa.Column('sold_shares', sa.Float(), nullable=True),
        sa.Column('status', sa.String(length=10), nullable=False),
        sa.Column('opened_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['pool_id'], ['capital_pools.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_positions_id'), 'positions', ['id'], unique=False)
    op.create_index(op.f('ix_positions_pool_id'), 'positions', ['pool_id'], unique=False)
    op.create_index(op.f('ix_positions_instrument_id'), 'positions', ['instrument_id'], unique=False)
    op.create_index(op.f('ix_positions_symbol'), 'positions', ['symbol'], unique=False)
    op.create_index(
        'uq_positions_active_instrument', 'positions', ['pool_id', 'instrument_id'], unique=True,
        sqlite_where=sa.text("status = 'ACTIVE'"),
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    # Create sale_records table
    op.create_table('sale_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('position_id', sa.Integer(), nullable=False),
        sa.Column('percentage_of_original', sa.Float(), nullable=False),
        sa.Column('shares_sold', sa.Float(), nullable=False),
        sa.Column('sell_price', sa.Float(), nullable=False),
        sa.Column('capital_released', sa.Float(), nullable=False),
        sa.Column('realized_profit', sa.Float(), nullable=False),
        sa.Column('executed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('executed_by', sa.String(length=100), nullable=True),
        sa.Column('is_complete_sale', sa.Boolean(), nullable=False),
        sa.Column('discarded', sa.Boolean(), nullable=False),
        sa.Column('discarded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('discard_reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['position_id'], ['positions.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sale_records_id'), 'sale_records', ['id'], unique=False)
    op.create_index(op.f('ix_sale_records_position_id'), 'sale_records', ['position_id'], unique=False)

    # Create ledger_entries table
    op.create_table('ledger_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pool_id', sa.Integer(), nullable=False),
        sa.Column('instrument_id', sa.String(length=64), nullable=False),
        sa.Column('instrument_symbol', sa.String(length=20), nullable=False),
        sa.Column('operation_type', sa.String(length=4), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('running_balance', sa.Float(), nullable=False),
        sa.Column('portfolio_percentage', sa.Float(), nullable=True),
        sa.Column('is_partial_sale', sa.Boolean(), nullable=True),
        sa.Column('partial_sale_percentage', sa.Float(), nullable=True),
        sa.Column('realized_profit', sa.Float(), nullable=True),
        sa.Column('executed_by', sa.String(length=100), nullable=True),
        sa.Column('execution_method', sa.String(length=10), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['pool_id'], ['capital_pools.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ledger_entries_id'), 'ledger_entries', ['id'], unique=False)
    op.create_index(op.f('ix_ledger_entries_pool_id'), 'ledger_entries', ['pool_id'], unique=False)
    op.create_index(op.f('ix_ledger_entries_instrument_id'), 'ledger_entries', ['instrument_id'], unique=False)
    op.create_index(op.f('ix_ledger_entries_instrument_symbol'), 'ledger_entries', ['instrument_symbol'], unique=False)
    op.create_index(op.f('ix_ledger_entries_timestamp'), 'ledger_entries', ['timestamp'], unique=False)

    # Create pool_snapshots table
    op.create_table('pool_snapshots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pool_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('total_capital', sa.Float(), nullable=False),
        sa.Column('available_capital', sa.Float(), nullable=False),
        sa.Column('distributed_capital', sa.Float(), nullable=False),
        sa.Column('total_profit_loss', sa.Float(), nullable=True),
        sa.Column('total_profit_loss_percent', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['pool_id'], ['capital_pools.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('pool_id', 'date', name='uq_pool_snapshots_pool_date')
    )
    op.create_index(op.f('ix_pool_snapshots_id'), 'pool_snapshots', ['id'], unique=False)
    op.create_index(op.f('ix_pool_snapshots_pool_id'), 'pool_snapshots', ['pool_id'], unique=False)
    op.create_index(op.f('ix_pool_snapshots_date'), 'pool_snapshots', ['date'], unique=False)


def downgrade() -> None:
    op.drop_table('pool_snapshots')
    op.drop_table('ledger_entries')
    op.drop_table('sale_records')
    op.drop_index('uq_positions_active_instrument', table_name='positions')
    op.drop_table('positions')
    op.drop_table('capital_pools')
