"""init_orders

Revision ID: 20251112102603_init_orders
Revises:
Create Date: 2025-11-12 10:26:03

Crea sync_schema_versions y mh_off_orders, y registra la revision de la
tabla para que el servicio la use con el modelo ORM.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql


# revision identifiers, used by Alembic.
revision: str = '20251112102603_init_orders'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _precise_datetime():
    return sa.DateTime().with_variant(mysql.DATETIME(fsp=3), "mysql")


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('sync_schema_versions'):
        op.create_table('sync_schema_versions',
        sa.Column('table_name', sa.String(length=64), nullable=False),
        sa.Column('revision', sa.String(length=64), nullable=False),
        sa.Column('applied_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('table_name')
        )

    if not inspector.has_table('mh_off_orders'):
        op.create_table('mh_off_orders',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('location_id', sa.String(length=36), nullable=False),
        sa.Column('customer_id', sa.String(length=36), nullable=True),
        sa.Column('order_no', sa.String(length=15), nullable=False),
        sa.Column('order_type_id', sa.String(length=36), nullable=False),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('order_time', sa.Time(), nullable=False),
        sa.Column('ip_address', sa.String(length=40), nullable=False),
        sa.Column('user_agent', sa.String(length=256), nullable=False),
        sa.Column('updated_at', _precise_datetime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_mh_off_orders_updated_at'), 'mh_off_orders', ['updated_at'], unique=False)

    op.execute(sa.text("DELETE FROM sync_schema_versions WHERE table_name = 'mh_off_orders'"))
    op.execute(sa.text(
        "INSERT INTO sync_schema_versions (table_name, revision) "
        "VALUES ('mh_off_orders', '20251112102603_init_orders')"
    ))


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table('mh_off_orders'):
        indexes = [idx['name'] for idx in inspector.get_indexes('mh_off_orders')]
        if 'ix_mh_off_orders_updated_at' in indexes:
            op.drop_index(op.f('ix_mh_off_orders_updated_at'), table_name='mh_off_orders')
        op.drop_table('mh_off_orders')
    if inspector.has_table('sync_schema_versions'):
        op.drop_table('sync_schema_versions')
