"""add_mh_products

Revision ID: 20251113071026_add_mh_products
Revises: 20251112102603_init_orders
Create Date: 2025-11-13 07:10:26

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql


# revision identifiers, used by Alembic.
revision: str = '20251113071026_add_mh_products'
down_revision: Union[str, Sequence[str], None] = '20251112102603_init_orders'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('mh_products'):
        op.create_table('mh_products',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('product_code', sa.String(length=50), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('updated_at', sa.DateTime().with_variant(mysql.DATETIME(fsp=3), "mysql"), nullable=False),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_mh_products_updated_at'), 'mh_products', ['updated_at'], unique=False)

    op.execute(sa.text("DELETE FROM sync_schema_versions WHERE table_name = 'mh_products'"))
    op.execute(sa.text(
        "INSERT INTO sync_schema_versions (table_name, revision) "
        "VALUES ('mh_products', '20251113071026_add_mh_products')"
    ))


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table('mh_products'):
        indexes = [idx['name'] for idx in inspector.get_indexes('mh_products')]
        if 'ix_mh_products_updated_at' in indexes:
            op.drop_index(op.f('ix_mh_products_updated_at'), table_name='mh_products')
        op.drop_table('mh_products')
    op.execute(sa.text("DELETE FROM sync_schema_versions WHERE table_name = 'mh_products'"))
