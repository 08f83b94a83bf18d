"""
Tests unitarios del bootstrap de esquema y la resolucion de binding.

Verifica:
- Una base vacia queda con las tablas creadas y sus revisiones registradas.
- Una tabla ajena con columnas faltantes queda sin binding (migracion pendiente).
- Una tabla inexistente se reporta como MISSING.
"""
from __future__ import annotations

import pytest
from sqlalchemy import select, text

from offsync.application.services.entity_registry import SYNC_ENTITIES
from offsync.infrastructure.database.models import OrderModel, ProductModel, SchemaVersionModel
from offsync.infrastructure.database.schema import BindingState, ensure_sync_schema, resolve_binding

MODELS = [definition.model for definition in SYNC_ENTITIES]


async def _recorded_revisions(database):
    async with database.session() as session:
        result = await session.execute(select(SchemaVersionModel.table_name, SchemaVersionModel.revision))
        return dict(result.all())


@pytest.mark.asyncio
async def test_bootstrap_creates_tables_and_records_revisions(bare_database) -> None:
    states = await ensure_sync_schema(bare_database.engine, MODELS)

    assert states == {"mh_off_orders": BindingState.BOUND, "mh_products": BindingState.BOUND}
    assert await _recorded_revisions(bare_database) == {
        "mh_off_orders": "20251112102603_init_orders",
        "mh_products": "20251113071026_add_mh_products",
    }


@pytest.mark.asyncio
async def test_bootstrap_is_idempotent(database) -> None:
    states = await ensure_sync_schema(database.engine, MODELS)

    assert set(states.values()) == {BindingState.BOUND}
    assert len(await _recorded_revisions(database)) == 2


@pytest.mark.asyncio
async def test_bootstrap_leaves_incomplete_table_unbound(legacy_products_database) -> None:
    states = await ensure_sync_schema(legacy_products_database.engine, MODELS)

    assert states["mh_products"] == BindingState.UNBOUND
    assert states["mh_off_orders"] == BindingState.BOUND
    assert "mh_products" not in await _recorded_revisions(legacy_products_database)


@pytest.mark.asyncio
async def test_resolve_binding_states(legacy_products_database) -> None:
    async with legacy_products_database.session() as session:
        products = await resolve_binding(session, ProductModel)
        orders = await resolve_binding(session, OrderModel)

    assert products.state == BindingState.UNBOUND
    assert products.recorded_revision is None
    assert "description" not in products.live_columns
    assert "product_code" in products.live_columns

    assert orders.state == BindingState.MISSING
    assert orders.live_columns == frozenset()


@pytest.mark.asyncio
async def test_resolve_binding_bound_after_bootstrap(database) -> None:
    async with database.session() as session:
        binding = await resolve_binding(session, ProductModel)

    assert binding.state == BindingState.BOUND
    assert binding.recorded_revision == "20251113071026_add_mh_products"
    assert binding.live_columns == frozenset(ProductModel.__table__.columns.keys())


@pytest.mark.asyncio
async def test_bootstrapped_products_table_has_column_defaults(database) -> None:
    async with database.session() as session:
        await session.execute(
            text(
                "INSERT INTO mh_products (id, product_code, product_name, price, updated_at) "
                "VALUES ('p-raw', 'RAW-1', 'Insertado a mano', 1, '2024-01-01 00:00:00')"
            )
        )
        await session.commit()
        row = (
            await session.execute(
                text("SELECT stock_quantity, is_active FROM mh_products WHERE id = 'p-raw'")
            )
        ).one()

    assert row.stock_quantity == 0
    assert bool(row.is_active) is True
