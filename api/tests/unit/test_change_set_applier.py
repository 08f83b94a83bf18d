"""
Tests unitarios del aplicador de change-sets.

Cubre el camino con modelo ORM, el fallback por sentencias, las entidades
sin binding o sin tabla, la tolerancia de deletes y el corte ante el primer
created/updated que falla.
"""
from __future__ import annotations

import asyncio
from datetime import date, datetime, time, timezone
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy import text
from sqlalchemy.dialects import mysql, postgresql

from offsync.application.services.change_set_applier import ChangeSetApplier
from offsync.application.services.entity_registry import ORDERS, PRODUCTS
from offsync.domain.entities.change_set import ChangeSet, EntityKind
from offsync.infrastructure.database.models import OrderModel, ProductModel
from offsync.infrastructure.repositories.statement_record_repository import StatementRecordRepository
from offsync.infrastructure.repositories.sync_record_repository import SqlAlchemyRecordRepository
from offsync.shared.exceptions.domain import (
    FallbackNotImplementedException,
    MigrationPendingException,
    PersistenceTimeoutException,
    PushRejectedException,
    RecordNotFoundException,
)


def _applier(database, write_timeout=None) -> ChangeSetApplier:
    return ChangeSetApplier(database, tz=timezone.utc, write_timeout=write_timeout)


async def _get(database, model, record_id):
    async with database.session() as session:
        return await session.get(model, record_id)


@pytest.mark.asyncio
async def test_created_orders_are_stored(database, order_payload) -> None:
    result = await _applier(database).apply(ORDERS, ChangeSet(created=[order_payload()]))

    assert result.entity == EntityKind.ORDERS
    assert result.upserted == 1
    assert result.via_fallback is False

    order = await _get(database, OrderModel, "o-1")
    assert order.order_date == date(2023, 11, 14)
    assert order.order_time == time(9, 15, 0)
    assert order.updated_at == datetime(2023, 11, 14, 22, 13, 20)
    assert order.order_no == "A-0001"


@pytest.mark.asyncio
async def test_created_is_an_upsert(database, product_payload) -> None:
    applier = _applier(database)
    await applier.apply(PRODUCTS, ChangeSet(created=[product_payload(price="1")]))
    await applier.apply(PRODUCTS, ChangeSet(created=[product_payload(price="2.5")]))

    product = await _get(database, ProductModel, "p-1")
    assert product.price == Decimal("2.50")


@pytest.mark.asyncio
async def test_updated_overwrites_existing_row(database, product_payload) -> None:
    applier = _applier(database)
    await applier.apply(PRODUCTS, ChangeSet(created=[product_payload()]))

    result = await applier.apply(
        PRODUCTS, ChangeSet(updated=[product_payload(stock_quantity="8", is_active="false")])
    )

    assert result.updated == 1
    product = await _get(database, ProductModel, "p-1")
    assert product.stock_quantity == 8
    assert product.is_active is False


@pytest.mark.asyncio
async def test_updated_unknown_id_fails(database, product_payload) -> None:
    with pytest.raises(RecordNotFoundException) as exc_info:
        await _applier(database).apply(PRODUCTS, ChangeSet(updated=[product_payload("missing")]))

    assert exc_info.value.status_code == 404
    assert await _get(database, ProductModel, "missing") is None


@pytest.mark.asyncio
async def test_deletes_are_tolerant(database, product_payload) -> None:
    applier = _applier(database)
    await applier.apply(PRODUCTS, ChangeSet(created=[product_payload("p-1")]))

    result = await applier.apply(PRODUCTS, ChangeSet(deleted=["p-1", "never-existed", None]))

    assert result.deleted == 1
    assert result.delete_misses == 2
    assert await _get(database, ProductModel, "p-1") is None


@pytest.mark.asyncio
async def test_first_failing_create_stops_the_change_set(database, order_payload) -> None:
    broken = order_payload("o-2")
    del broken["location_id"]
    del broken["ip_address"]
    change_set = ChangeSet(created=[order_payload("o-1"), broken, order_payload("o-3")])

    with pytest.raises(PushRejectedException) as exc_info:
        await _applier(database).apply(ORDERS, change_set)

    assert exc_info.value.status_code == 422
    assert exc_info.value.details["id"] == "o-2"
    assert await _get(database, OrderModel, "o-1") is not None
    assert await _get(database, OrderModel, "o-2") is None
    assert await _get(database, OrderModel, "o-3") is None


@pytest.mark.asyncio
async def test_missing_table_is_migration_pending(bare_database, product_payload) -> None:
    with pytest.raises(MigrationPendingException) as exc_info:
        await _applier(bare_database).apply(PRODUCTS, ChangeSet(created=[product_payload()]))

    assert exc_info.value.status_code == 503
    assert exc_info.value.details["revision"] == "20251113071026_add_mh_products"


@pytest.mark.asyncio
async def test_unbound_orders_are_not_supported(legacy_orders_database, order_payload) -> None:
    with pytest.raises(FallbackNotImplementedException) as exc_info:
        await _applier(legacy_orders_database).apply(ORDERS, ChangeSet(created=[order_payload()]))

    assert exc_info.value.status_code == 501
    assert exc_info.value.message == "Sync por sentencias no implementado para la tabla: mh_off_orders"


@pytest.mark.asyncio
async def test_unbound_products_use_statement_fallback(legacy_products_database, product_payload) -> None:
    applier = _applier(legacy_products_database)

    first = await applier.apply(PRODUCTS, ChangeSet(created=[product_payload(price="3.333")]))
    second = await applier.apply(
        PRODUCTS,
        ChangeSet(
            created=[product_payload("p-2", product_name="Te verde")],
            updated=[product_payload(price="4", stock_quantity=-1)],
        ),
    )

    assert first.via_fallback is True
    assert (second.upserted, second.updated) == (1, 1)

    async with legacy_products_database.engine.connect() as conn:
        rows = (
            await conn.execute(
                text("SELECT id, product_name, price, stock_quantity FROM mh_products ORDER BY id")
            )
        ).all()

    assert [(row.id, row.product_name) for row in rows] == [("p-1", "Cafe americano"), ("p-2", "Te verde")]
    assert Decimal(str(rows[0].price)) == Decimal("4")
    assert rows[0].stock_quantity == 0


@pytest.mark.asyncio
async def test_statement_fallback_deletes_are_tolerant(legacy_products_database, product_payload) -> None:
    applier = _applier(legacy_products_database)
    await applier.apply(PRODUCTS, ChangeSet(created=[product_payload("p-1")]))

    result = await applier.apply(PRODUCTS, ChangeSet(deleted=["p-1", "ghost"]))

    assert (result.deleted, result.delete_misses) == (1, 1)


@pytest.mark.asyncio
async def test_slow_write_hits_the_deadline(database, product_payload) -> None:
    async def slow_upsert(self, record_id, values):
        await asyncio.sleep(5)

    with patch.object(SqlAlchemyRecordRepository, "upsert", slow_upsert):
        with pytest.raises(PersistenceTimeoutException) as exc_info:
            await _applier(database, write_timeout=0.5).apply(
                PRODUCTS, ChangeSet(created=[product_payload()])
            )

    assert exc_info.value.status_code == 504
    assert await _get(database, ProductModel, "p-1") is None


@pytest.mark.parametrize(
    "dialect, expected_tail",
    [
        (mysql.dialect(), "ON DUPLICATE KEY UPDATE price = VALUES(price)"),
        (postgresql.dialect(), "ON CONFLICT (id) DO UPDATE SET price = excluded.price"),
    ],
)
def test_upsert_statement_per_dialect(dialect, expected_tail) -> None:
    repository = StatementRecordRepository(
        None, ProductModel.__table__, frozenset({"id", "price"}), dialect, "mh_products"
    )
    sql = str(repository.build_upsert_statement(["id", "price"]))

    assert sql.startswith("INSERT INTO mh_products (id, price) VALUES (:id, :price)")
    assert sql.endswith(expected_tail)


def _legacy_product_repository(session, database) -> StatementRecordRepository:
    live = frozenset(ProductModel.__table__.columns.keys()) - {"description"}
    return StatementRecordRepository(
        session, ProductModel.__table__, live, database.engine.dialect, "mh_products"
    )


@pytest.mark.asyncio
async def test_statement_update_by_id_sets_given_columns(legacy_products_database, product_payload) -> None:
    await _applier(legacy_products_database).apply(PRODUCTS, ChangeSet(created=[product_payload()]))

    async with legacy_products_database.session() as session:
        repository = _legacy_product_repository(session, legacy_products_database)
        row = await repository.update_by_id(
            "p-1",
            {"id": "otro", "product_name": "Cafe con leche", "price": Decimal("12.00"), "description": "x"},
        )
        await session.commit()

    assert row == {"product_name": "Cafe con leche", "price": Decimal("12.00"), "id": "p-1"}

    async with legacy_products_database.engine.connect() as conn:
        stored = (
            await conn.execute(
                text("SELECT id, product_name, price, stock_quantity FROM mh_products")
            )
        ).all()

    assert len(stored) == 1
    assert (stored[0].id, stored[0].product_name) == ("p-1", "Cafe con leche")
    assert Decimal(str(stored[0].price)) == Decimal("12.00")
    assert stored[0].stock_quantity == 3


@pytest.mark.asyncio
async def test_statement_update_by_id_unknown_id_fails(legacy_products_database) -> None:
    async with legacy_products_database.session() as session:
        repository = _legacy_product_repository(session, legacy_products_database)
        with pytest.raises(RecordNotFoundException):
            await repository.update_by_id("ghost", {"product_name": "Nadie"})
