"""
Configuración de fixtures para pytest.
"""
import os
import tempfile
from pathlib import Path
from typing import AsyncGenerator

# Settings se leen al importar offsync.core.config: fijar antes del import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FILE", str(Path(tempfile.gettempdir()) / "offsync-tests.log"))
os.environ.setdefault("SYNC_TIMEZONE", "UTC")

import pytest
import pytest_asyncio
from sqlalchemy import text

from offsync.application.services.entity_registry import SYNC_ENTITIES
from offsync.infrastructure.database.schema import ensure_sync_schema
from offsync.infrastructure.database.session import Database


# Tabla de productos creada "a mano": sin description y sin revision registrada
LEGACY_PRODUCTS_DDL = """
CREATE TABLE mh_products (
    id VARCHAR(36) PRIMARY KEY,
    product_code VARCHAR(50) NOT NULL,
    product_name VARCHAR(255) NOT NULL,
    price NUMERIC(10, 2) NOT NULL,
    stock_quantity INTEGER NOT NULL,
    is_active BOOLEAN NOT NULL,
    updated_at DATETIME NOT NULL
)
"""

# Tabla de ordenes anterior a updated_at, sin revision registrada
LEGACY_ORDERS_DDL = """
CREATE TABLE mh_off_orders (
    id VARCHAR(36) PRIMARY KEY,
    location_id VARCHAR(36) NOT NULL,
    customer_id VARCHAR(36),
    order_no VARCHAR(15) NOT NULL,
    order_type_id VARCHAR(36) NOT NULL,
    order_date DATE NOT NULL,
    order_time TIME NOT NULL,
    ip_address VARCHAR(40) NOT NULL,
    user_agent VARCHAR(256) NOT NULL
)
"""


@pytest_asyncio.fixture(scope="function")
async def bare_database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """
    Base de datos SQLite vacia (sin tablas) en un archivo temporal.

    Se usa archivo y no :memory: porque el sync abre una sesion por entidad
    y cada conexion a :memory: veria una base distinta.
    """
    database = Database.from_url(f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}")
    yield database
    await database.dispose()


@pytest_asyncio.fixture(scope="function")
async def database(bare_database: Database) -> AsyncGenerator[Database, None]:
    """Base de datos con el esquema de sync creado y registrado."""
    await ensure_sync_schema(
        bare_database.engine, [definition.model for definition in SYNC_ENTITIES]
    )
    yield bare_database


async def _run_ddl(database: Database, *statements: str) -> None:
    async with database.engine.begin() as conn:
        for statement in statements:
            await conn.execute(text(statement))


@pytest_asyncio.fixture(scope="function")
async def legacy_products_database(bare_database: Database) -> AsyncGenerator[Database, None]:
    """Base con mh_products creada fuera del servicio (sin description ni revision)."""
    await _run_ddl(bare_database, LEGACY_PRODUCTS_DDL)
    yield bare_database


@pytest_asyncio.fixture(scope="function")
async def legacy_orders_database(bare_database: Database) -> AsyncGenerator[Database, None]:
    """Base con mh_off_orders creada fuera del servicio (sin updated_at ni revision)."""
    await _run_ddl(bare_database, LEGACY_ORDERS_DDL)
    yield bare_database


@pytest.fixture
def order_payload():
    """Factory de ordenes crudas como las envia el cliente."""
    def _make(order_id: str = "o-1", **overrides):
        record = {
            "id": order_id,
            "location_id": "loc-1",
            "customer_id": None,
            "order_no": "A-0001",
            "order_type_id": "type-1",
            "order_date": 1700000000000,
            "order_time": "09:15:00",
            "ip_address": "10.0.0.1",
            "user_agent": "pos-terminal/2.1",
            "updated_at": 1700000000000,
            "_status": "created",
            "_changed": "",
        }
        record.update(overrides)
        return record
    return _make


@pytest.fixture
def product_payload():
    """Factory de productos crudos como los envia el cliente."""
    def _make(product_id: str = "p-1", **overrides):
        record = {
            "id": product_id,
            "product_code": "SKU-1",
            "product_name": "Cafe americano",
            "description": "Taza de 12 oz",
            "price": "10.5",
            "stock_quantity": 3,
            "is_active": True,
            "updated_at": 1700000000000,
            "_status": "created",
        }
        record.update(overrides)
        return record
    return _make
