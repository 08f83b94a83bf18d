"""
Bootstrap e inspeccion del esquema de las tablas sincronizables.

- Al iniciar, garantiza que existan sync_schema_versions y las tablas de
  cada entidad. Una tabla creada aqui registra su revision; una tabla que ya
  existia solo la registra si tiene todas las columnas del modelo.
- Por request, resuelve el binding de cada entidad:
    BOUND   -> la tabla existe y su revision registrada cubre la del modelo
    UNBOUND -> la tabla existe pero la revision no esta registrada
    MISSING -> la tabla no existe
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Type

from loguru import logger
from sqlalchemy import delete, insert, inspect, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from offsync.infrastructure.database.models import SchemaVersionModel
from offsync.infrastructure.database.session import Base


class BindingState(str, Enum):
    """Estado del binding de modelo de una entidad."""
    BOUND = "bound"
    UNBOUND = "unbound"
    MISSING = "missing"


@dataclass(frozen=True)
class SchemaBinding:
    """Resultado de inspeccionar la tabla de una entidad."""

    table_name: str
    state: BindingState
    live_columns: FrozenSet[str]
    recorded_revision: Optional[str] = None


def _is_already_exists(exc: Exception) -> bool:
    message = str(exc).lower()
    return "already exists" in message or "1050" in message


def _recorded_revision(conn: Connection, table_name: str) -> Optional[str]:
    if not inspect(conn).has_table(SchemaVersionModel.__tablename__):
        return None
    return conn.execute(
        select(SchemaVersionModel.revision).where(SchemaVersionModel.table_name == table_name)
    ).scalar_one_or_none()


def _record_revision(conn: Connection, table_name: str, revision: str) -> None:
    conn.execute(delete(SchemaVersionModel).where(SchemaVersionModel.table_name == table_name))
    conn.execute(insert(SchemaVersionModel).values(table_name=table_name, revision=revision))


def _live_columns(conn: Connection, table_name: str) -> Optional[FrozenSet[str]]:
    inspector = inspect(conn)
    if not inspector.has_table(table_name):
        return None
    return frozenset(column["name"] for column in inspector.get_columns(table_name))


def _inspect_binding(conn: Connection, model: Type[Base]) -> SchemaBinding:
    table_name = model.__tablename__
    live = _live_columns(conn, table_name)
    if live is None:
        return SchemaBinding(table_name=table_name, state=BindingState.MISSING, live_columns=frozenset())

    recorded = _recorded_revision(conn, table_name)
    # Las revisiones empiezan con timestamp: el orden lexicografico es cronologico.
    bound = recorded is not None and recorded >= model.__schema_revision__
    return SchemaBinding(
        table_name=table_name,
        state=BindingState.BOUND if bound else BindingState.UNBOUND,
        live_columns=live,
        recorded_revision=recorded,
    )


async def resolve_binding(session: AsyncSession, model: Type[Base]) -> SchemaBinding:
    """
    Inspecciona la tabla del modelo usando la conexion de la sesion.

    Args:
        session: Sesion activa
        model: Modelo ORM de la entidad

    Returns:
        SchemaBinding con el estado y las columnas reales de la tabla
    """
    conn = await session.connection()
    return await conn.run_sync(_inspect_binding, model)


def _ensure_table(conn: Connection, model: Type[Base]) -> BindingState:
    table = model.__table__
    revision = model.__schema_revision__
    live = _live_columns(conn, table.name)

    if live is None:
        logger.warning(f"Tabla {table.name} no existe. Creandola...")
        table.create(conn, checkfirst=True)
        _record_revision(conn, table.name, revision)
        logger.info(f"Tabla {table.name} creada (revision {revision})")
        return BindingState.BOUND

    missing = sorted(set(table.columns.keys()) - live)
    if missing:
        logger.warning(
            f"Tabla {table.name} existe pero le faltan columnas {missing}: "
            f"migracion {revision} pendiente"
        )
        return BindingState.UNBOUND

    recorded = _recorded_revision(conn, table.name)
    if recorded is None or recorded < revision:
        _record_revision(conn, table.name, revision)
    logger.info(f"Tabla {table.name} existe")
    return BindingState.BOUND


async def ensure_sync_schema(engine: AsyncEngine, models: Iterable[Type[Base]]) -> Dict[str, BindingState]:
    """
    Garantiza que existan las tablas de sync.

    "Ya existe" se tolera como exito (otro proceso pudo crearla en paralelo).
    Cada tabla se procesa en su propia transaccion.

    Returns:
        Dict tabla -> estado del binding tras el bootstrap
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(SchemaVersionModel.__table__.create, checkfirst=True)
    except (OperationalError, ProgrammingError) as exc:
        if not _is_already_exists(exc):
            raise
        logger.info(f"Tabla {SchemaVersionModel.__tablename__} ya existia")

    states: Dict[str, BindingState] = {}
    for model in models:
        try:
            async with engine.begin() as conn:
                states[model.__tablename__] = await conn.run_sync(_ensure_table, model)
        except (OperationalError, ProgrammingError) as exc:
            if not _is_already_exists(exc):
                logger.error(f"Error inesperado verificando la tabla {model.__tablename__}: {exc}")
                raise
            logger.info(f"Tabla {model.__tablename__} creada por otro proceso")
            async with engine.begin() as conn:
                states[model.__tablename__] = await conn.run_sync(_ensure_table, model)
    return states
