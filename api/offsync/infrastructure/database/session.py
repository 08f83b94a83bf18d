"""
Gestión del handle de base de datos.

El engine y la session factory se crean al iniciar la aplicacion (lifespan),
se guardan en app.state y se inyectan en los casos de uso; se liberan al
cerrar. No hay engine global a nivel de modulo.
"""
from typing import Any, Dict

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker
)
from sqlalchemy.orm import declarative_base

from offsync.shared.utils.wire import to_wire_value


# Base para modelos de SQLAlchemy
Base = declarative_base()


def _create_engine_args(database_url: str, debug: bool, pool_size: int, max_overflow: int) -> dict:
    """
    Construye los argumentos del engine segun el tipo de base de datos.
    PostgreSQL y MySQL usan pool de conexiones, SQLite no lo soporta.
    """
    args = {
        "echo": debug,
        "future": True,
    }

    if "postgresql" in database_url or "mysql" in database_url:
        args.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_pre_ping": True,  # Verifica conexion antes de usar
        })

    return args


class Database:
    """
    Handle de la base de datos: engine + session factory.

    Uso:
        database = Database.from_settings(settings)
        await database.verify_connection()
        async with database.session() as session:
            ...
        await database.dispose()
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )

    @classmethod
    def from_url(
        cls,
        database_url: str,
        *,
        debug: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ) -> "Database":
        engine = create_async_engine(
            database_url,
            **_create_engine_args(database_url, debug, pool_size, max_overflow)
        )
        return cls(engine)

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls.from_url(
            settings.effective_database_url,
            debug=settings.DEBUG,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def session(self) -> AsyncSession:
        """Nueva sesion; usar como `async with database.session() as s`."""
        return self.session_factory()

    async def verify_connection(self) -> Dict[str, Any]:
        """
        Ejecuta un SELECT 1 y registra a que base de datos se conecto.

        Returns:
            Dict con el resultado serializado (enteros grandes como string)
        """
        queries = {
            "mysql": "SELECT 1 AS connected, DATABASE() AS db_name, USER() AS db_user",
            "postgresql": "SELECT 1 AS connected, current_database() AS db_name, current_user AS db_user",
        }
        sql = queries.get(self.dialect_name, "SELECT 1 AS connected")
        async with self.engine.connect() as conn:
            result = await conn.execute(text(sql))
            row = dict(result.mappings().one())
        info = to_wire_value({"dialect": self.dialect_name, **row})
        logger.info(f"Conexion a base de datos verificada: {info}")
        return info

    async def dispose(self) -> None:
        """Cierra las conexiones de la base de datos."""
        await self.engine.dispose()

