"""
Script para inicializar la base de datos.

Crea las tablas sincronizables que falten y registra su revision de
esquema, igual que el arranque de la aplicacion.
"""
import asyncio
from loguru import logger

from offsync.application.services.entity_registry import SYNC_ENTITIES
from offsync.core.config import settings
from offsync.infrastructure.database.schema import ensure_sync_schema
from offsync.infrastructure.database.session import Database


async def main():
    """Función principal para inicializar la base de datos."""
    logger.info("Inicializando base de datos...")

    database = Database.from_settings(settings)
    try:
        await database.verify_connection()
        bindings = await ensure_sync_schema(
            database.engine, [definition.model for definition in SYNC_ENTITIES]
        )
        for table_name, state in bindings.items():
            logger.info(f"  {table_name}: {state.value}")
        logger.success("Base de datos inicializada correctamente")
    except Exception as e:
        logger.error(f"Error al inicializar base de datos: {e}")
        raise
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
