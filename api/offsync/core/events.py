"""
Ciclo de vida de la aplicacion (inicio y cierre).
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from loguru import logger

from offsync.application.services.entity_registry import SYNC_ENTITIES
from offsync.core.config import settings
from offsync.infrastructure.database.schema import ensure_sync_schema
from offsync.infrastructure.database.session import Database


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Inicializa los recursos al inicio y los libera al cerrar.

    El handle de base de datos queda en app.state.database; si ya hay uno
    (por ejemplo en tests) se reutiliza y no se libera aqui.
    """
    logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Entorno: {settings.ENVIRONMENT}")

    # Configurar logging adicional
    sink_id = logger.add(
        settings.LOG_FILE,
        rotation="500 MB",
        retention="10 days",
        level=settings.LOG_LEVEL
    )

    database = getattr(app.state, "database", None)
    owns_database = database is None
    try:
        if owns_database:
            database = Database.from_settings(settings)
        await database.verify_connection()

        # Crea las tablas que falten y registra su revision
        bindings = await ensure_sync_schema(
            database.engine, [definition.model for definition in SYNC_ENTITIES]
        )
        logger.info(f"Esquema de sync: {bindings}")
    except Exception as e:
        logger.error(f"Error durante startup: {e}")
        logger.exception("Detalle del error:")
        if owns_database and database is not None:
            await database.dispose()
        logger.remove(sink_id)
        raise

    app.state.database = database
    logger.success("Aplicacion iniciada correctamente")
    _print_available_urls()

    try:
        yield
    finally:
        logger.info("Cerrando aplicacion...")
        if owns_database:
            await database.dispose()
            app.state.database = None
            logger.info("Conexiones de base de datos cerradas")
        logger.success("Aplicacion cerrada correctamente")
        logger.remove(sink_id)


def _print_available_urls() -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    # Determinar la URL base de acceso
    if settings.HOST == "0.0.0.0":
        access_host = "localhost"
    else:
        access_host = settings.HOST

    base_url = f"http://{access_host}:{settings.PORT}{settings.API_PREFIX}"

    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Sync:        {base_url}/sync</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:  http://{access_host}:{settings.PORT}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:      http://{access_host}:{settings.PORT}/health</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
