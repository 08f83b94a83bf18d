"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Depends, Request

from offsync.application.use_cases.sync_use_cases import SyncUseCases
from offsync.core.config import settings
from offsync.infrastructure.database.session import Database
from offsync.shared.utils.datetime_utils import get_zone


def get_database(request: Request) -> Database:
    """
    Dependencia para obtener el handle de base de datos.

    El handle se crea en el lifespan de la aplicacion y vive en app.state.
    """
    return request.app.state.database


def get_sync_use_cases(
    database: Database = Depends(get_database)
) -> SyncUseCases:
    """
    Dependencia para obtener los casos de uso de sincronizacion.

    Args:
        database: Handle de base de datos

    Returns:
        SyncUseCases: Instancia de casos de uso de sync
    """
    return SyncUseCases(
        database,
        tz=get_zone(settings.SYNC_TIMEZONE),
        query_timeout=settings.SYNC_QUERY_TIMEOUT_SECONDS,
        write_timeout=settings.SYNC_WRITE_TIMEOUT_SECONDS,
    )
