"""
Endpoints del protocolo de sincronizacion offline (pull / push).
"""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from offsync.application.dto.sync_dto import PullResponseDTO, PushResponseDTO
from offsync.application.use_cases.sync_use_cases import SyncUseCases
from offsync.api.v1.dependencies.use_case_deps import get_sync_use_cases


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.get(
    "",
    response_model=PullResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Obtener cambios desde el ultimo pull"
)
async def pull_changes(
    last_pulled_at: Optional[str] = Query(
        default=None,
        description="Epoch en milisegundos del ultimo pull. Vacio o invalido = desde el inicio."
    ),
    use_cases: SyncUseCases = Depends(get_sync_use_cases)
) -> PullResponseDTO:
    """
    Devuelve las filas modificadas despues de last_pulled_at.

    Args:
        last_pulled_at: Timestamp del ultimo pull (epoch ms)
        use_cases: Casos de uso de sync (inyectado)

    Returns:
        PullResponseDTO: Cambios por entidad y timestamp del servidor
    """
    return await use_cases.pull(last_pulled_at)


@router.post(
    "",
    response_model=PushResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Enviar cambios locales"
)
async def push_changes(
    changes: Any = Body(default=None),
    last_pulled_at: Optional[str] = Query(default=None),
    use_cases: SyncUseCases = Depends(get_sync_use_cases)
) -> PushResponseDTO:
    """
    Aplica los cambios del cliente: {<entidad>: {created, updated, deleted}}.

    Un created/updated que falla corta el push con su codigo de error;
    los items anteriores quedan confirmados.
    """
    return await use_cases.push(changes, last_pulled_at)
