"""
DTOs del protocolo de sincronizacion (pull/push).
"""
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator


class EntityChangesDTO(BaseModel):
    """
    Cambios de un tipo de entidad.

    En el push, created/updated traen registros crudos y deleted ids.
    En el pull, created trae las filas modificadas; updated y deleted
    siempre van vacios (ver politica en SyncUseCases.pull).
    """

    created: List[Dict[str, Any]] = Field(default_factory=list)
    updated: List[Dict[str, Any]] = Field(default_factory=list)
    deleted: List[Any] = Field(default_factory=list)

    @field_validator("created", "updated", "deleted", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    class Config:
        """Configuración de Pydantic."""
        extra = "ignore"


class PullResponseDTO(BaseModel):
    """Respuesta del pull: cambios por entidad + timestamp para el proximo pull."""

    changes: Dict[str, EntityChangesDTO]
    timestamp: int = Field(..., description="Epoch ms del servidor al completar el pull")


class PushResponseDTO(BaseModel):
    """Acuse del push."""

    success: bool = True
