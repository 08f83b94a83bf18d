"""
DTOs (Data Transfer Objects) de la aplicación.
"""
from offsync.application.dto.sync_dto import (
    EntityChangesDTO,
    PullResponseDTO,
    PushResponseDTO,
)

__all__ = [
    "EntityChangesDTO",
    "PullResponseDTO",
    "PushResponseDTO",
]
