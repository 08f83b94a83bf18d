"""
Excepciones relacionadas con la lógica de sincronización.
"""
from typing import Any, Optional

from offsync.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None, status_code: int = 400):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details
        )


class ValidationException(DomainException):
    """Excepción para errores de validación del change-set."""

    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details
        )


class RecordNotFoundException(DomainException):
    """Excepcion cuando un update/delete apunta a un id inexistente."""

    def __init__(self, entity_name: str, record_id: Any):
        super().__init__(
            message=f"{entity_name} con ID {record_id} no encontrado",
            error_code="RECORD_NOT_FOUND",
            details={"entity": entity_name, "id": str(record_id)},
            status_code=404,
        )


class PushRejectedException(DomainException):
    """
    La capa de persistencia rechazo un registro creado/actualizado.

    Los registros previos del mismo push quedan confirmados: no hay rollback
    compensatorio.
    """

    def __init__(self, entity_name: str, record_id: Any, operation: str, reason: str):
        super().__init__(
            message=f"No se pudo aplicar {operation} de {entity_name} con ID {record_id}: {reason}",
            error_code="PUSH_REJECTED",
            details={
                "entity": entity_name,
                "id": None if record_id is None else str(record_id),
                "operation": operation,
            },
            status_code=422,
        )


class PersistenceTimeoutException(DomainException):
    """Una llamada a la base de datos excedio su deadline."""

    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(
            message=f"La operacion '{operation}' excedio el limite de {timeout_seconds}s",
            error_code="PERSISTENCE_TIMEOUT",
            details={"operation": operation, "timeout_seconds": timeout_seconds},
            status_code=504,
        )


class FallbackNotImplementedException(DomainException):
    """Entidad sin binding de modelo y sin fallback por sentencias."""

    def __init__(self, table_name: str):
        super().__init__(
            message=f"Sync por sentencias no implementado para la tabla: {table_name}",
            error_code="FALLBACK_NOT_IMPLEMENTED",
            details={"table": table_name},
            status_code=501,
        )


class MigrationPendingException(DomainException):
    """La tabla de la entidad no existe todavia en la base de datos."""

    def __init__(self, table_name: str, revision: Optional[str] = None):
        super().__init__(
            message=f"La tabla {table_name} no existe: migracion pendiente ({revision or 'desconocida'})",
            error_code="MIGRATION_PENDING",
            details={"table": table_name, "revision": revision},
            status_code=503,
        )
