"""
Entidades de dominio del protocolo de sync.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class EntityKind(str, Enum):
    """Conjunto cerrado de entidades sincronizables (valor = clave en el wire)."""
    ORDERS = "orders"
    PRODUCTS = "products"


@dataclass
class ChangeSet:
    """
    Cambios locales de un tipo de entidad desde el ultimo push exitoso.

    created/updated son registros crudos del cliente; deleted son ids.
    """

    created: List[Dict[str, Any]] = field(default_factory=list)
    updated: List[Dict[str, Any]] = field(default_factory=list)
    deleted: List[Any] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)

    def counts(self) -> Dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "deleted": len(self.deleted),
        }


@dataclass
class ApplyResult:
    """Resumen de lo aplicado para un tipo de entidad."""

    entity: EntityKind
    upserted: int = 0
    updated: int = 0
    deleted: int = 0
    delete_misses: int = 0
    via_fallback: bool = False
