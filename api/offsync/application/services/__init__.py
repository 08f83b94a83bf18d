"""
Servicios de aplicacion.

Contiene la logica de sync reutilizable: coercion temporal, saneado de
registros, registro de entidades y aplicacion de change-sets.
"""
from offsync.application.services.entity_registry import (
    ORDERS,
    PRODUCTS,
    SYNC_ENTITIES,
    EntityDefinition,
    definition_for_key,
)
from offsync.application.services.change_set_applier import ChangeSetApplier

__all__ = [
    # Registro de entidades
    "ORDERS",
    "PRODUCTS",
    "SYNC_ENTITIES",
    "EntityDefinition",
    "definition_for_key",
    # Escritura
    "ChangeSetApplier",
]
