"""
Entidades de dominio.
"""
from offsync.domain.entities.change_set import ApplyResult, ChangeSet, EntityKind

__all__ = ["ApplyResult", "ChangeSet", "EntityKind"]
