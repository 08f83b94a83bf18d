"""
Implementación ORM del repositorio de registros sincronizables.
Se usa cuando la entidad tiene binding de modelo (tabla en la revision esperada).
"""
from datetime import datetime
from typing import Any, Dict, List, Mapping, Type

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from offsync.domain.repositories.sync_record_repository import ISyncRecordRepository
from offsync.infrastructure.database.session import Base
from offsync.shared.exceptions.domain import RecordNotFoundException


def model_to_dict(instance: Base) -> Dict[str, Any]:
    """Convierte una instancia ORM en dict columna -> valor."""
    return {column.key: getattr(instance, column.key) for column in instance.__table__.columns}


class SqlAlchemyRecordRepository(ISyncRecordRepository):
    """Repositorio generico sobre un modelo ORM con PK `id` y columna `updated_at`."""

    def __init__(self, db: AsyncSession, model: Type[Base], entity_name: str):
        self.db = db
        self.model = model
        self.entity_name = entity_name

    async def find_changed_since(self, since: datetime) -> List[Dict[str, Any]]:
        """
        Obtiene las filas modificadas despues de `since` (exclusivo).
        """
        result = await self.db.execute(
            select(self.model)
            .where(self.model.updated_at > since)
            .order_by(self.model.updated_at, self.model.id)
        )
        return [model_to_dict(row) for row in result.scalars().all()]

    async def upsert(self, record_id: Any, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Inserta o sobreescribe por id (merge del unit of work).
        """
        instance = await self.db.merge(self.model(**{**values, "id": record_id}))
        await self.db.flush()
        return model_to_dict(instance)

    async def update_by_id(self, record_id: Any, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Actualiza un registro existente.

        Raises:
            RecordNotFoundException: si el id no existe
        """
        instance = await self._get_or_raise(record_id)
        for key, value in values.items():
            if key != "id":
                setattr(instance, key, value)
        await self.db.flush()
        return model_to_dict(instance)

    async def delete_by_id(self, record_id: Any) -> None:
        instance = await self._get_or_raise(record_id)
        await self.db.delete(instance)
        await self.db.flush()

    async def execute_statement(self, statement: Any, params: Mapping[str, Any]) -> int:
        result = await self.db.execute(statement, dict(params))
        return result.rowcount or 0

    async def _get_or_raise(self, record_id: Any) -> Base:
        instance = None
        if record_id not in (None, ""):
            instance = await self.db.get(self.model, record_id)
        if instance is None:
            raise RecordNotFoundException(self.entity_name, record_id)
        return instance
