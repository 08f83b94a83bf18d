"""
Aplicador de change-sets de una entidad.

Reglas:
- Una escritura y un commit por item; no hay transaccion que abarque el
  change-set. Si un item falla, los anteriores quedan confirmados.
- created -> upsert, updated -> update por id: el primer error corta el
  procesamiento (fail-fast) y se propaga.
- deleted -> delete por id: cualquier error (incluido "no existe") se
  registra y se ignora; el delete es idempotente para el cliente.
- Sin binding de modelo, los productos se escriben con sentencias
  parametrizadas; otras entidades fallan explicitamente.
"""
from datetime import tzinfo
from typing import Any, Awaitable, Dict, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from offsync.application.services.entity_registry import EntityDefinition
from offsync.domain.entities.change_set import ApplyResult, ChangeSet
from offsync.domain.repositories.sync_record_repository import ISyncRecordRepository
from offsync.infrastructure.database.schema import BindingState, SchemaBinding, resolve_binding
from offsync.infrastructure.database.session import Database
from offsync.infrastructure.repositories.statement_record_repository import StatementRecordRepository
from offsync.infrastructure.repositories.sync_record_repository import SqlAlchemyRecordRepository
from offsync.shared.exceptions.base import AppException
from offsync.shared.exceptions.domain import (
    FallbackNotImplementedException,
    MigrationPendingException,
    PushRejectedException,
)
from offsync.shared.utils.deadline import with_deadline


class ChangeSetApplier:
    """
    Aplica el change-set de una entidad contra la base de datos.

    Uso:
        applier = ChangeSetApplier(database, tz=timezone.utc, write_timeout=10)
        result = await applier.apply(PRODUCTS, ChangeSet(created=[...]))
    """

    def __init__(self, database: Database, *, tz: tzinfo, write_timeout: Optional[float] = None):
        self.database = database
        self.tz = tz
        self.write_timeout = write_timeout

    async def apply(self, definition: EntityDefinition, change_set: ChangeSet) -> ApplyResult:
        """
        Aplica created, updated y deleted en ese orden, item por item.

        Raises:
            MigrationPendingException: la tabla no existe
            FallbackNotImplementedException: sin binding y sin fallback
            PushRejectedException / RecordNotFoundException /
            PersistenceTimeoutException: fallo de un created/updated
        """
        async with self.database.session() as session:
            binding = await with_deadline(
                resolve_binding(session, definition.model),
                self.write_timeout,
                f"inspect {definition.table_name}",
            )
            repository = self._repository_for(session, definition, binding)
            via_fallback = isinstance(repository, StatementRecordRepository)
            result = ApplyResult(entity=definition.kind, via_fallback=via_fallback)

            for raw in change_set.created:
                values = self._storage_values(definition, raw)
                await self._write(session, definition, "upsert", values.get("id"),
                                  repository.upsert(values.get("id"), values))
                result.upserted += 1

            for raw in change_set.updated:
                values = self._storage_values(definition, raw)
                if via_fallback:
                    # Sin binding de modelo un update tambien es upsert
                    operation = repository.upsert(values.get("id"), values)
                else:
                    operation = repository.update_by_id(values.get("id"), values)
                await self._write(session, definition, "update", values.get("id"), operation)
                result.updated += 1

            for record_id in change_set.deleted:
                if await self._delete(session, definition, repository, record_id):
                    result.deleted += 1
                else:
                    result.delete_misses += 1

        logger.info(
            f"Sync {definition.table_name}: upserts={result.upserted}, updates={result.updated}, "
            f"deletes={result.deleted}, deletes_ignorados={result.delete_misses}"
            + (" (fallback por sentencias)" if via_fallback else "")
        )
        return result

    def _repository_for(
        self,
        session: AsyncSession,
        definition: EntityDefinition,
        binding: SchemaBinding,
    ) -> ISyncRecordRepository:
        if binding.state is BindingState.MISSING:
            raise MigrationPendingException(definition.table_name, definition.schema_revision)

        if binding.state is BindingState.UNBOUND:
            if not definition.supports_statement_fallback:
                raise FallbackNotImplementedException(definition.table_name)
            logger.warning(
                f"Modelo {definition.table_name} sin binding (revision registrada: "
                f"{binding.recorded_revision}). Usando sentencias parametrizadas."
            )
            return StatementRecordRepository(
                session,
                definition.model.__table__,
                binding.live_columns,
                self.database.engine.dialect,
                definition.table_name,
            )

        return SqlAlchemyRecordRepository(session, definition.model, definition.table_name)

    def _storage_values(self, definition: EntityDefinition, raw: Any) -> Dict[str, Any]:
        canonical = definition.sanitize(raw, tz=self.tz)
        return definition.to_storage(canonical, tz=self.tz)

    async def _write(
        self,
        session: AsyncSession,
        definition: EntityDefinition,
        operation: str,
        record_id: Any,
        write: Awaitable[Any],
    ) -> None:
        try:
            await with_deadline(write, self.write_timeout, f"{operation} {definition.table_name}")
            await session.commit()
        except AppException as exc:
            await session.rollback()
            logger.error(f"Error en {operation} de {definition.table_name} (id={record_id}): {exc.message}")
            raise
        except SQLAlchemyError as exc:
            await session.rollback()
            reason = str(getattr(exc, "orig", None) or exc)
            logger.error(f"Error en {operation} de {definition.table_name} (id={record_id}): {reason}")
            raise PushRejectedException(definition.table_name, record_id, operation, reason) from exc

    async def _delete(
        self,
        session: AsyncSession,
        definition: EntityDefinition,
        repository: ISyncRecordRepository,
        record_id: Any,
    ) -> bool:
        try:
            await with_deadline(
                repository.delete_by_id(record_id),
                self.write_timeout,
                f"delete {definition.table_name}",
            )
            await session.commit()
            return True
        except Exception as exc:
            # El registro pudo no existir nunca o ya estar borrado
            await session.rollback()
            logger.warning(f"Error eliminando {definition.table_name} con id {record_id}: {exc}")
            return False
