"""
Casos de uso del sync offline: pull y push.

El orquestador no guarda estado entre llamadas: todo el estado es el
timestamp que envia el cliente y la base de datos.
"""
import asyncio
from datetime import tzinfo
from typing import Any, Dict, List, Mapping, Optional, Tuple

from loguru import logger
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from offsync.application.dto.sync_dto import EntityChangesDTO, PullResponseDTO, PushResponseDTO
from offsync.application.services.change_set_applier import ChangeSetApplier
from offsync.application.services.entity_registry import (
    SYNC_ENTITIES,
    EntityDefinition,
    definition_for_key,
)
from offsync.domain.entities.change_set import ChangeSet, EntityKind
from offsync.infrastructure.database.schema import BindingState, resolve_binding
from offsync.infrastructure.database.session import Database
from offsync.infrastructure.repositories.statement_record_repository import StatementRecordRepository
from offsync.infrastructure.repositories.sync_record_repository import SqlAlchemyRecordRepository
from offsync.shared.exceptions.domain import ValidationException
from offsync.shared.utils.datetime_utils import EPOCH, DateTimeUtils
from offsync.shared.utils.deadline import with_deadline
from offsync.shared.utils.wire import to_wire_value


class SyncUseCases:
    """
    Orquestador del protocolo de sync.

    - pull: consulta todas las entidades en paralelo (una sesion por
      entidad); una entidad que falla devuelve lista vacia.
    - push: aplica las entidades presentes en orden fijo (orders antes que
      products), una despues de otra.
    """

    def __init__(
        self,
        database: Database,
        *,
        tz: tzinfo,
        query_timeout: Optional[float] = None,
        write_timeout: Optional[float] = None,
    ):
        self.database = database
        self.tz = tz
        self.query_timeout = query_timeout
        self.applier = ChangeSetApplier(database, tz=tz, write_timeout=write_timeout)

    async def pull(self, last_pulled_at: Optional[str]) -> PullResponseDTO:
        """
        Devuelve las filas con updated_at > last_pulled_at de cada entidad.

        Politica: todas las filas van en `created`. El store no guarda
        marca de creacion ni tombstones, asi que `updated` y `deleted` van
        siempre vacios; el cliente debe tratar `created` como upsert y los
        borrados no se propagan.

        Args:
            last_pulled_at: Epoch ms en texto; ausente o invalido = desde epoch

        Returns:
            PullResponseDTO con los cambios y el timestamp para el proximo pull
        """
        since = self._resolve_since(last_pulled_at)
        logger.info(f"Pull desde {since.isoformat()} (last_pulled_at={last_pulled_at!r})")

        rows_per_entity = await asyncio.gather(
            *(self._pull_entity(definition, since) for definition in SYNC_ENTITIES)
        )

        changes = {
            definition.kind.value: EntityChangesDTO(created=rows)
            for definition, rows in zip(SYNC_ENTITIES, rows_per_entity)
        }
        timestamp = DateTimeUtils.now_millis()
        logger.info(
            "Pull completado: "
            + ", ".join(f"{kind}={len(entity.created)}" for kind, entity in changes.items())
        )
        return PullResponseDTO(changes=changes, timestamp=timestamp)

    async def push(self, changes: Any, last_pulled_at: Optional[str]) -> PushResponseDTO:
        """
        Aplica los cambios enviados por el cliente.

        `last_pulled_at` se acepta pero no se usa para validar el push (no
        hay control de concurrencia optimista: last-write-wins).

        Raises:
            ValidationException: si el cuerpo no tiene la forma esperada
            AppException: el primer error no recuperable de una entidad
        """
        pending = self._collect_change_sets(changes)
        logger.info(
            f"Push recibido (last_pulled_at={last_pulled_at!r}): "
            + (", ".join(f"{d.kind.value}={cs.counts()}" for d, cs in pending) or "sin cambios")
        )

        for definition, change_set in pending:
            await self.applier.apply(definition, change_set)

        return PushResponseDTO(success=True)

    def _resolve_since(self, last_pulled_at: Optional[str]):
        millis = DateTimeUtils.parse_epoch_millis(last_pulled_at)
        if millis is None:
            return DateTimeUtils.to_storage(EPOCH)
        try:
            return DateTimeUtils.to_storage(DateTimeUtils.from_epoch_millis(millis))
        except OverflowError:
            logger.warning(f"last_pulled_at fuera de rango: {last_pulled_at!r}, usando epoch")
            return DateTimeUtils.to_storage(EPOCH)

    async def _pull_entity(self, definition: EntityDefinition, since) -> List[Dict[str, Any]]:
        async with self.database.session() as session:
            try:
                rows = await with_deadline(
                    self._find_changed(session, definition, since),
                    self.query_timeout,
                    f"pull {definition.table_name}",
                )
            except Exception as exc:
                # Tabla aun no migrada, timeout, etc.: esta entidad va vacia
                logger.warning(f"Pull de {definition.table_name} fallo, se devuelve vacio: {exc}")
                return []
        return [to_wire_value(row) for row in rows]

    async def _find_changed(self, session: AsyncSession, definition: EntityDefinition, since):
        binding = await resolve_binding(session, definition.model)
        if binding.state is BindingState.UNBOUND and definition.supports_statement_fallback:
            repository = StatementRecordRepository(
                session,
                definition.model.__table__,
                binding.live_columns,
                self.database.engine.dialect,
                definition.table_name,
            )
        else:
            repository = SqlAlchemyRecordRepository(session, definition.model, definition.table_name)
        return await repository.find_changed_since(since)

    def _collect_change_sets(self, changes: Any) -> List[Tuple[EntityDefinition, ChangeSet]]:
        if changes is None:
            return []
        if not isinstance(changes, Mapping):
            raise ValidationException("El cuerpo del push debe ser un objeto por entidad")

        collected: Dict[EntityKind, ChangeSet] = {}
        for key, value in changes.items():
            definition = definition_for_key(key)
            if definition is None:
                logger.warning(f"Push: entidad desconocida '{key}', se ignora")
                continue
            if not value:
                continue
            try:
                dto = EntityChangesDTO.model_validate(value)
            except ValidationError as exc:
                raise ValidationException(
                    f"Change-set invalido para '{key}': {exc.errors()[0].get('msg')}",
                    field=key,
                ) from exc

            change_set = collected.setdefault(definition.kind, ChangeSet())
            change_set.created.extend(dto.created)
            change_set.updated.extend(dto.updated)
            change_set.deleted.extend(dto.deleted)

        return [
            (definition, collected[definition.kind])
            for definition in SYNC_ENTITIES
            if definition.kind in collected and not collected[definition.kind].is_empty
        ]
