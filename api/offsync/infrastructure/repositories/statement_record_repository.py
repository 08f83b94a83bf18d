"""
Repositorio por sentencias parametrizadas (fallback sin binding de modelo).

Se usa cuando la tabla existe pero su revision de esquema no esta
registrada (p.ej. creada por otro servicio antes de que llegue la
migracion). Solo escribe las columnas que existen en la tabla real.

Todos los valores viajan como bind parameters tipados con los tipos de
columna del modelo: nada se concatena en el SQL salvo identificadores,
que salen del modelo (nunca del cliente) y los cita el dialecto.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Mapping, Sequence

from loguru import logger
from sqlalchemy import Table, bindparam, select, text
from sqlalchemy.engine import Dialect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import TextClause

from offsync.domain.repositories.sync_record_repository import ISyncRecordRepository
from offsync.shared.exceptions.domain import RecordNotFoundException


class StatementRecordRepository(ISyncRecordRepository):
    """Repositorio basado en sentencias SQL parametrizadas sobre una tabla."""

    def __init__(
        self,
        db: AsyncSession,
        table: Table,
        live_columns: FrozenSet[str],
        dialect: Dialect,
        entity_name: str,
    ):
        self.db = db
        self.table = table
        self.dialect = dialect
        self.entity_name = entity_name
        # Orden estable: el del modelo
        self.columns = [name for name in table.columns.keys() if name in live_columns]
        self._quote = dialect.identifier_preparer.quote

    async def find_changed_since(self, since: datetime) -> List[Dict[str, Any]]:
        if "updated_at" not in self.columns:
            return []
        statement = (
            select(*[self.table.c[name] for name in self.columns])
            .where(self.table.c.updated_at > since)
            .order_by(self.table.c.updated_at, self.table.c.id)
        )
        result = await self.db.execute(statement)
        return [dict(row) for row in result.mappings().all()]

    async def upsert(self, record_id: Any, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        INSERT ... ON CONFLICT/ON DUPLICATE KEY UPDATE con las columnas reales.
        """
        row = self._writable({**values, "id": record_id})
        statement = self.build_upsert_statement(list(row.keys()))
        await self.execute_statement(statement, row)
        return row

    async def update_by_id(self, record_id: Any, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        UPDATE de las columnas reales presentes en values.

        El applier no lo usa en modo fallback: ahi los `updated` se escriben
        con upsert. Se mantiene para cumplir ISyncRecordRepository.

        Raises:
            RecordNotFoundException: si ninguna fila tiene ese id
        """
        row = self._writable(values)
        row.pop("id", None)
        if not row:
            return {"id": record_id}
        assignments = ", ".join(f"{self._quote(name)} = :{name}" for name in row)
        statement = self._typed(
            f"UPDATE {self._quote(self.table.name)} SET {assignments} WHERE {self._quote('id')} = :id",
            [*row.keys(), "id"],
        )
        affected = await self.execute_statement(statement, {**row, "id": record_id})
        if affected == 0:
            raise RecordNotFoundException(self.entity_name, record_id)
        return {**row, "id": record_id}

    async def delete_by_id(self, record_id: Any) -> None:
        statement = self._typed(
            f"DELETE FROM {self._quote(self.table.name)} WHERE {self._quote('id')} = :id",
            ["id"],
        )
        affected = await self.execute_statement(statement, {"id": record_id})
        if affected == 0:
            raise RecordNotFoundException(self.entity_name, record_id)

    async def execute_statement(self, statement: Any, params: Mapping[str, Any]) -> int:
        result = await self.db.execute(statement, dict(params))
        return result.rowcount or 0

    def build_upsert_statement(self, columns: Sequence[str]) -> TextClause:
        """
        Construye el upsert segun el dialecto.

        - mysql: ON DUPLICATE KEY UPDATE `c` = VALUES(`c`)
        - postgresql/sqlite: ON CONFLICT ("id") DO UPDATE SET "c" = excluded."c"
        """
        quoted = [self._quote(name) for name in columns]
        placeholders = ", ".join(f":{name}" for name in columns)
        updates = [self._quote(name) for name in columns if name != "id"]
        head = (
            f"INSERT INTO {self._quote(self.table.name)} ({', '.join(quoted)}) "
            f"VALUES ({placeholders})"
        )

        if self.dialect.name == "mysql":
            if updates:
                tail = ", ".join(f"{col} = VALUES({col})" for col in updates)
            else:
                tail = f"{self._quote('id')} = {self._quote('id')}"
            sql = f"{head} ON DUPLICATE KEY UPDATE {tail}"
        elif updates:
            tail = ", ".join(f"{col} = excluded.{col}" for col in updates)
            sql = f"{head} ON CONFLICT ({self._quote('id')}) DO UPDATE SET {tail}"
        else:
            sql = f"{head} ON CONFLICT ({self._quote('id')}) DO NOTHING"

        return self._typed(sql, columns)

    def _typed(self, sql: str, names: Sequence[str]) -> TextClause:
        params = [bindparam(name, type_=self.table.c[name].type) for name in dict.fromkeys(names)]
        return text(sql).bindparams(*params)

    def _writable(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        dropped = sorted(key for key in values if key not in self.columns)
        if dropped:
            logger.warning(f"{self.table.name}: columnas ausentes en la tabla, se omiten {dropped}")
        return {key: value for key, value in values.items() if key in self.columns}
