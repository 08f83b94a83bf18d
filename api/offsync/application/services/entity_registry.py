"""
Registro cerrado de entidades sincronizables.

Cada entidad se declara una sola vez con todo lo que el sync necesita:
clave en el wire, modelo ORM (tabla + revision de esquema), sanitizador,
mapeo a columnas y si admite el fallback por sentencias.
El orden de la tupla SYNC_ENTITIES es el orden de procesamiento del push.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type

from loguru import logger

from offsync.application.services.record_sanitizer import sanitize_order, sanitize_product
from offsync.domain.entities.change_set import EntityKind
from offsync.infrastructure.database.models import OrderModel, ProductModel
from offsync.infrastructure.database.session import Base
from offsync.shared.utils.datetime_utils import DateTimeUtils

Sanitizer = Callable[..., Dict[str, Any]]


@dataclass(frozen=True)
class EntityDefinition:
    """
    Definicion de una entidad sincronizable.

    - kind: clave del protocolo ("orders", "products")
    - model: modelo ORM; su tabla y __schema_revision__ definen el binding
    - sanitizer: registro crudo -> registro canonico
    - local_date_columns / local_time_columns: columnas DATE/TIME que se
      derivan del datetime canonico en la zona de sync
    - supports_statement_fallback: si puede escribirse sin binding de modelo
    """

    kind: EntityKind
    model: Type[Base]
    sanitizer: Sanitizer
    local_date_columns: Tuple[str, ...] = ()
    local_time_columns: Tuple[str, ...] = ()
    supports_statement_fallback: bool = False

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    @property
    def schema_revision(self) -> str:
        return self.model.__schema_revision__

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(self.model.__table__.columns.keys())

    def sanitize(self, raw: Any, *, tz: tzinfo, now: Optional[datetime] = None) -> Dict[str, Any]:
        return self.sanitizer(raw, tz=tz, now=now)

    def to_storage(self, canonical: Mapping[str, Any], *, tz: tzinfo) -> Dict[str, Any]:
        """
        Registro canonico -> valores de columna.

        Descarta claves que no son columnas del modelo, convierte las
        columnas DATE/TIME locales y normaliza los datetimes a naive UTC
        con precision de milisegundos.
        """
        columns = self.column_names
        unknown = sorted(str(key) for key in canonical if key not in columns)
        if unknown:
            logger.warning(f"{self.table_name}: se ignoran campos desconocidos {unknown}")

        values: Dict[str, Any] = {}
        for key, value in canonical.items():
            if key not in columns:
                continue
            if isinstance(value, datetime):
                if key in self.local_date_columns:
                    value = value.astimezone(tz).date()
                elif key in self.local_time_columns:
                    value = value.astimezone(tz).time().replace(microsecond=0)
                else:
                    value = DateTimeUtils.to_storage(value)
            values[key] = value
        return values


ORDERS = EntityDefinition(
    kind=EntityKind.ORDERS,
    model=OrderModel,
    sanitizer=sanitize_order,
    local_date_columns=("order_date",),
    local_time_columns=("order_time",),
)

PRODUCTS = EntityDefinition(
    kind=EntityKind.PRODUCTS,
    model=ProductModel,
    sanitizer=sanitize_product,
    supports_statement_fallback=True,
)

SYNC_ENTITIES: Tuple[EntityDefinition, ...] = (ORDERS, PRODUCTS)

# Claves aceptadas en el push: clave del protocolo o nombre de tabla.
_PUSH_KEYS: Dict[str, EntityDefinition] = {
    **{definition.kind.value: definition for definition in SYNC_ENTITIES},
    **{definition.table_name: definition for definition in SYNC_ENTITIES},
}


def definition_for_key(key: str) -> Optional[EntityDefinition]:
    """Entidad asociada a una clave del change-set, o None si no existe."""
    return _PUSH_KEYS.get(key)
