"""
Sanitizadores de registros enviados por los clientes.

Transforman un registro crudo del push (tipos mezclados: strings, numeros,
epoch) en un registro canonico listo para persistir:
- quitan la metadata del protocolo (_status, _changed)
- normalizan fechas, horas, numeros y booleanos
- dejan pasar el resto de campos sin tocarlos

Son funciones puras y totales: un valor malformado cae a su default, nunca
levantan excepcion. El `id` se conserva tal cual, sin validar.
"""
from __future__ import annotations

import math
from datetime import datetime, tzinfo
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Mapping, Optional

from offsync.application.services.temporal_coercion import (
    classify_clock,
    classify_temporal,
    resolve_clock,
    resolve_datetime,
)
from offsync.shared.utils.datetime_utils import DateTimeUtils

# Campos que solo existen en el protocolo de sync, nunca se guardan.
PROTOCOL_FIELDS = frozenset({"_status", "_changed"})

_CENTS = Decimal("0.01")


def strip_protocol_fields(raw: Any) -> Dict[str, Any]:
    """Copia del registro sin los campos del protocolo."""
    if not isinstance(raw, Mapping):
        return {}
    return {key: value for key, value in raw.items() if key not in PROTOCOL_FIELDS}


def sanitize_order(raw: Any, *, tz: tzinfo, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Sanitiza un registro de orden.

    - order_date: epoch ms o string de fecha; default ahora
    - order_time: "HH:MM:SS" combinado con el dia de order_date, epoch ms; default ahora
    - updated_at: epoch ms o string de fecha; default ahora

    Args:
        raw: Registro crudo del cliente
        tz: Zona en la que se interpretan dia calendario y hora local
        now: Hora del servidor (inyectable para tests)

    Returns:
        Dict con el registro canonico (datetimes aware en tz)
    """
    now = now or DateTimeUtils.now_utc()
    record = strip_protocol_fields(raw)
    source = raw if isinstance(raw, Mapping) else {}

    order_date = resolve_datetime(classify_temporal(source.get("order_date")), now=now, tz=tz)
    order_time = resolve_clock(
        classify_clock(source.get("order_time")),
        day=order_date,
        now=now,
        tz=tz,
    )
    updated_at = resolve_datetime(classify_temporal(source.get("updated_at")), now=now, tz=tz)

    record.update(
        order_date=order_date,
        order_time=order_time,
        updated_at=updated_at,
    )
    return record


def sanitize_product(raw: Any, *, tz: tzinfo, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Sanitiza un registro de producto.

    - price: Decimal con 2 decimales; 0 si no es parseable
    - stock_quantity: entero >= 0 (fraccion truncada); 0 si no es parseable
    - is_active: True, exactamente "true" o 1 -> True; cualquier otro valor
      (incluido "TRUE" o " true ") -> False
    - description: string vacio o solo espacios -> None
    - updated_at: epoch ms o string de fecha; default ahora
    """
    now = now or DateTimeUtils.now_utc()
    record = strip_protocol_fields(raw)
    source = raw if isinstance(raw, Mapping) else {}

    record.update(
        price=coerce_price(source.get("price")),
        stock_quantity=coerce_stock_quantity(source.get("stock_quantity")),
        is_active=coerce_is_active(source.get("is_active")),
        updated_at=resolve_datetime(classify_temporal(source.get("updated_at")), now=now, tz=tz),
    )
    if "description" in record:
        record["description"] = coerce_description(record["description"])
    return record


def coerce_price(value: Any) -> Decimal:
    """Precio como Decimal de 2 decimales, 0.00 ante cualquier fallo."""
    if isinstance(value, bool) or value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        candidate = value
    elif isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return Decimal("0.00")
        candidate = Decimal(str(value))
    elif isinstance(value, str):
        try:
            candidate = Decimal(value.strip())
        except InvalidOperation:
            return Decimal("0.00")
    else:
        return Decimal("0.00")

    if not candidate.is_finite():
        return Decimal("0.00")
    try:
        return candidate.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Magnitud fuera de la precision del contexto decimal
        return Decimal("0.00")


def coerce_stock_quantity(value: Any) -> int:
    """Stock entero no negativo; la fraccion se trunca hacia cero."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, Decimal):
        if not value.is_finite():
            return 0
        quantity = int(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            return 0
        quantity = int(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            quantity = int(text)
        except ValueError:
            try:
                parsed = float(text)
            except ValueError:
                return 0
            if not math.isfinite(parsed):
                return 0
            quantity = int(parsed)
    else:
        return 0
    return max(quantity, 0)


def coerce_is_active(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value == "true"
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, Decimal):
        return value.is_finite() and value == 1
    return False


def coerce_description(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value
