"""
Conversion de valores de la base de datos a valores seguros para JSON.

Los enteros grandes (BIGINT) y los Decimal se envian como string para que
el cliente no pierda precision; las fechas siguen las convenciones del
protocolo (epoch ms para timestamps).
"""
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from offsync.shared.utils.datetime_utils import DateTimeUtils

# Mayor entero representable sin perdida en un double de JavaScript.
MAX_SAFE_INTEGER = 2**53 - 1


def to_wire_value(value: Any) -> Any:
    """
    Convierte recursivamente un valor a su representacion JSON del protocolo.

    - int fuera de rango seguro -> str
    - Decimal -> str
    - datetime -> epoch ms
    - date -> "YYYY-MM-DD"
    - time -> "HH:MM:SS"
    - dict/list/tuple -> recursivo
    """
    if value is None or isinstance(value, (bool, str, float)):
        return value
    if isinstance(value, int):
        return str(value) if abs(value) > MAX_SAFE_INTEGER else value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return DateTimeUtils.to_epoch_millis(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.replace(microsecond=0).isoformat()
    if isinstance(value, dict):
        return {key: to_wire_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire_value(item) for item in value]
    return value
