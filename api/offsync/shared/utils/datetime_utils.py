"""
Utilidades para manejo de fechas y horas.

Convenciones del servicio:
- El protocolo de sync usa epoch en milisegundos.
- La base de datos guarda datetimes naive en UTC con precision de milisegundos.
"""
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def now_millis() -> int:
        """Epoch actual en milisegundos."""
        return DateTimeUtils.to_epoch_millis(DateTimeUtils.now_utc())

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """
        Normaliza un datetime a UTC (aware).
        Los datetimes naive se interpretan como UTC.
        """
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def to_epoch_millis(dt: datetime) -> int:
        """
        Convierte un datetime a epoch en milisegundos.

        Args:
            dt: Objeto datetime (naive = UTC)

        Returns:
            int: Milisegundos desde 1970-01-01T00:00:00Z
        """
        delta = DateTimeUtils.ensure_utc(dt) - EPOCH
        return delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000

    @staticmethod
    def from_epoch_millis(millis: int, tz: tzinfo = timezone.utc) -> datetime:
        """
        Convierte epoch en milisegundos a datetime aware en la zona indicada.

        Raises:
            OverflowError: si el valor esta fuera de rango
        """
        return (EPOCH + timedelta(milliseconds=millis)).astimezone(tz)

    @staticmethod
    def to_storage(dt: datetime) -> datetime:
        """
        Forma de almacenamiento: naive UTC truncado a milisegundos.
        """
        utc = DateTimeUtils.ensure_utc(dt)
        return utc.replace(tzinfo=None, microsecond=(utc.microsecond // 1000) * 1000)

    @staticmethod
    def parse_epoch_millis(raw: Optional[str]) -> Optional[int]:
        """
        Parsea el query param last_pulled_at.

        Acepta enteros y decimales en texto ("1700000000000", "1700000000000.0").

        Returns:
            Optional[int]: Milisegundos o None si no es parseable
        """
        if raw is None:
            return None
        text = str(raw).strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            value = float(text)
        except ValueError:
            return None
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value)


def get_zone(name: str) -> tzinfo:
    """
    Resuelve la zona horaria configurada para interpretar fechas de clientes.
    Una zona desconocida cae a UTC con warning.
    """
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Zona horaria desconocida '{name}', usando UTC")
        return timezone.utc
