"""
Coercion de valores temporales enviados por los clientes.

Los clientes vienen de un store local poco tipado: una misma fecha puede
llegar como epoch en milisegundos, como string ISO, como "HH:MM:SS" o no
llegar. Cada valor crudo se clasifica primero en una variante explicita y
luego se resuelve con una funcion por variante, de modo que todos los
caminos de fallback son enumerables y testeables.

Se mantienen libres de I/O.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Optional, Union

from offsync.shared.utils.datetime_utils import DateTimeUtils


@dataclass(frozen=True)
class Absent:
    """No hay valor utilizable (None, vacio, falsy)."""


@dataclass(frozen=True)
class EpochMillis:
    """Instante expresado en milisegundos desde epoch."""

    value: int


@dataclass(frozen=True)
class DateString:
    """Texto que debe parsearse como fecha/fecha-hora."""

    value: str


@dataclass(frozen=True)
class NativeDate:
    """Objeto date/datetime ya construido."""

    value: Union[date, datetime]


@dataclass(frozen=True)
class ClockTime:
    """Hora del dia "HH:MM:SS" que se combina con un dia calendario."""

    hours: int
    minutes: int
    seconds: int


TemporalInput = Union[Absent, EpochMillis, DateString, NativeDate]
ClockInput = Union[ClockTime, Absent, EpochMillis, DateString, NativeDate]

_DIGITS = re.compile(r"^-?\d+$")
_CLOCK = re.compile(r"^(\d{1,2})(?::(\d{1,2}))?(?::(\d{1,2})(?:\.\d+)?)?$")


def classify_temporal(raw: Any) -> TemporalInput:
    """
    Clasifica un valor crudo de fecha.

    - None, bool, "", 0, NaN/inf -> Absent
    - int/float -> EpochMillis (se trunca la fraccion)
    - string solo de digitos -> EpochMillis
    - otro string -> DateString
    - date/datetime -> NativeDate
    """
    if raw is None or isinstance(raw, bool):
        return Absent()
    if isinstance(raw, (datetime, date)):
        return NativeDate(raw)
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return Absent()
        if raw == 0:
            return Absent()
        return EpochMillis(int(raw))
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return Absent()
        if _DIGITS.match(text):
            try:
                return EpochMillis(int(text))
            except ValueError:
                # Mas digitos de los que int() acepta convertir
                return Absent()
        return DateString(text)
    return Absent()


def classify_clock(raw: Any) -> ClockInput:
    """
    Clasifica un valor crudo de hora del dia.

    "HH", "HH:MM" y "HH:MM:SS" (fraccion de segundo ignorada) son ClockTime.
    Cualquier otro valor sigue las reglas de classify_temporal.
    """
    if isinstance(raw, str):
        match = _CLOCK.match(raw.strip())
        if match:
            hours, minutes, seconds = (int(part) if part else 0 for part in match.groups())
            return ClockTime(hours=hours, minutes=minutes, seconds=seconds)
    return classify_temporal(raw)


def resolve_datetime(value: TemporalInput, *, now: datetime, tz: tzinfo) -> datetime:
    """
    Resuelve una variante a un datetime aware en la zona tz.
    Nunca falla: cualquier valor no interpretable, o que no se pueda
    expresar en UTC para guardarlo, cae a `now`.
    """
    resolved: Optional[datetime] = None
    if isinstance(value, EpochMillis):
        try:
            resolved = DateTimeUtils.from_epoch_millis(value.value, tz)
        except OverflowError:
            resolved = None
    elif isinstance(value, DateString):
        resolved = parse_date_string(value.value, tz)
    elif isinstance(value, NativeDate):
        resolved = _native_to_zone(value.value, tz)
    return _storable_or_now(resolved, now=now, tz=tz)


def resolve_clock(value: ClockInput, *, day: datetime, now: datetime, tz: tzinfo) -> datetime:
    """
    Resuelve la hora del dia combinandola con el dia calendario de `day`.

    Las partes fuera de rango desbordan al dia siguiente (25:00 -> 01:00 del
    dia siguiente), igual que un setHours de JavaScript.
    """
    if isinstance(value, ClockTime):
        offset = timedelta(hours=value.hours, minutes=value.minutes, seconds=value.seconds)
        try:
            local_day = day.astimezone(tz)
            midnight = local_day.replace(hour=0, minute=0, second=0, microsecond=0)
            resolved: Optional[datetime] = midnight + offset
        except OverflowError:
            resolved = None
        return _storable_or_now(resolved, now=now, tz=tz)
    return resolve_datetime(value, now=now, tz=tz)


def parse_date_string(text: str, tz: tzinfo) -> Optional[datetime]:
    """
    Parsea fechas ISO-8601 ("2023-11-14", "2023-11-14T09:15:00Z",
    "2023-11-14 09:15:00+02:00"). Los valores naive se leen en tz.

    Returns:
        datetime aware o None si el texto no es una fecha o queda fuera
        del rango de datetime al pasarlo a tz
    """
    candidate = text.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    return _native_to_zone(parsed, tz)


def _native_to_zone(value: Union[date, datetime], tz: tzinfo) -> Optional[datetime]:
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    try:
        return value.astimezone(tz)
    except OverflowError:
        return None


def _storable_or_now(value: Optional[datetime], *, now: datetime, tz: tzinfo) -> datetime:
    # Se guarda como UTC naive: el instante tiene que existir en UTC
    if value is not None:
        try:
            value.astimezone(timezone.utc)
        except OverflowError:
            value = None
    return value if value is not None else now.astimezone(tz)
