"""
Deadline explicito para llamadas a la base de datos.
"""
import asyncio
from typing import Awaitable, Optional, TypeVar

from offsync.shared.exceptions.domain import PersistenceTimeoutException

T = TypeVar("T")


async def with_deadline(awaitable: Awaitable[T], seconds: Optional[float], operation: str) -> T:
    """
    Espera `awaitable` como maximo `seconds` segundos.

    Un valor None o <= 0 desactiva el limite.

    Raises:
        PersistenceTimeoutException: si se excede el limite
    """
    if not seconds or seconds <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as exc:
        raise PersistenceTimeoutException(operation, seconds) from exc
