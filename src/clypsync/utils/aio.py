import asyncio
from typing import Awaitable, Optional, TypeVar

from clypsync.exceptions import StoreError

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], timeout: Optional[float], what: str) -> T:
    """Await ``awaitable``, turning an expired ``timeout`` into ``StoreError``."""
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise StoreError(f"{what} timed out after {timeout:g}s") from e
