"""Internal async helpers shared by async modules."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable


async def _call_port(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Await async port methods; run sync ones in a worker thread."""
    if inspect.iscoroutinefunction(fn):
        return await fn(*args, **kwargs)
    result = await asyncio.to_thread(fn, *args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result
