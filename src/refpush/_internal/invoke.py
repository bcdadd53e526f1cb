"""Call a policy or delivery callback that may be sync or async.

``make_push_promise`` and ``deliver`` are user-supplied and can be
either ``def`` or ``async def``; the orchestrator awaits both through
``invoke`` so it never branches on the kind of callable.
"""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


async def invoke(func: Callable[..., T | Awaitable[T]], *args: Any, **kwargs: Any) -> T:
    """Return ``func(*args, **kwargs)``, awaiting it first if needed."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result
