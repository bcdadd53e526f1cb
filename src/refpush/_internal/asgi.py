"""ASGI type aliases and scope helpers.

Raw ASGI types match the ASGI spec. The helpers read just the fields
the push middleware needs from a raw scope dict.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]
ASGIApp: TypeAlias = Callable[[Scope, Receive, Send], Awaitable[None]]

PUSH_EXTENSION = "http.response.push"
PATHSEND_EXTENSION = "http.response.pathsend"


def header_value(scope: Scope, *names: bytes) -> bytes | None:
    """Return the first header value matching any of *names*, or None.

    Header names in an ASGI scope are already lower-cased by the server.
    """
    for name, value in scope.get("headers", ()):
        if name.lower() in names:
            return bytes(value)
    return None


def supports_extension(scope: Scope, extension: str) -> bool:
    """Whether the server advertised *extension* in ``scope["extensions"]``."""
    extensions = scope.get("extensions") or {}
    return extension in extensions
