"""ASGI middleware: push resources learned from ``Referer`` headers.

Wraps any ASGI application. For each HTTP request it holds back the
``http.response.start`` message until the first body message arrives,
which reveals the response shape:

- ``http.response.pathsend`` (the ASGI path-send extension) means the
  body is a single unmodified file, so the request is eligible for
  learning;
- anything else (``http.response.body``, ...) is never learned from.

The orchestrator then runs with the start message still held. Learned
promises are offered with ``http.response.push`` messages when the
server supports the push extension. Otherwise they can be advertised as
``Link: <path>; rel=preload`` headers on the held start message.

Push messages carry request headers (the server replays them on the
request it synthesizes for the pushed path), so only the non-representation
headers of a promise go into them. The promise content type is used for
the ``as=`` hint of the ``Link`` fallback.
"""

import logging
from typing import Any

from refpush._internal.asgi import (
    PATHSEND_EXTENSION,
    PUSH_EXTENSION,
    ASGIApp,
    Message,
    Receive,
    Scope,
    Send,
    header_value,
    supports_extension,
)
from refpush.cache import PushCache
from refpush.config import PushConfig
from refpush.orchestrator import PushOrchestrator, PushRequest, PushResponse
from refpush.policy import ExtensionPolicy, MakePushPromise, PushPromise
from refpush.url import request_path

logger = logging.getLogger("refpush.middleware")

_PRELOAD_AS: dict[bytes, str] = {
    b"application/javascript": "script",
    b"text/javascript": "script",
    b"text/css": "style",
}


def preload_link(promise: PushPromise) -> bytes:
    """Format *promise* as one ``Link`` preload value."""
    value = f"<{promise.path.decode('latin-1')}>; rel=preload"
    kind = _PRELOAD_AS.get(promise.content_type or b"")
    if kind is not None:
        value += f"; as={kind}"
    return value.encode("latin-1")


# Describe a response body; meaningless on the synthetic pushed request
_RESPONSE_ONLY_HEADERS = frozenset({b"content-type", b"content-length", b"content-encoding"})


def push_request_headers(promise: PushPromise) -> list[tuple[bytes, bytes]]:
    """Headers for the request the server synthesizes for *promise*.

    ``http.response.push`` headers are request headers. The pushed
    response gets its own content type from the application that serves
    the pushed path, so representation headers are dropped here; the
    provenance header is kept so that application can see why the
    request exists.
    """
    return [
        (name, value)
        for name, value in promise.headers
        if name.lower() not in _RESPONSE_ONLY_HEADERS
    ]


def request_from_scope(scope: Scope) -> PushRequest:
    """Build a ``PushRequest`` from an ASGI HTTP scope."""
    raw_path = scope.get("raw_path") or b""
    if raw_path:
        path = request_path(raw_path)
    else:
        path = scope.get("path", "").encode("utf-8")
    return PushRequest(
        path=path,
        referer=header_value(scope, b"referer"),
        host=header_value(scope, b"host", b":authority"),
    )


class PushOnReferer:
    """Learn page dependencies from ``Referer`` and push them next time.

    Usage::

        from refpush import PushCache, PushConfig, PushOnReferer

        app = PushOnReferer(app)

        # Share one cache between several mounts, custom capacity
        cache = PushCache(capacity=500)
        site = PushOnReferer(site_app, cache=cache)
        docs = PushOnReferer(docs_app, cache=cache)

        # Custom learning policy (sync or async)
        def fonts_too(referrer, path, file): ...
        app = PushOnReferer(app, make_push_promise=fonts_too)
    """

    __slots__ = ("app", "config", "orchestrator")

    def __init__(
        self,
        app: ASGIApp,
        *,
        config: PushConfig | None = None,
        cache: PushCache | None = None,
        make_push_promise: MakePushPromise | None = None,
    ) -> None:
        self.app = app
        self.config = config or PushConfig()
        if cache is None:
            cache = PushCache(self.config.capacity)
        if make_push_promise is None:
            make_push_promise = ExtensionPolicy(
                origin_header=self.config.origin_header.lower().encode("latin-1"),
            )
        self.orchestrator = PushOrchestrator(cache, make_push_promise)

    @property
    def cache(self) -> PushCache:
        return self.orchestrator.cache

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = request_from_scope(scope)
        can_push = supports_extension(scope, PUSH_EXTENSION)
        held: Message | None = None

        async def deliver(promises: tuple[PushPromise, ...]) -> None:
            if can_push:
                for promise in promises:
                    await send(
                        {
                            "type": PUSH_EXTENSION,
                            "path": promise.path.decode("latin-1"),
                            "headers": push_request_headers(promise),
                        }
                    )
            elif self.config.link_fallback and held is not None:
                links = [(b"link", preload_link(p)) for p in promises]
                held["headers"] = [*held.get("headers", ()), *links]
            else:
                logger.debug("no push delivery available for %r", request.path)

        async def send_wrapper(message: Message) -> None:
            nonlocal held
            if message["type"] == "http.response.start":
                held = message
                return
            if held is not None:
                start = held
                await self.orchestrator.process(
                    request,
                    _response_shape(start["status"], message),
                    deliver,
                )
                held = None
                await send(start)
            await send(message)

        await self.app(scope, receive, send_wrapper)
        if held is not None:
            # Application finished without a body message
            await send(held)


def _response_shape(status: int, first: Message) -> PushResponse:
    file: Any = None
    if first["type"] == PATHSEND_EXTENSION:
        file = first.get("path")
    return PushResponse(status=status, file=file)
