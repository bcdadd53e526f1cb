"""Per request/response coordination: offer what is known, learn what is new.

For every response the orchestrator first looks the request path up in
the cache. On a hit, the learned promises are handed to ``deliver``. On
a miss it tries to learn: when the ``Referer`` names a same-origin page
other than this one, and the response is a plain 200 file, the policy
decides whether the file becomes a promise for that page.

No state survives a call except what lands in the shared ``PushCache``.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeAlias

from refpush._internal.invoke import invoke
from refpush.cache import PushCache
from refpush.policy import MakePushPromise, PushPromise, default_make_push_promise
from refpush.url import parse_url

logger = logging.getLogger("refpush.orchestrator")

Deliver: TypeAlias = Callable[[tuple[PushPromise, ...]], Awaitable[None] | None]


@dataclass(frozen=True, slots=True)
class PushRequest:
    """What the orchestrator needs to know about an incoming request."""

    path: bytes
    referer: bytes | None = None
    host: bytes | None = None


@dataclass(frozen=True, slots=True)
class PushResponse:
    """What the orchestrator needs to know about the outgoing response.

    ``file`` is set only when the body is a single file sent unmodified;
    any other body shape (rendered, streamed, compressed) leaves it None.
    """

    status: int
    file: Any = None

    @property
    def is_single_file(self) -> bool:
        return self.file is not None


class PushOrchestrator:
    """Decide, per request/response pair, whether to push or to learn.

    Usage::

        cache = PushCache(capacity=100)
        orchestrator = PushOrchestrator(cache)

        offered = await orchestrator.process(
            PushRequest(path=b"/app.js", referer=b"http://host/a.html", host=b"host"),
            PushResponse(status=200, file="/srv/www/app.js"),
            deliver=send_push_promises,
        )
    """

    __slots__ = ("cache", "make_push_promise")

    def __init__(
        self,
        cache: PushCache,
        make_push_promise: MakePushPromise = default_make_push_promise,
    ) -> None:
        self.cache = cache
        self.make_push_promise = make_push_promise

    async def process(
        self,
        request: PushRequest,
        response: PushResponse,
        deliver: Deliver,
    ) -> tuple[PushPromise, ...]:
        """Deliver known promises for *request*, or learn from it.

        Returns the promises handed to *deliver* (empty when nothing was
        delivered).
        """
        promises = self.cache.lookup(request.path)
        if promises is not None:
            logger.debug(
                "push hit for %r: %s",
                request.path,
                ", ".join(repr(p.path) for p in promises),
            )
            await invoke(deliver, promises)
            return promises

        await self.learn(request, response)
        return ()

    async def learn(self, request: PushRequest, response: PushResponse) -> PushPromise | None:
        """Try to record *request.path* as a resource of its referring page.

        Returns the learned promise, or None when nothing was learned.
        """
        if request.referer is None:
            return None

        if response.status != 200 or not response.is_single_file:
            return None

        authority, ref_path = parse_url(request.referer)
        if not ref_path:
            logger.debug("unparseable referer %r for %r", request.referer, request.path)
            return None

        if authority is not None and authority != request.host:
            logger.debug(
                "cross-origin referer %r for %r (host %r)",
                request.referer,
                request.path,
                request.host,
            )
            return None

        referrer = ref_path.tobytes()
        if referrer == request.path:
            return None

        promise = await invoke(self.make_push_promise, referrer, request.path, response.file)
        if promise is None:
            return None

        self.cache.upsert(referrer, promise)
        logger.debug("learned %r -> %r", referrer, promise.path)
        return promise
