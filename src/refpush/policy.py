"""Push promises and the policy that decides what gets learned.

A policy is any callable matching::

    def make_push_promise(referrer: bytes, path: bytes, file: Any) -> PushPromise | None: ...

It may also be ``async def``. Returning ``None`` means "learn nothing".
The orchestrator calls the policy only for same-origin, non-self
references whose response was a plain 200 file.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeAlias


@dataclass(frozen=True, slots=True)
class PushPromise:
    """A resource to offer alongside a page.

    ``file`` is an opaque handle (usually a filesystem path) that is
    threaded through to the delivery layer and never opened here.
    """

    path: bytes
    file: Any = None
    headers: tuple[tuple[bytes, bytes], ...] = ()

    def header(self, name: bytes) -> bytes | None:
        """Return the first value of header *name* (case-insensitive)."""
        name = name.lower()
        for hname, hvalue in self.headers:
            if hname.lower() == name:
                return hvalue
        return None

    @property
    def content_type(self) -> bytes | None:
        return self.header(b"content-type")


# referrer path, path to push, file to push -> promise or None
MakePushPromise: TypeAlias = Callable[
    [bytes, bytes, Any], PushPromise | None | Awaitable[PushPromise | None]
]

PAGE_SUFFIXES: tuple[bytes, ...] = (b"/", b".html", b".htm")

CONTENT_TYPES: Mapping[bytes, bytes] = MappingProxyType(
    {
        b".js": b"application/javascript",
        b".css": b"text/css",
    }
)


def is_html(path: bytes, suffixes: tuple[bytes, ...] = PAGE_SUFFIXES) -> bool:
    """True if *path* looks like an HTML page (``/``, ``.html``, ``.htm``)."""
    return bytes(path).endswith(suffixes)


def content_type_for(path: bytes, types: Mapping[bytes, bytes] = CONTENT_TYPES) -> bytes | None:
    """Content type for a pushable *path*, or None if it is not pushable."""
    path = bytes(path)
    for suffix, content_type in types.items():
        if path.endswith(suffix):
            return content_type
    return None


@dataclass(frozen=True, slots=True)
class ExtensionPolicy:
    """Learn scripts and stylesheets referenced from HTML pages.

    Learns only when the referrer ends with one of ``page_suffixes`` and
    the pushed path ends with a key of ``content_types``. The promise
    carries ``content-type`` plus a provenance header naming the
    referrer.

    Usage::

        policy = ExtensionPolicy(
            content_types={b".js": b"text/javascript", b".mjs": b"text/javascript"},
        )
        app = PushOnReferer(inner_app, make_push_promise=policy)
    """

    page_suffixes: tuple[bytes, ...] = PAGE_SUFFIXES
    content_types: Mapping[bytes, bytes] = field(default_factory=lambda: CONTENT_TYPES)
    origin_header: bytes = b"x-push-origin"

    def __call__(self, referrer: bytes, path: bytes, file: Any) -> PushPromise | None:
        if not is_html(referrer, self.page_suffixes):
            return None
        content_type = content_type_for(path, self.content_types)
        if content_type is None:
            return None
        return PushPromise(
            path=bytes(path),
            file=file,
            headers=(
                (b"content-type", content_type),
                (self.origin_header, bytes(referrer)),
            ),
        )


default_make_push_promise: MakePushPromise = ExtensionPolicy()
"""Push ``.js`` / ``.css`` files requested from pages ending in ``/``, ``.html``, ``.htm``."""
