"""refpush — learn page dependencies from Referer, push them next time.

Watches which scripts and stylesheets are requested right after a page
(via the ``Referer`` header) and offers them proactively on the next
request for that page.

Basic usage::

    from refpush import PushOnReferer

    app = PushOnReferer(app)

Building blocks:
    parse_url -- Zero-copy authority/path split of a URL reference
    PushCache -- Bounded LRU map of page path -> learned push promises
    default_make_push_promise -- Learn .js/.css referenced from HTML pages
    PushOrchestrator -- Per request/response push-or-learn decision
    PushOnReferer -- ASGI middleware wiring it all together
"""

from refpush.cache import CacheStats, LRUCache, PushCache
from refpush.config import PushConfig
from refpush.errors import ConfigurationError, RefPushError
from refpush.middleware import PushOnReferer
from refpush.orchestrator import PushOrchestrator, PushRequest, PushResponse
from refpush.policy import (
    ExtensionPolicy,
    MakePushPromise,
    PushPromise,
    content_type_for,
    default_make_push_promise,
    is_html,
)
from refpush.url import parse_url, request_path

__version__ = "0.1.0"

__all__ = [
    "CacheStats",
    "ConfigurationError",
    "ExtensionPolicy",
    "LRUCache",
    "MakePushPromise",
    "PushCache",
    "PushConfig",
    "PushOnReferer",
    "PushOrchestrator",
    "PushPromise",
    "PushRequest",
    "PushResponse",
    "RefPushError",
    "content_type_for",
    "default_make_push_promise",
    "is_html",
    "parse_url",
    "request_path",
]
