"""refpush exception hierarchy.

Nothing on the request path raises: malformed references, rejected
candidates, and a full cache all degrade to "learn nothing". These
types only surface at construction time.
"""


class RefPushError(Exception):
    """Base for all refpush-specific errors."""


class ConfigurationError(RefPushError):
    """Raised when a cache or middleware is configured with invalid values.

    Typically raised from ``PushConfig`` or ``LRUCache`` constructors at
    startup, before any request is served.
    """
