"""Push-on-referer configuration.

PushConfig is a frozen dataclass — immutable after creation, validated
once at construction.
"""

from dataclasses import dataclass

from refpush.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class PushConfig:
    """Middleware configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = PushConfig(capacity=500, link_fallback=False)
    """

    # Number of referring pages whose learned resources are kept
    capacity: int = 100

    # Emit ``Link: <path>; rel=preload`` when the server has no push extension
    link_fallback: bool = True

    # Provenance header attached to promises by the default policy
    origin_header: str = "x-push-origin"

    def __post_init__(self) -> None:
        if self.capacity < 1:
            msg = f"capacity must be at least 1, got {self.capacity}"
            raise ConfigurationError(msg)
        if not self.origin_header:
            msg = "origin_header must be a non-empty header name"
            raise ConfigurationError(msg)
