"""Client and connection pool configuration."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass
from typing import Optional

DEFAULT_IDLE_TIMEOUT = 90.0


class Ver(enum.Enum):
    """Which HTTP version a pooled connection is for."""

    AUTO = "auto"
    HTTP2 = "http2"


@dataclass(frozen=True)
class Config:
    """Behaviour of the client when sending requests."""

    retry_canceled_requests: bool = True
    set_host: bool = True
    ver: Ver = Ver.AUTO


@dataclass(frozen=True)
class PoolConfig:
    """Settings of the idle connection pool.

    ``idle_timeout`` is in seconds; None disables it.
    """

    idle_timeout: Optional[float] = DEFAULT_IDLE_TIMEOUT
    max_idle_per_host: int = sys.maxsize

    def __post_init__(self) -> None:
        if self.max_idle_per_host < 0:
            raise ValueError("max_idle_per_host must not be negative")
        if self.idle_timeout is not None and self.idle_timeout < 0:
            raise ValueError("idle_timeout must not be negative")

    def is_enabled(self) -> bool:
        """True if idle connections may be kept at all."""
        return self.max_idle_per_host > 0