"""Idle connection pool and the connections it holds."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

from legacyhttp.config import PoolConfig

T = TypeVar("T")


@dataclass(frozen=True)
class Reservation(Generic[T]):
    """The result of reserving a connection before handing it out.

    A unique reservation hands out the connection itself. A shared one
    hands out one copy and leaves another to stay in the pool, so other
    requests can use the same connection at the same time.
    """

    to_return: T
    to_insert: Optional[T] = None

    @classmethod
    def unique(cls, conn: T) -> "Reservation[T]":
        """A reservation of a connection that only one user may hold."""
        return cls(conn)

    @classmethod
    def shared(cls, to_insert: T, to_return: T) -> "Reservation[T]":
        """A reservation of a connection that can serve many users at once."""
        return cls(to_return, to_insert)

    @property
    def is_shared(self) -> bool:
        return self.to_insert is not None


@dataclass
class PoolableService:
    """A connection that can be kept in an :class:`IdlePool`.

    ``shared`` marks a multiplexed (HTTP/2) connection. ``ready`` reports
    whether the connection can take a new request, and ``connect_info``,
    if given, is asked whether the connection was poisoned.
    """

    service: Any
    shared: bool = False
    ready: Optional[Callable[[], bool]] = None
    connect_info: Optional[Any] = None

    def _is_poisoned(self) -> bool:
        if self.connect_info is None:
            return False
        return bool(self.connect_info.is_poisoned())

    def _is_ready(self) -> bool:
        return True if self.ready is None else bool(self.ready())

    def is_open(self) -> bool:
        """True if the connection is usable: not poisoned and ready."""
        return not self._is_poisoned() and self._is_ready()

    def reserve(self) -> Reservation["PoolableService"]:
        """Reserve the connection, sharing it when it is multiplexed."""
        if self.shared:
            return Reservation.shared(replace(self), replace(self))
        return Reservation.unique(self)

    def can_share(self) -> bool:
        """True if the connection can serve several requests at once."""
        return self.shared


@dataclass
class _Idle:
    conn: PoolableService
    idle_at: float


@dataclass
class IdlePool:
    """Keeps idle connections per key, limited in number and in idle time."""

    config: PoolConfig = field(default_factory=PoolConfig)
    clock: Callable[[], float] = time.monotonic
    _idle: dict[Hashable, list[_Idle]] = field(
        default_factory=dict, init=False, repr=False
    )

    def is_enabled(self) -> bool:
        """True if the pool keeps idle connections at all."""
        return self.config.is_enabled()

    def _expired(self, entry: _Idle, now: float) -> bool:
        timeout = self.config.idle_timeout
        return timeout is not None and now - entry.idle_at > timeout

    def put(self, key: Hashable, conn: PoolableService) -> bool:
        """Store an idle connection; return whether it was kept."""
        if not self.is_enabled() or not conn.is_open():
            return False
        entries = self._idle.setdefault(key, [])
        if conn.can_share() and any(e.conn.can_share() for e in entries):
            # One shared connection per key is enough.
            return False
        if len(entries) >= self.config.max_idle_per_host:
            return False
        entries.append(_Idle(conn, self.clock()))
        return True

    def checkout(self, key: Hashable) -> Optional[PoolableService]:
        """Take the most recently idled usable connection for ``key``.

        Expired and closed connections are dropped on the way. A shared
        connection stays in the pool and a copy of it is returned.
        """
        entries = self._idle.get(key)
        if not entries:
            return None
        now = self.clock()
        found: Optional[PoolableService] = None
        while entries:
            entry = entries.pop()
            if self._expired(entry, now) or not entry.conn.is_open():
                continue
            reservation = entry.conn.reserve()
            if reservation.to_insert is not None:
                entries.append(_Idle(reservation.to_insert, entry.idle_at))
            found = reservation.to_return
            break
        if not entries:
            del self._idle[key]
        return found

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._idle.values())

    def __contains__(self, key: object) -> bool:
        return bool(self._idle.get(key))  # type: ignore[arg-type]