"""Authorization oracles.

The mapper asks an oracle whether a matched command may run::

    oracle.allow("karma::for", message.source, message.replyto) -> bool

Any object with that method satisfies ``AuthOracle``. Two are provided:
``AllowAll`` for bots without permissions, and ``PermissionTable``, which
resolves hierarchical paths (``karma::for`` falls back to ``karma``).

Usage::

    table = PermissionTable()
    table.set("karma", True)
    table.set("karma::set", False)
    table.set("karma::set", True, user="alice")

    table.allow("karma::for", "bob", "#chan")   # True
    table.allow("karma::set", "bob", "#chan")   # False
    table.allow("karma::set", "alice", "#chan") # True
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from msgmap.errors import ConfigurationError

logger = logging.getLogger("msgmap.auth")

ANY = "*"


@runtime_checkable
class AuthOracle(Protocol):
    """Decides whether ``source`` may run the command at ``auth_path``."""

    def allow(self, auth_path: str, source: Any, replyto: Any) -> bool: ...


@dataclass(frozen=True, slots=True)
class AllowAll:
    """Oracle that authorizes everything."""

    def allow(self, auth_path: str, source: Any, replyto: Any) -> bool:
        return True


class PermissionTable:
    """Hierarchical permission table.

    A permission is stored for ``(path, user, channel)``; ``"*"`` matches
    anyone or anywhere. Lookup walks from the full path up to its first
    component and stops at the first path that has any applicable entry.
    Within one path, entries for a specific user beat entries for ``"*"``,
    and a specific channel beats ``"*"``.
    """

    __slots__ = ("_default", "_entries", "_lock", "_separator")

    def __init__(self, default: bool = False, separator: str = "::") -> None:
        if not separator:
            msg = "PermissionTable separator must be a non-empty string"
            raise ConfigurationError(msg)
        self._default = default
        self._separator = separator
        self._entries: dict[tuple[str, str, str], bool] = {}
        self._lock = threading.Lock()

    def set(self, path: str, allowed: bool, *, user: Any = ANY, channel: Any = ANY) -> None:
        """Grant or deny *path* to *user* on *channel*."""
        with self._lock:
            self._entries[(path, str(user), str(channel))] = allowed

    def reset(self, path: str, *, user: Any = ANY, channel: Any = ANY) -> None:
        """Remove an entry; lookups fall back to the parent path."""
        with self._lock:
            self._entries.pop((path, str(user), str(channel)), None)

    def lookup(self, auth_path: str, source: Any, replyto: Any) -> bool | None:
        """Return the most specific entry for the request, or ``None``."""
        user, channel = str(source), str(replyto)
        candidates = (
            (user, channel),
            (user, ANY),
            (ANY, channel),
            (ANY, ANY),
        )
        parts = auth_path.split(self._separator)
        with self._lock:
            for depth in range(len(parts), 0, -1):
                path = self._separator.join(parts[:depth])
                for who, where in candidates:
                    allowed = self._entries.get((path, who, where))
                    if allowed is not None:
                        return allowed
        return None

    def allow(self, auth_path: str, source: Any, replyto: Any) -> bool:
        allowed = self.lookup(auth_path, source, replyto)
        if allowed is None:
            logger.debug("No permission for %s, using default %s", auth_path, self._default)
            return self._default
        return allowed

    def __len__(self) -> int:
        return len(self._entries)
