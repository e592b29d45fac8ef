"""In-memory snapshot of the gateway's bind-option catalog.

The catalog only changes with a server upgrade, which also requires a new
connection, so the snapshot is never invalidated. Concurrent first lookups may
both hit the network; the last successful store wins and both results are
identical.
"""

from __future__ import annotations

from dataclasses import dataclass

from db2rest.gateway.models import BindOption

__all__ = ["BindOptionCache"]


@dataclass(slots=True)
class BindOptionCache:
    _options: tuple[BindOption, ...] | None = None

    def get(self) -> tuple[BindOption, ...] | None:
        """Return the cached options, or None before the first discovery."""
        return self._options

    def store(self, options: tuple[BindOption, ...]) -> None:
        if not options:
            raise ValueError("Refusing to cache an empty bind-option catalog.")
        self._options = tuple(options)

    @property
    def populated(self) -> bool:
        return self._options is not None
