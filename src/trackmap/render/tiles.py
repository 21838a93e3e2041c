"""Tile provider failover."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from trackmap.exceptions import TileLoadError, TrackMapConfigError
from trackmap.models.tiles import DEFAULT_TILE_PROVIDERS, TileProvider

_logger = logging.getLogger(__name__)


class TileSourceChain:
    """Ordered tile providers with one-way failover.

    Every tile error advances to the next provider.  Once the last
    provider fails the chain stays on it, logs a single error and marks
    itself exhausted.
    """

    def __init__(
        self,
        providers: Sequence[TileProvider] = DEFAULT_TILE_PROVIDERS,
        *,
        on_exhausted: Callable[[TileLoadError], None] | None = None,
    ) -> None:
        if not providers:
            raise TrackMapConfigError("TileSourceChain needs at least one provider")
        self._providers = tuple(providers)
        self._index = 0
        self._exhausted = False
        self._on_exhausted = on_exhausted

    @property
    def providers(self) -> tuple[TileProvider, ...]:
        return self._providers

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> TileProvider:
        return self._providers[self._index]

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def handle_tile_error(self, error: BaseException | None = None) -> TileProvider:
        """Record a tile failure on the current provider.

        Returns the provider to use from now on.
        """
        failed = self.current
        if self._index < len(self._providers) - 1:
            self._index += 1
            _logger.warning(
                "Tile provider %s failed (%s); switching to %s",
                failed.name,
                error or "tile error",
                self.current.name,
            )
            return self.current

        if not self._exhausted:
            self._exhausted = True
            _logger.error("All tile providers failed; last tried %s", failed.name)
            if self._on_exhausted is not None:
                exhausted_error = TileLoadError(
                    f"All {len(self._providers)} tile provider(s) failed",
                    provider=failed,
                )
                try:
                    self._on_exhausted(exhausted_error)
                except Exception:
                    _logger.exception("Tile exhaustion callback failed")
        return failed

    def reset(self) -> None:
        self._index = 0
        self._exhausted = False
