"""Bounded error recovery around the interactive map render."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from trackmap.exceptions import RenderError
from trackmap.models.point import Point
from trackmap.render.fallback import FallbackTable

_logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3


@dataclasses.dataclass(frozen=True)
class RenderResult(Generic[T]):
    """Outcome of a render: either ``value`` or ``error`` plus a fallback view."""

    ok: bool
    value: T | None = None
    error: RenderError | None = None
    fallback: Any = None

    @classmethod
    def success(cls, value: T) -> RenderResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: RenderError, fallback: Any) -> RenderResult[T]:
        return cls(ok=False, error=error, fallback=fallback)


@dataclasses.dataclass(frozen=True)
class FallbackContext:
    """What a custom fallback view receives.

    ``on_retry`` is ``None`` once the retry budget is spent.
    """

    error: RenderError | None
    on_retry: Callable[[], Any] | None
    track: tuple[Point, ...]


FallbackFactory = Callable[[FallbackContext], Any]


class ErrorRecoveryBoundary:
    """Catches render failures and offers a limited number of retries.

    After the first failure the boundary stays caught, returning the
    fallback without calling the render function again, until
    :meth:`retry` is called.  Each retry spends one unit of the budget;
    once ``max_retries`` retries are spent the fallback is permanent.
    A successful render after a failure restores the full budget.

    ``on_retry`` is the action offered to fallback views while budget
    remains; it defaults to :meth:`retry`.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        *,
        fallback_factory: FallbackFactory | None = None,
        on_error: Callable[[RenderError], None] | None = None,
        on_retry: Callable[[], Any] | None = None,
    ) -> None:
        self._max_retries = max_retries
        self._on_retry = on_retry
        self._fallback_factory = fallback_factory
        self._on_error = on_error
        self._caught = False
        self._error: RenderError | None = None
        self._retry_budget: int | None = None

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def has_error(self) -> bool:
        return self._caught

    @property
    def error(self) -> RenderError | None:
        return self._error

    @property
    def retry_budget(self) -> int:
        """Retries spent since the last failure-free render."""
        return self._retry_budget or 0

    @property
    def can_retry(self) -> bool:
        return self._caught and self.retry_budget < self._max_retries

    @property
    def permanent_fallback(self) -> bool:
        return self._caught and self.retry_budget >= self._max_retries

    def attempt(self, render_fn: Callable[[], T], track: Sequence[Point]) -> RenderResult[T]:
        """Run *render_fn* unless the boundary is currently caught."""
        if self._caught and self._error is not None:
            return RenderResult.failure(self._error, self.fallback_view(track))

        try:
            value = render_fn()
        except Exception as exc:
            error = self._catch(exc)
            return RenderResult.failure(error, self.fallback_view(track))

        if self._retry_budget is not None:
            _logger.info("Map render recovered after %d retry(ies)", self._retry_budget)
            self._retry_budget = None
        return RenderResult.success(value)

    def _catch(self, exc: Exception) -> RenderError:
        if isinstance(exc, RenderError):
            error = exc
        else:
            error = RenderError(f"Map render failed: {exc}", original=exc)
            error.__cause__ = exc

        self._caught = True
        self._error = error
        if self._retry_budget is None:
            self._retry_budget = 0

        _logger.error(
            "Map render failed (retries used %d/%d)",
            self._retry_budget,
            self._max_retries,
            exc_info=exc,
        )
        if self._on_error is not None:
            try:
                self._on_error(error)
            except Exception:
                _logger.exception("Render error callback failed")
        return error

    def retry(self) -> bool:
        """Clear the caught state if budget remains.

        Returns
        -------
        bool
            ``True`` if the next :meth:`attempt` will call the render
            function again.
        """
        if not self._caught:
            _logger.debug("Retry requested without a caught error")
            return False
        if self.retry_budget >= self._max_retries:
            _logger.warning("Maximum retry attempts reached for map render")
            return False

        self._retry_budget = self.retry_budget + 1
        self._caught = False
        self._error = None
        _logger.info("Retrying map render (attempt %d/%d)", self._retry_budget, self._max_retries)
        return True

    def fallback_view(
        self,
        track: Sequence[Point],
        *,
        on_retry: Callable[[], Any] | None = None,
    ) -> Any:
        """Fallback for the current error; a :class:`FallbackTable` unless a factory is set."""
        retry_action = (on_retry or self._on_retry or self.retry) if self.can_retry else None
        if self._fallback_factory is not None:
            return self._fallback_factory(FallbackContext(error=self._error, on_retry=retry_action, track=tuple(track)))
        return FallbackTable.from_track(track, error=self._error, retry_available=retry_action is not None)

    def reset(self) -> None:
        self._caught = False
        self._error = None
        self._retry_budget = None
