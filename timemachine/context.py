"""Ambient "current time zone" for a logical call chain.

The override lives in a :class:`contextvars.ContextVar`, so each thread and
each asyncio task sees its own value. Tasks created inside a scope inherit the
zone that was current when they were created; threads do not, so hand work to
a thread pool through :meth:`AmbientZoneContext.wrap`.
"""

from __future__ import annotations

import contextvars
import functools
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from .exceptions import InvalidArgumentError
from .zones import ZoneCache, ZoneHandle, detect_system_timezone

logger = logging.getLogger(__name__)

T = TypeVar("T")

ZoneLike = ZoneHandle | str


class AmbientZoneContext:
    """Holds the default zone and the per-call-chain override.

    ``start_scope``/``end_scope`` replace and clear the override; they do not
    stack. :meth:`scope` restores whatever was current before it was entered,
    so nested ``with`` blocks unwind correctly.
    """

    def __init__(self, cache: ZoneCache, default: ZoneLike | None = None) -> None:
        """Initialize the context.

        Args:
            cache: Cache used to resolve zone identifiers
            default: Default zone; the host's zone is detected lazily when omitted
        """
        self._cache = cache
        self._lock = threading.Lock()
        self._default: ZoneHandle | None = None
        self._override: contextvars.ContextVar[ZoneHandle | None] = contextvars.ContextVar(
            f"timemachine_zone_{id(self):x}", default=None
        )
        if default is not None:
            self._default = self._to_handle(default)

    @property
    def cache(self) -> ZoneCache:
        return self._cache

    @property
    def default(self) -> ZoneHandle:
        """Zone used when no scope is active in the calling chain."""
        with self._lock:
            if self._default is not None:
                return self._default
        detected = self._cache.resolve(detect_system_timezone())
        with self._lock:
            if self._default is None:
                self._default = detected
                logger.debug("Default zone set to detected system zone %s", detected.iana_id)
            return self._default

    @default.setter
    def default(self, zone: ZoneLike) -> None:
        handle = self._to_handle(zone)
        with self._lock:
            self._default = handle
        logger.debug("Default zone set to %s", handle.iana_id)

    def current(self) -> ZoneHandle:
        """Return the override for the calling chain, or the default zone."""
        override = self._override.get()
        return override if override is not None else self.default

    def current_override(self) -> ZoneHandle | None:
        """Return the override for the calling chain without falling back."""
        return self._override.get()

    def start_scope(self, zone: ZoneLike) -> ZoneHandle:
        """Set the override for the calling chain, replacing any previous one.

        Args:
            zone: A resolved handle or an IANA identifier

        Returns:
            The handle that is now current.

        Raises:
            InvalidArgumentError: If ``zone`` is None.
            UnknownZoneError: If ``zone`` is an identifier the database lacks.
        """
        handle = self._to_handle(zone)
        self._override.set(handle)
        logger.debug("Entered zone scope %s", handle.iana_id)
        return handle

    def end_scope(self) -> None:
        """Clear the override for the calling chain."""
        self._override.set(None)
        logger.debug("Left zone scope")

    @contextmanager
    def scope(self, zone: ZoneLike) -> Iterator[ZoneHandle]:
        """Make ``zone`` current for the body of a ``with`` block.

        The previous override is restored on every exit path, including
        exceptions.
        """
        handle = self._to_handle(zone)
        token = self._override.set(handle)
        logger.debug("Entered zone scope %s", handle.iana_id)
        try:
            yield handle
        finally:
            self._override.reset(token)
            logger.debug("Left zone scope %s", handle.iana_id)

    def wrap(self, fn: Callable[..., T]) -> Callable[..., T]:
        """Bind the calling chain's context to ``fn``.

        Use this to hand work to threads or executors so the callee sees the
        same current zone as the caller did at wrap time.
        """
        captured = contextvars.copy_context()

        @functools.wraps(fn)
        def _bound(*args: Any, **kwargs: Any) -> T:
            # A Context cannot be entered by two threads at once
            return captured.copy().run(fn, *args, **kwargs)

        return _bound

    def _to_handle(self, zone: ZoneLike | None) -> ZoneHandle:
        if zone is None:
            raise InvalidArgumentError("zone must not be None")
        if isinstance(zone, ZoneHandle):
            return zone
        if isinstance(zone, str):
            return self._cache.resolve(zone)
        raise InvalidArgumentError(f"zone must be a ZoneHandle or IANA id, got {type(zone).__name__}")
