# src/mdtrans/abort.py
"""
Cooperative cancellation primitive.

An AbortController owns an AbortSignal. Signals can be combined so that one
consumer (e.g. an HTTP request) is cancelled when any of several sources fires:
the caller, a sibling failure, or the idle-timeout watchdog.

All of this runs on a single asyncio event loop, so no locking is involved.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional, Sequence

Listener = Callable[[], None]


class AbortSignal:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._listeners: List[Listener] = []
        self.reason: Optional[Any] = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def add_listener(self, listener: Listener) -> None:
        """Register a callback fired once on abort (immediately if already aborted)."""
        if self.aborted:
            listener()
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def wait(self) -> None:
        await self._event.wait()

    def _fire(self, reason: Optional[Any]) -> None:
        if self.aborted:
            return
        self.reason = reason
        self._event.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener()


class AbortController:
    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: Optional[Any] = None) -> None:
        self.signal._fire(reason)


class CombinedAbortSignal(AbortSignal):
    """Signal that aborts as soon as any of its sources does."""

    def __init__(self, sources: Sequence[AbortSignal]) -> None:
        super().__init__()
        self._sources = list(sources)
        for source in self._sources:
            if source.aborted:
                self._on_source_abort()
                return
            source.add_listener(self._on_source_abort)

    def _on_source_abort(self) -> None:
        self.dispose()
        reason = next((s.reason for s in self._sources if s.aborted), None)
        self._fire(reason)

    def dispose(self) -> None:
        """Detach from the sources. Call once the consumer has settled."""
        for source in self._sources:
            source.remove_listener(self._on_source_abort)


def combine_abort_signals(*signals: Optional[AbortSignal]) -> CombinedAbortSignal:
    """Return a signal that aborts as soon as any of `signals` does. None entries are ignored."""
    return CombinedAbortSignal([s for s in signals if s is not None])
