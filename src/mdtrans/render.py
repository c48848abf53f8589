# src/mdtrans/render.py
"""
Terminal status rendering.

Shows the status tree of the file being translated as one live line, e.g.
    [✅, ⚡ Bonjour, ⏳, [✅, ⚡]]
Rapid updates only replace the renderable; rich refreshes it a few times per
second, so the status callback never blocks on terminal I/O.
"""
from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.text import Text

from mdtrans.status import Status, status_to_text


class StatusPrinter:
    def __init__(self, console: Console, quiet: bool = False, refresh_per_second: float = 8):
        self._console = console
        self._quiet = quiet
        self._refresh_per_second = refresh_per_second
        self._live: Optional[Live] = None
        self.status: Optional[Status] = None

    def _render(self) -> Text:
        line = status_to_text(self.status) if self.status is not None else ""
        return Text(line, no_wrap=True, overflow="ellipsis")

    def start(self) -> None:
        if self._quiet or self._live is not None:
            return
        self._live = Live(
            self._render(),
            console=self._console,
            refresh_per_second=self._refresh_per_second,
            transient=False,
        )
        self._live.start()

    def update(self, status: Status) -> None:
        self.status = status
        if self._live is not None:
            self._live.update(self._render())

    def stop(self) -> None:
        if self._live is not None:
            self._live.update(self._render(), refresh=True)
            self._live.stop()
            self._live = None

    def __enter__(self) -> "StatusPrinter":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
