# src/mdtrans/status.py
"""
Translation status model.

Every fragment (or group of fragments) reports its progress as one of the
variants below. A `split` node owns the statuses of its members, so the status
of a whole document is a tree that can be reduced to one display line.

Settled statuses (done / error / aborted) are terminal.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, ClassVar, List, Tuple, Union


@dataclass(frozen=True)
class WaitingStatus:
    status: ClassVar[str] = "waiting"


@dataclass(frozen=True)
class PendingStatus:
    status: ClassVar[str] = "pending"
    # Most recent content chunk received from the stream (may be empty)
    last_token: str = ""


@dataclass(frozen=True)
class SplitStatus:
    status: ClassVar[str] = "split"
    members: Tuple["Status", ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DoneStatus:
    status: ClassVar[str] = "done"
    translation: str


@dataclass(frozen=True)
class ErrorStatus:
    status: ClassVar[str] = "error"
    message: str


@dataclass(frozen=True)
class AbortedStatus:
    status: ClassVar[str] = "aborted"


Status = Union[WaitingStatus, PendingStatus, SplitStatus, DoneStatus, ErrorStatus, AbortedStatus]
SettledStatus = Union[DoneStatus, ErrorStatus, AbortedStatus]

# Observer invoked synchronously on every status change.
StatusCallback = Callable[[Status], None]


def is_settled(status: Status) -> bool:
    return isinstance(status, (DoneStatus, ErrorStatus, AbortedStatus))


def status_to_text(status: Status) -> str:
    """Reduce a status (tree) to a short, single-line string for the terminal."""
    if isinstance(status, WaitingStatus):
        return "⏳"
    if isinstance(status, PendingStatus):
        if not status.last_token:
            return "⚡"
        return "⚡ " + status.last_token.replace("\n", " ")
    if isinstance(status, SplitStatus):
        return "[" + ", ".join(status_to_text(m) for m in status.members) + "]"
    if isinstance(status, DoneStatus):
        return "✅"
    if isinstance(status, ErrorStatus):
        return "❌ " + status.message
    if isinstance(status, AbortedStatus):
        return "🛑"
    raise TypeError(f"Unknown status: {status!r}")


def extract_errors_from_status(status: Status) -> List[str]:
    """Collect error messages found anywhere in a status tree, in member order."""
    if isinstance(status, ErrorStatus):
        return [status.message]
    if isinstance(status, SplitStatus):
        return [msg for member in status.members for msg in extract_errors_from_status(member)]
    return []
