# src/mdtrans/translate.py
"""
Fragment translation pipeline.

Purpose:
- translate_one: translate a single fragment through the injected `call_api`.
  When the model reports the fragment as too long (or the stream breaks), the
  fragment is bisected at a blank line and both halves are translated instead.
- translate_multiple: translate fragments concurrently and aggregate their
  statuses into one `split` status tree for the UI.

Invariants:
- Exactly one settled status is emitted (and returned) per call.
- A split group is `done` iff every member is `done`; otherwise it is an
  `error` carrying the members' error messages.
- Translations are joined in fragment order, whatever the completion order.
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional, Sequence, Tuple

from mdtrans.abort import AbortController, AbortSignal, combine_abort_signals
from mdtrans.config import Config
from mdtrans.llm import ApiCaller
from mdtrans.markdown import split_string_at_blank_lines
from mdtrans.status import (
    DoneStatus,
    ErrorStatus,
    SettledStatus,
    SplitStatus,
    Status,
    StatusCallback,
    WaitingStatus,
    extract_errors_from_status,
)

logger = logging.getLogger("mdtrans.translate")

# Errors that mean "this input is too much for one request": retried by bisection.
_RECOVERABLE_ERROR_RE = re.compile(r"reduce the length|stream read error", re.IGNORECASE)


class TranslationError(RuntimeError):
    pass


def is_recoverable_error(status: Status) -> bool:
    return isinstance(status, ErrorStatus) and _RECOVERABLE_ERROR_RE.search(status.message) is not None


async def translate_one(
    call_api: ApiCaller,
    text: str,
    config: Config,
    on_status: StatusCallback,
    signal: Optional[AbortSignal] = None,
) -> SettledStatus:
    on_status(WaitingStatus())

    # Recoverable errors never become this fragment's visible state.
    def handle_status(status: Status) -> None:
        if is_recoverable_error(status):
            return
        on_status(status)

    res = await call_api(text, config, handle_status, signal)
    if not is_recoverable_error(res):
        return res

    halves = split_string_at_blank_lines(text, 0)
    if halves is None:
        # Nothing left to split (e.g. a lone code block): keep the input as is.
        logger.info("fragment cannot be split further (%d chars), keeping it untranslated", len(text))
        done = DoneStatus(translation=text)
        on_status(done)
        return done

    logger.info("bisecting fragment (%d chars) after: %s", len(text), res.message)
    return await translate_multiple(call_api, halves, config, on_status, signal)


async def translate_multiple(
    call_api: ApiCaller,
    fragments: Sequence[str],
    config: Config,
    on_status: StatusCallback,
    signal: Optional[AbortSignal] = None,
) -> SettledStatus:
    members: Tuple[Status, ...] = tuple(WaitingStatus() for _ in fragments)

    # Aborted when any member fails, so that its siblings stop early.
    controller = AbortController()
    combined = combine_abort_signals(signal, controller.signal)

    on_status(SplitStatus(members=members))

    def member_handler(index: int) -> StatusCallback:
        def on_sub_status(status: Status) -> None:
            nonlocal members
            members = members[:index] + (status,) + members[index + 1:]
            on_status(SplitStatus(members=members))
            if isinstance(status, ErrorStatus):
                controller.abort()

        return on_sub_status

    try:
        results: List[SettledStatus] = await asyncio.gather(
            *(
                translate_one(call_api, fragment, config, member_handler(index), combined)
                for index, fragment in enumerate(fragments)
            )
        )
    finally:
        combined.dispose()
    members = tuple(results)

    if all(isinstance(m, DoneStatus) for m in members):
        last_status: SettledStatus = DoneStatus(
            translation="\n\n".join(m.translation for m in members)  # type: ignore[union-attr]
        )
    else:
        last_status = ErrorStatus(
            message="\n".join(msg for m in members for msg in extract_errors_from_status(m))
        )
    on_status(last_status)
    return last_status
