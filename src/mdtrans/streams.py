# src/mdtrans/streams.py
from __future__ import annotations

import codecs
from typing import AsyncIterable, AsyncIterator, Union


async def readline_from_stream(stream: AsyncIterable[Union[bytes, str]]) -> AsyncIterator[str]:
    """
    Turn a chunked byte (or text) stream into an async iterator of lines.

    Lines are split on "\\n" and yielded without trimming. A trailing partial
    line is flushed at the end of the stream if non-empty. UTF-8 sequences cut
    across chunk boundaries are decoded correctly.
    """
    decoder = codecs.getincrementaldecoder("utf-8")()
    remaining = ""
    async for chunk in stream:
        remaining += decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        while True:
            eol = remaining.find("\n")
            if eol < 0:
                break
            line, remaining = remaining[:eol], remaining[eol + 1:]
            yield line
    remaining += decoder.decode(b"", final=True)
    if remaining:
        yield remaining
