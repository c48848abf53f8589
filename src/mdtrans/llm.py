# src/mdtrans/llm.py
"""
Chat-completions transport.

Purpose:
- Send one fragment to an OpenAI-compatible chat-completions endpoint and
  stream the translation back, reporting progress through `on_status`.
- Own the per-request failure policy: in-place retry for transient API errors
  and stalled streams, `aborted` for caller cancellation, and plain `error`
  statuses for everything else. Nothing here raises for network or API errors.

Design choices:
- The OpenAI SDK handles the HTTP side (auth header, proxy-aware client, error
  body parsing) with its own retries disabled; the SSE lines are parsed here.
- An idle watchdog aborts a request that has received nothing for 30 s.
- Every call logs latency and outcome on the "mdtrans.llm" logger.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Awaitable, Dict, List, Optional, Protocol

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from mdtrans.abort import AbortController, AbortSignal, combine_abort_signals
from mdtrans.config import Config
from mdtrans.rate_limit import limit_call_rate
from mdtrans.schema import ApiErrorDetail, StreamChunk
from mdtrans.status import (
    AbortedStatus,
    DoneStatus,
    ErrorStatus,
    PendingStatus,
    SettledStatus,
    StatusCallback,
)
from mdtrans.streams import readline_from_stream

logger = logging.getLogger("mdtrans.llm")

SYSTEM_PROMPT = "You are a translator for Markdown documents."
ASSISTANT_ACK = "Okay, input the Markdown.\nI will only return the translated text."

DEFAULT_MAX_RETRY = 2
IDLE_TIMEOUT_SECONDS = 30.0
WATCHDOG_INTERVAL_SECONDS = 1.0

_CHAT_COMPLETIONS_SUFFIX = "/chat/completions"
_RETRYABLE_API_ERROR_RE = re.compile(r"You can retry")


class ApiCaller(Protocol):
    def __call__(
        self,
        text: str,
        config: Config,
        on_status: StatusCallback,
        signal: Optional[AbortSignal] = None,
        max_retry: int = DEFAULT_MAX_RETRY,
    ) -> Awaitable[SettledStatus]: ...


class _StreamStalled(Exception):
    pass


def build_messages(prompt: str, text: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
        {"role": "assistant", "content": ASSISTANT_ACK},
        {"role": "user", "content": text},
    ]


def base_url_from_endpoint(api_endpoint: str) -> str:
    """The SDK wants the API root; the config carries the full chat-completions URL."""
    endpoint = api_endpoint.rstrip("/")
    if endpoint.endswith(_CHAT_COMPLETIONS_SUFFIX):
        return endpoint[: -len(_CHAT_COMPLETIONS_SUFFIX)]
    return endpoint


def get_client(
    api_endpoint: str,
    api_key: str,
    https_proxy: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AsyncOpenAI:
    if http_client is None and https_proxy:
        http_client = openai.DefaultAsyncHttpxClient(proxy=https_proxy)
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url_from_endpoint(api_endpoint),
        max_retries=0,
        http_client=http_client,
    )


def _api_error_message(err: openai.APIStatusError) -> str:
    body = err.body
    if isinstance(body, dict):
        try:
            return ApiErrorDetail.model_validate(body).message
        except ValidationError:
            pass
    return err.message


def configure_api_caller(
    api_endpoint: str,
    api_key: str,
    rate_limit: float = 0,
    https_proxy: Optional[str] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    idle_timeout: float = IDLE_TIMEOUT_SECONDS,
    watchdog_interval: float = WATCHDOG_INTERVAL_SECONDS,
) -> ApiCaller:
    """
    Build the `call_api(text, config, on_status, signal=None, max_retry=2)`
    coroutine function, rate-limited to one start per `rate_limit` seconds.
    """
    client = get_client(api_endpoint, api_key, https_proxy, http_client)

    async def call_api(
        text: str,
        config: Config,
        on_status: StatusCallback,
        signal: Optional[AbortSignal] = None,
        max_retry: int = DEFAULT_MAX_RETRY,
    ) -> SettledStatus:
        loop = asyncio.get_running_loop()
        controller = AbortController()
        combined = combine_abort_signals(controller.signal, signal)

        aborted_by_caller = False

        def on_caller_abort() -> None:
            nonlocal aborted_by_caller
            aborted_by_caller = True

        last_receive_time = loop.time()
        t0 = time.perf_counter()

        def settle(status: SettledStatus) -> SettledStatus:
            logger.info(
                "api_call model=%s chars=%d latency_ms=%.1f status=%s",
                config.model,
                len(text),
                (time.perf_counter() - t0) * 1000.0,
                status.status,
            )
            on_status(status)
            return status

        async def retry() -> SettledStatus:
            logger.warning("retrying api call (%d retries left)", max_retry)
            on_status(PendingStatus(last_token=f"(Retrying {max_retry})"))
            return await call_api(text, config, on_status, signal, max_retry - 1)

        async def read_stream() -> SettledStatus:
            nonlocal last_receive_time
            result_text = ""
            async with client.chat.completions.with_streaming_response.create(
                model=config.model,
                temperature=config.temperature,
                messages=build_messages(config.prompt, text),
                stream=True,
            ) as response:
                async for line in readline_from_stream(response.iter_bytes()):
                    last_receive_time = loop.time()
                    if not line.strip():
                        continue
                    if "[DONE]" in line:
                        break
                    chunk = StreamChunk.model_validate(json.loads(line.split(": ", 1)[1]))
                    if not chunk.choices:
                        continue
                    choice = chunk.choices[0]
                    if choice.finish_reason == "length":
                        return ErrorStatus(message="reduce the length.")
                    content = choice.delta.content or ""
                    if content:
                        on_status(PendingStatus(last_token=content))
                    result_text += content
            return DoneStatus(translation=result_text)

        async def watchdog() -> None:
            while True:
                await asyncio.sleep(watchdog_interval)
                if loop.time() - last_receive_time > idle_timeout:
                    logger.warning("no data received for %.0f s, aborting request", idle_timeout)
                    controller.abort(_StreamStalled("Server stopped responding"))
                    return

        if signal is not None:
            signal.add_listener(on_caller_abort)
        on_status(PendingStatus(last_token=""))

        reader = asyncio.ensure_future(read_stream())

        def cancel_reader() -> None:
            reader.cancel()

        combined.add_listener(cancel_reader)
        watchdog_task = asyncio.ensure_future(watchdog())

        outcome: Optional[SettledStatus] = None
        should_retry = False
        try:
            outcome = await reader
        except asyncio.CancelledError:
            if not combined.aborted:
                raise
            # Aborted by the caller, or by the watchdog after the stream stalled.
            if aborted_by_caller:
                outcome = AbortedStatus()
            elif max_retry > 0:
                should_retry = True
            else:
                outcome = ErrorStatus(message="stream read error")
        except openai.APIStatusError as err:
            message = _api_error_message(err)
            if _RETRYABLE_API_ERROR_RE.search(message) and max_retry > 0 and not aborted_by_caller:
                should_retry = True
            else:
                outcome = ErrorStatus(message=message)
        except openai.APIConnectionError as err:
            outcome = ErrorStatus(message=str(err.__cause__ or err) or "network error")
        except (httpx.HTTPError, openai.OpenAIError, ValueError, IndexError, ValidationError) as err:
            logger.debug("stream read failed: %r", err)
            outcome = ErrorStatus(message="stream read error")
        finally:
            watchdog_task.cancel()
            combined.remove_listener(cancel_reader)
            combined.dispose()
            if signal is not None:
                signal.remove_listener(on_caller_abort)

        if should_retry:
            return await retry()
        return settle(outcome)

    return limit_call_rate(call_api, rate_limit)
