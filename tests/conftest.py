"""
Pytest Configuration and Shared Fixtures

Provides configs, status recorders and scripted API callers for the
translation pipeline tests.
"""

# Standard library
import inspect
from typing import Any, Callable, Dict, List, Optional

# Third-party
import pytest

# Local application
from mdtrans.abort import AbortSignal
from mdtrans.config import Config
from mdtrans.status import PendingStatus, SettledStatus, Status


# ============================================================================
# Helpers
# ============================================================================

class StatusRecorder:
    """Status callback that keeps every status it receives."""

    def __init__(self) -> None:
        self.statuses: List[Status] = []

    def __call__(self, status: Status) -> None:
        self.statuses.append(status)

    @property
    def last(self) -> Status:
        return self.statuses[-1]


class FakeApiCaller:
    """
    Stands in for the transport. `handler(text, signal)` decides the settled
    status (it may be a coroutine function). Like the real transport, the
    fake reports `pending` first and then the settled status.
    """

    def __init__(self, handler: Callable[..., Any]) -> None:
        self.handler = handler
        self.calls: List[str] = []

    async def __call__(
        self,
        text: str,
        config: Config,
        on_status: Callable[[Status], None],
        signal: Optional[AbortSignal] = None,
        max_retry: int = 2,
    ) -> SettledStatus:
        self.calls.append(text)
        on_status(PendingStatus(last_token=""))
        result = self.handler(text, signal)
        if inspect.isawaitable(result):
            result = await result
        on_status(result)
        return result


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def make_config():
    """Factory for Config objects with test credentials."""
    def _make(**overrides: Any) -> Config:
        values: Dict[str, Any] = {
            "api_key": "sk-test",
            "prompt": "Translate the following Markdown into French.",
            "model": "gpt-test",
            "temperature": 0.1,
        }
        values.update(overrides)
        return Config(**values)
    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def recorder():
    return StatusRecorder()


@pytest.fixture
def fake_api():
    """Factory for FakeApiCaller."""
    return FakeApiCaller


@pytest.fixture
def ten_paragraphs():
    """Ten blank-line separated paragraphs."""
    return "\n\n".join(f"Paragraph {i}." for i in range(10))
