from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from typing import Any

import pytest

from arkestone.api import set_transport
from arkestone.exceptions import ArkestoneTransportError
from arkestone.notify import set_notifier
from arkestone.registry import clear_stores
from arkestone.storage import MemoryStorage, set_default_storage
from arkestone.transport import HttpRequest, HttpResponse

_ENV_VARS = (
    "ARKESTONE_API_URL",
    "ARKESTONE_API_SAME_ORIGIN",
    "ARKESTONE_API_WITH_CREDENTIALS",
    "ARKESTONE_THEME",
    "ARKESTONE_CURRENCY",
    "ARKESTONE_STORAGE_DIR",
)


class FakeTransport:
    """Records requests and replays queued replies (or transport errors)."""

    def __init__(self) -> None:
        self.requests: list[HttpRequest] = []
        self._replies: deque[HttpResponse | ArkestoneTransportError] = deque()

    def reply(self, body: Any, status: int = 200) -> None:
        self._replies.append(HttpResponse(status=status, body=body))

    def fail(self, status: int | None = 500, payload: Any = None, message: str | None = None) -> None:
        text = message or f"Request failed with status code {status}"
        self._replies.append(ArkestoneTransportError(text, status_code=status, url="/fake", payload=payload))

    @property
    def last(self) -> HttpRequest:
        return self.requests[-1]

    async def send(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        reply = self._replies.popleft() if self._replies else HttpResponse(status=200, body={"status": "success"})
        if isinstance(reply, ArkestoneTransportError):
            raise reply
        return reply


class RecordingNotifier:
    def __init__(self) -> None:
        self.successes: list[str] = []
        self.errors: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture(autouse=True)
def storage(monkeypatch: pytest.MonkeyPatch) -> Iterator[MemoryStorage]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    memory = MemoryStorage()
    set_default_storage(memory)
    clear_stores()
    yield memory
    clear_stores()
    set_default_storage(None)
    set_notifier(None)
    set_transport(None)


@pytest.fixture
def transport() -> FakeTransport:
    fake = FakeTransport()
    set_transport(fake)
    return fake


@pytest.fixture
def notifier() -> RecordingNotifier:
    recording = RecordingNotifier()
    set_notifier(recording)
    return recording
