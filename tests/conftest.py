"""Shared fixtures for bot tests."""

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest
from botbuilder.schema import Activity, ChannelAccount, ConversationAccount
from loguru import logger

from healthplan_bot.config import Settings

ENV_VARS = (
    "AZURE_OPENAI_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_DEPLOYMENT",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_SEARCH_ENDPOINT",
    "AZURE_SEARCH_KEY",
    "AZURE_SEARCH_INDEX",
    "BOT_ID",
    "BOT_PASSWORD",
    "OBSERVABILITY",
)


def pytest_configure(config):
    """Set pytest-asyncio mode to auto so async test functions work without markers."""
    config.option.asyncio_mode = "auto"


# ---------------------------------------------------------------------------
# Environment / settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make sure no real credentials from the shell leak into a test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def required_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set the four required variables."""
    monkeypatch.setenv("AZURE_OPENAI_KEY", "test-key")
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://test.openai.azure.com/")
    monkeypatch.setenv("AZURE_SEARCH_ENDPOINT", "https://test.search.windows.net")
    monkeypatch.setenv("AZURE_SEARCH_KEY", "search-key")


def make_settings(**overrides) -> Settings:
    """Create a Settings instance that never reads a real .env file."""
    values = {
        "azure_openai_key": "test-key",
        "azure_openai_endpoint": "https://test.openai.azure.com/",
        "azure_search_endpoint": "https://test.search.windows.net",
        "azure_search_key": "search-key",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


# ---------------------------------------------------------------------------
# Activities / turn context
# ---------------------------------------------------------------------------


def make_activity(text: str | None = "Hello", **overrides) -> Activity:
    values = {
        "type": "message",
        "id": "activity-1",
        "text": text,
        "channel_id": "msteams",
        "service_url": "https://smba.trafficmanager.net/amer/",
        "from_property": ChannelAccount(id="user-1", name="Alice"),
        "recipient": ChannelAccount(id="bot-1", name="Health Bot"),
        "conversation": ConversationAccount(id="conv-1"),
    }
    values.update(overrides)
    return Activity(**values)


class RecordingContext:
    """Turn context stand-in that keeps every outbound activity.

    ``data`` plays the part of the action parameters the planner hands to
    an action handler. With ``error`` set, every send raises it.
    """

    def __init__(self, activity: Activity | None = None, data=None, error: Exception | None = None):
        self.activity = activity or make_activity()
        self.data = data
        self.error = error
        self.sent: list = []
        self.traces: list[SimpleNamespace] = []

    async def send_activity(self, activity_or_text):
        if self.error is not None:
            raise self.error
        self.sent.append(activity_or_text)

    async def send_trace_activity(self, name, value=None, value_type=None, label=None):
        if self.error is not None:
            raise self.error
        self.traces.append(SimpleNamespace(name=name, value=value, value_type=value_type, label=label))


@pytest.fixture()
def context() -> RecordingContext:
    return RecordingContext()


class FakeModel:
    """Completion model placeholder; planner tests never reach it."""

    def __init__(self) -> None:
        self.calls: list = []

    async def complete(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        raise AssertionError("the completion model should not be called")


# ---------------------------------------------------------------------------
# Logging / prompts
# ---------------------------------------------------------------------------


@pytest.fixture()
def log_records():
    """Capture loguru records emitted during the test."""
    records: list[dict] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture()
def prompts_folder(tmp_path: Path) -> Path:
    """A prompts folder with a single minimal ``chat`` template."""
    folder = tmp_path / "prompts" / "chat"
    folder.mkdir(parents=True)
    (folder / "skprompt.txt").write_text("You answer health plan questions.\n", encoding="utf-8")
    (folder / "config.json").write_text(
        json.dumps(
            {
                "schema": 1.1,
                "description": "test",
                "type": "completion",
                "completion": {
                    "completion_type": "chat",
                    "include_history": True,
                    "include_input": True,
                    "max_input_tokens": 2800,
                    "max_tokens": 200,
                    "temperature": 0.5,
                    "top_p": 0.0,
                    "presence_penalty": 0.0,
                    "frequency_penalty": 0.0,
                    "stop_sequences": [],
                },
            }
        ),
        encoding="utf-8",
    )
    return tmp_path / "prompts"
