"""
Pytest configuration and shared fixtures for productbot tests.
"""

import json

import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from productbot.auto_reply.commands import CommandContext
from productbot.knowledge.store import KnowledgeStore
from productbot.providers.base import LLMProvider, LLMResponse


SAMPLE_BUNDLE = {
    "meta": {"priority_products": ["ZenThink AI", "Pump Pill Arena"]},
    "system_prompt": "You are the product assistant.",
    "links": {
        "website": "https://example.com",
        "zenthink": "https://zenthink.example.com",
    },
    "responses": {
        "about": "We build AI products. See {links.website}",
        "contact": "Ask a moderator.",
        "website": "Main website: {links.website}",
        "zenthink_overview": "ZenThink AI helps you focus.",
        "zenthink_website": "ZenThink AI website: {links.zenthink}",
        "pump_overview": "Pump Pill Arena is a prediction game.",
        "pump_website": "Pump website: {links.pump}",
        "parlay_overview": "Parlay AI analyses sports parlays.",
        "trading_overview": "Trading Bot automates strategies.",
        "weekly_update_global": "New features shipped this week.",
        "empty": "",
    },
    "commands_map": {
        "about": ["about", "contact"],
        "website": ["website"],
        "zenthink": ["zenthink_overview", "zenthink_website"],
        "broken": ["missing", "empty"],
    },
}


class FakeClock:
    """Controllable modification time source."""

    def __init__(self, mtime: float = 1000.0):
        self.mtime = mtime
        self.calls = 0

    def __call__(self, path: Path) -> float:
        self.calls += 1
        return self.mtime


class FakeProvider(LLMProvider):
    """LLM provider returning canned answers."""

    def __init__(self, content: str | None = "Here is the answer.", error: str = ""):
        super().__init__(api_key="test-key")
        self.content = content
        self.error = error
        self.calls: list[dict] = []

    async def chat(self, messages, model=None, max_tokens=500, temperature=0.7):
        self.calls.append({
            "messages": messages,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error:
            return LLMResponse(content=None, finish_reason="error", error=self.error)
        return LLMResponse(content=self.content)


def write_bundle(path: Path, data: dict) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def bundle_path(tmp_path):
    """Write the sample bundle to a temporary file."""
    return write_bundle(tmp_path / "knowledge_bundle.json", SAMPLE_BUNDLE)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(bundle_path, clock):
    """A loaded knowledge store with an injected clock."""
    store = KnowledgeStore(bundle_path, mtime_reader=clock)
    store.load()
    return store


@pytest.fixture
def context():
    """Command context with mocked transport."""
    return CommandContext(
        user_id="user-1",
        channel_id="channel-1",
        is_guild=True,
        reply=AsyncMock(),
        send=AsyncMock(),
    )


@pytest.fixture
def provider():
    return FakeProvider()
