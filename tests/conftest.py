import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def anyio_backend():
    """Force anyio to use asyncio backend for async tests."""

    return "asyncio"


@pytest.fixture
def memory_store():
    from storage import InMemoryKeyValueStore

    return InMemoryKeyValueStore()


class StubGenerator:
    """Generative-text collaborator returning queued responses."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.prompts = []

    async def prompt(self, text):
        self.prompts.append(text)
        if not self.responses:
            return None
        return self.responses.pop(0)


@pytest.fixture
def stub_generator():
    return StubGenerator()


class FixedClock:
    def __init__(self, now=None):
        self.now = now or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FixedClock()
