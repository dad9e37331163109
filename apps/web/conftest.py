"""
Pytest configuration for the delivery screen tests.
"""

import pytest

from apps.web.store.mock import MockStore


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def store() -> MockStore:
    """Create an empty in-memory store."""
    return MockStore()


@pytest.fixture
def sleep() -> SleepRecorder:
    """Create a sleep recorder to inject into retrying code."""
    return SleepRecorder()
