"""Shared pytest fixtures."""

from unittest.mock import AsyncMock

import pytest

from vpm.realtime.config import StreamConfig
from vpm.realtime.params import Session


class FakeDispatchClient:
    """Dispatch client double. Each remote call is an AsyncMock.

    create_session hands out sequential streams: stream-1, stream-2, ...
    """

    def __init__(self):
        self.created = 0
        self.create_session = AsyncMock(side_effect=self._create)
        self.patch_parameters = AsyncMock(return_value=None)
        self.clear_parameters = AsyncMock(return_value=None)
        self.get_stream = AsyncMock(return_value={})
        self.close = AsyncMock(return_value=None)

    def _create(self, pipeline_id=None, dimensions=None):
        self.created += 1
        return Session(
            id=f"stream-{self.created}",
            output_playback_id=f"play-{self.created}",
            whip_url=f"https://whip.example/stream-{self.created}",
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    @property
    def network_calls(self) -> int:
        return (
            self.create_session.call_count
            + self.patch_parameters.call_count
            + self.clear_parameters.call_count
        )


class FixedRandomSource:
    """Deterministic RandomSource: always the first entry and a fixed seed."""

    def __init__(self, seed: int = 1234):
        self.seed = seed

    def pick_style(self, bank):
        return bank[0]

    def pick_framing(self, bank):
        return bank[0]

    def next_seed(self):
        return self.seed


@pytest.fixture
def config():
    return StreamConfig(api_key="test-key", base_url="https://api.example/v1")


@pytest.fixture
def fake_client():
    return FakeDispatchClient()


@pytest.fixture
def fixed_random():
    return FixedRandomSource()
