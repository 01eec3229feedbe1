import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeClock:
    """Manually advanced clock returning epoch-style seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
