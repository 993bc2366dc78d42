import pytest

from durastep.persistence import InMemoryStepLedger, SQLiteStepLedger


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sqlite_ledger(tmp_path, clock):
    ledger = SQLiteStepLedger(tmp_path / "durable.db", retry_delay=0, clock=clock)
    yield ledger
    ledger.close()


@pytest.fixture(params=["sqlite", "inmemory"])
def ledger(request, tmp_path, clock):
    if request.param == "sqlite":
        ledger = SQLiteStepLedger(tmp_path / "durable.db", retry_delay=0, clock=clock)
    else:
        ledger = InMemoryStepLedger(clock=clock)
    yield ledger
    ledger.close()
