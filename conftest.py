from datetime import date, timedelta

import pytest

from lending_library.catalog import Catalog
from lending_library.lending import LendingEngine
from lending_library.persistence import PersistenceStore
from lending_library.reporting import OUTPUT_MODE_ENV


class FakeClock:
    """Controllable replacement for date.today."""

    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int) -> None:
        self.today += timedelta(days=days)


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # Commands may switch the mode through os.environ; setenv restores it afterwards
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")


@pytest.fixture
def clock():
    return FakeClock(date(2025, 1, 1))


@pytest.fixture
def catalog():
    return Catalog()


@pytest.fixture
def engine(catalog, clock):
    return LendingEngine(catalog, clock=clock, loan_days=14, fine_per_day=1.0)


@pytest.fixture
def db_file(tmp_path):
    return str(tmp_path / "library_test.db")


@pytest.fixture
def store(db_file):
    return PersistenceStore(db_file=db_file)
