"""Shared fixtures for the ledger tests."""

import pytest
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from household_ledger.config import AppSettings
from household_ledger.events import EventLogger
from household_ledger.models.entities import Account, Category, Transaction
from household_ledger.models.kinds import TransactionKind
from household_ledger.persistence import InMemoryStateStorage
from household_ledger.store import LedgerStore


JST = timezone(timedelta(hours=9))


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, delay, function):
        self.delay = delay
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


class FakeTimerFactory:
    """Records every timer the saver creates."""

    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, function):
        timer = FakeTimer(delay, function)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]

    @property
    def live(self) -> list[FakeTimer]:
        return [t for t in self.timers if t.started and not t.cancelled]


@pytest.fixture
def app_settings():
    return AppSettings(
        timezone=None,
        max_accounts=4,
        default_app_title="Bank Management",
        default_person_name="",
        large_amount_warning=100_000_000.0,
    )


@pytest.fixture
def timer_factory():
    return FakeTimerFactory()


@pytest.fixture
def storage():
    return InMemoryStateStorage()


@pytest.fixture
def store(storage, app_settings, timer_factory):
    return LedgerStore(
        storage=storage,
        app_settings=app_settings,
        autosave_delay=0.5,
        event_logger=EventLogger(),
        timer_factory=timer_factory,
    )


@pytest.fixture
def account_a():
    return Account(name="Main Bank", number="1234567", branch_name="Shibuya", branch_code="101")


@pytest.fixture
def account_b():
    return Account(name="Savings")


@pytest.fixture
def card_x():
    return Category(name="VISA Gold")


@pytest.fixture
def food():
    return Category(name="Food")


def make_transaction(kind: TransactionKind, amount: float, **fields) -> Transaction:
    """Build a transaction with a fixed default date."""
    fields.setdefault("date", datetime(2025, 1, 10, 12, 0))
    return Transaction(kind=kind, amount=amount, **fields)


def new_id():
    return uuid4()
