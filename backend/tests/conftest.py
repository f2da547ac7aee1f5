"""Shared fixtures: in-memory database, fake notification channel, fixed clock."""
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cosmic_mind.db.session import create_tables
from cosmic_mind.models.reminder import Reminder, ReminderRecord
from cosmic_mind.models.user import User
from cosmic_mind.services.clock import FixedClock
from cosmic_mind.services.notification_channel import DeliveryResult
from cosmic_mind.services.reminder_dispatcher import ReminderDispatcher
from cosmic_mind.services.reminder_scheduler import ReminderScheduler
from cosmic_mind.services.reminder_store import ReminderStore
from cosmic_mind.services.retry_policy import RetryPolicy

TZ = "Asia/Kolkata"

# 2025-01-15 06:30 IST, a Wednesday
NOW = datetime(2025, 1, 15, 1, 0, tzinfo=timezone.utc)


class FakeChannel:
    """Records sends and replays scripted results (success once the script runs out)"""

    def __init__(self, results: Optional[List[DeliveryResult]] = None, store: Optional[ReminderStore] = None):
        self.results = list(results or [])
        self.calls: List[Tuple[str, str]] = []
        self.store = store
        self.active_at_send: List[Optional[bool]] = []
        self.watch_id: Optional[str] = None

    async def send(self, destination: str, text: str) -> DeliveryResult:
        self.calls.append((destination, text))
        if self.store and self.watch_id:
            record = self.store.find_reminder(self.watch_id)
            self.active_at_send.append(record.active if record else None)
        if self.results:
            return self.results.pop(0)
        return DeliveryResult.success()


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def store(session_factory):
    return ReminderStore(session_factory)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def channel(store):
    return FakeChannel(store=store)


@pytest.fixture
def dispatcher(channel, store, clock, sleep):
    return ReminderDispatcher(
        channel=channel,
        store=store,
        retry_policy=RetryPolicy(max_attempts=2, delay_seconds=5.0),
        clock=clock,
        timezone=TZ,
        default_destination="fallback-chat",
        sleep=sleep,
    )


@pytest.fixture
def aps():
    # Never started: jobs stay pending, which is enough to inspect triggers
    return AsyncIOScheduler(timezone=TZ)


@pytest.fixture
def reminder_scheduler(aps, dispatcher, store, clock):
    return ReminderScheduler(aps, dispatcher, store, clock=clock, timezone=TZ)


@pytest.fixture
def user(session_factory):
    db = session_factory()
    try:
        user = User(username="alice", password_hash="x", telegram_chat_id="linked-chat")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user.id
    finally:
        db.close()


@pytest.fixture
def make_reminder(session_factory, user):
    def _make(fire_time: datetime, repeat: str = "once", active: bool = True,
              destination: str = "", title: str = "Drink water", description: str = "") -> ReminderRecord:
        db = session_factory()
        try:
            reminder = Reminder(
                user_id=user,
                title=title,
                description=description,
                fire_time=fire_time,
                repeat=repeat,
                telegram_chat_id=destination,
                is_active=active,
            )
            db.add(reminder)
            db.commit()
            db.refresh(reminder)
            return ReminderRecord.from_model(reminder)
        finally:
            db.close()

    return _make
