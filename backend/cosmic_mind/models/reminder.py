from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cosmic_mind.db.base import Base
import uuid


class Recurrence(str, Enum):
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC; naive values are taken as UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Reminder(Base):
    __tablename__ = "reminder"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, default="")
    fire_time = Column(DateTime(timezone=True), nullable=False)  # UTC anchor
    repeat = Column(String, default=Recurrence.ONCE.value, nullable=False)
    telegram_chat_id = Column(String, default="")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")

    def __repr__(self):
        return f"<Reminder(title='{self.title[:30]}', fire_time='{self.fire_time}', repeat='{self.repeat}')>"


@dataclass(frozen=True)
class ReminderRecord:
    """Session-free snapshot of a reminder, as handed to the scheduler and dispatcher.

    ``recurrence`` is kept as the raw stored string so that unexpected values
    reach the scheduler, which treats them as one-shot.
    """

    id: str
    owner_id: str
    title: str
    fire_time_utc: datetime
    recurrence: str = Recurrence.ONCE.value
    description: str = ""
    destination: str = ""
    active: bool = True
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, reminder: Reminder) -> "ReminderRecord":
        return cls(
            id=str(reminder.id),
            owner_id=str(reminder.user_id),
            title=reminder.title,
            description=reminder.description or "",
            fire_time_utc=as_utc(reminder.fire_time),
            recurrence=reminder.repeat or Recurrence.ONCE.value,
            destination=reminder.telegram_chat_id or "",
            active=bool(reminder.is_active),
            created_at=as_utc(reminder.created_at),
        )

    @property
    def is_one_shot(self) -> bool:
        return self.recurrence not in (
            Recurrence.DAILY.value,
            Recurrence.WEEKLY.value,
            Recurrence.MONTHLY.value,
        )

    def with_active(self, active: bool) -> "ReminderRecord":
        return replace(self, active=active)

    def to_dict(self) -> Dict[str, Any]:
        """Persisted wire shape of a reminder"""
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "title": self.title,
            "description": self.description,
            "fireTimeUtc": self.fire_time_utc.isoformat(),
            "recurrence": self.recurrence,
            "destination": self.destination,
            "active": self.active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
