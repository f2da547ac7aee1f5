"""
Reminder persistence used by the scheduler and dispatcher.
Each call opens and closes its own session so it is safe to use from job callbacks.
"""
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from cosmic_mind.db.base import SessionLocal
from cosmic_mind.models.reminder import Reminder, ReminderRecord
from cosmic_mind.models.user import User

logger = logging.getLogger(__name__)


class ReminderStore:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def find_reminder(self, reminder_id: str) -> Optional[ReminderRecord]:
        db = self.session_factory()
        try:
            reminder = db.query(Reminder).filter(Reminder.id == reminder_id).first()
            return ReminderRecord.from_model(reminder) if reminder else None
        finally:
            db.close()

    def list_active(self, owner_id: Optional[str] = None) -> List[ReminderRecord]:
        db = self.session_factory()
        try:
            query = db.query(Reminder).filter(Reminder.is_active.is_(True))
            if owner_id is not None:
                query = query.filter(Reminder.user_id == owner_id)
            return [ReminderRecord.from_model(r) for r in query.order_by(Reminder.fire_time).all()]
        finally:
            db.close()

    def set_active(self, reminder_id: str, active: bool) -> bool:
        """Returns False when the reminder no longer exists"""
        db = self.session_factory()
        try:
            reminder = db.query(Reminder).filter(Reminder.id == reminder_id).first()
            if not reminder:
                return False
            reminder.is_active = active
            db.commit()
            return True
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def delete(self, reminder_id: str) -> bool:
        db = self.session_factory()
        try:
            deleted = db.query(Reminder).filter(Reminder.id == reminder_id).delete()
            db.commit()
            return deleted > 0
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def linked_destination(self, owner_id: str) -> Optional[str]:
        """Telegram chat id linked to the owner's account, if any"""
        db = self.session_factory()
        try:
            user = db.query(User).filter(User.id == owner_id).first()
            return user.telegram_chat_id if user and user.telegram_chat_id else None
        finally:
            db.close()
