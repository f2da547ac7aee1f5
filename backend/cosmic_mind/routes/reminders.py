from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, TypeAdapter, ValidationError
from typing import List, Optional
from datetime import datetime, timezone
import pytz
from cosmic_mind.core.config import settings
from cosmic_mind.core.deps import get_current_user, get_reminder_scheduler
from cosmic_mind.db.session import get_db
from cosmic_mind.models.reminder import Recurrence, Reminder, ReminderRecord
from cosmic_mind.models.user import User
from cosmic_mind.services.reminder_scheduler import ReminderScheduler
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

REPEAT_VALUES = [r.value for r in Recurrence]

_datetime_adapter = TypeAdapter(datetime)


class ReminderCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = ""
    reminderTime: Optional[str] = None
    repeat: str = Recurrence.ONCE.value
    telegramChatId: Optional[str] = ""


class ReminderSummary(BaseModel):
    id: str
    title: str
    reminderTime: str
    repeat: str
    isActive: bool


class ReminderCreated(BaseModel):
    message: str
    reminder: ReminderSummary


class ReminderResponse(BaseModel):
    id: str
    title: str
    description: str
    reminderTime: str
    repeat: str
    isActive: bool
    nextFireTime: Optional[str] = None


class RemindersListResponse(BaseModel):
    activeReminders: List[ReminderResponse]
    pastReminders: List[ReminderResponse]
    total: int
    activeCount: int


def parse_reminder_time(value: str) -> Optional[datetime]:
    """ISO-8601 date-time, or None when it cannot be parsed"""
    try:
        return _datetime_adapter.validate_python(value)
    except ValidationError:
        return None


def to_utc(value: datetime) -> datetime:
    """Naive times are wall-clock times in the reference timezone"""
    if value.tzinfo is None:
        value = pytz.timezone(settings.reminder_timezone).localize(value)
    return value.astimezone(timezone.utc)


def to_response(record: ReminderRecord, reminder_scheduler: ReminderScheduler) -> ReminderResponse:
    next_fire = reminder_scheduler.next_fire_time(record.id)
    return ReminderResponse(
        id=record.id,
        title=record.title,
        description=record.description,
        reminderTime=record.fire_time_utc.isoformat(),
        repeat=record.recurrence,
        isActive=record.active,
        nextFireTime=next_fire.isoformat() if next_fire else None
    )


def _find_owned(db: Session, reminder_id: str, user: User) -> Reminder:
    reminder = db.query(Reminder).filter(
        Reminder.id == reminder_id,
        Reminder.user_id == user.id
    ).first()
    if not reminder:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reminder not found")
    return reminder


@router.post("/reminders", response_model=ReminderCreated, status_code=status.HTTP_201_CREATED)
async def create_reminder(
    reminder_data: ReminderCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    reminder_scheduler: ReminderScheduler = Depends(get_reminder_scheduler)
):
    """Create a reminder and schedule it.

    One-time reminders in the past are accepted but never fire.
    """

    if not reminder_data.title or not reminder_data.reminderTime:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title and reminder time are required")
    reminder_time = parse_reminder_time(reminder_data.reminderTime)
    if reminder_time is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid reminder time")
    if reminder_data.repeat not in REPEAT_VALUES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Repeat must be 'once', 'daily', 'weekly', or 'monthly'"
        )

    try:
        reminder = Reminder(
            user_id=current_user.id,
            title=reminder_data.title,
            description=reminder_data.description or "",
            fire_time=to_utc(reminder_time),
            repeat=reminder_data.repeat,
            telegram_chat_id=reminder_data.telegramChatId or "",
            is_active=True
        )
        db.add(reminder)
        db.commit()
        db.refresh(reminder)
    except Exception as e:
        logger.error(f"Create reminder error: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create reminder")

    record = ReminderRecord.from_model(reminder)
    reminder_scheduler.on_reminder_created(record)

    local_time = record.fire_time_utc.astimezone(pytz.timezone(settings.reminder_timezone))
    return ReminderCreated(
        message="Reminder created successfully",
        reminder=ReminderSummary(
            id=record.id,
            title=record.title,
            reminderTime=local_time.isoformat(),
            repeat=record.recurrence,
            isActive=record.active
        )
    )


@router.get("/reminders", response_model=RemindersListResponse)
async def list_reminders(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    reminder_scheduler: ReminderScheduler = Depends(get_reminder_scheduler)
):
    """List the user's reminders split into active and past"""

    reminders = (
        db.query(Reminder)
        .filter(Reminder.user_id == current_user.id)
        .order_by(Reminder.fire_time)
        .all()
    )
    records = [ReminderRecord.from_model(r) for r in reminders]
    active = [to_response(r, reminder_scheduler) for r in records if r.active]
    past = [to_response(r, reminder_scheduler) for r in records if not r.active]

    return RemindersListResponse(
        activeReminders=active,
        pastReminders=past,
        total=len(records),
        activeCount=len(active)
    )


@router.delete("/reminders/{reminder_id}")
async def delete_reminder(
    reminder_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    reminder_scheduler: ReminderScheduler = Depends(get_reminder_scheduler)
):
    try:
        reminder = _find_owned(db, reminder_id, current_user)
        db.delete(reminder)
        db.commit()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete reminder error: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete reminder")

    reminder_scheduler.on_reminder_deleted(reminder_id)
    return {"message": "Reminder deleted successfully"}


@router.put("/reminders/{reminder_id}/toggle")
async def toggle_reminder(
    reminder_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    reminder_scheduler: ReminderScheduler = Depends(get_reminder_scheduler)
):
    """Flip a reminder's active flag and schedule or cancel its job to match"""

    try:
        reminder = _find_owned(db, reminder_id, current_user)
        reminder.is_active = not reminder.is_active
        db.commit()
        db.refresh(reminder)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Toggle reminder error: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to toggle reminder")

    record = ReminderRecord.from_model(reminder)
    reminder_scheduler.on_reminder_toggled(record)

    return {
        "message": "Reminder activated" if record.active else "Reminder deactivated",
        "isActive": record.active
    }
