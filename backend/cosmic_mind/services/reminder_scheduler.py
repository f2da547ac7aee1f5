"""
Reminder Scheduler - turns stored reminders into APScheduler jobs.

Owns the job registry (reminder id -> job handle). There is exactly one live
job per active reminder and none for inactive ones. The registry is derived
state only; on startup it is rebuilt from the persisted active reminders.

All registry access happens on the event loop thread (request handlers and
the asyncio executor), so the mapping is not locked. Cancelling a reminder
stops future firings only; a callback already running is not interrupted.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

import pytz
from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from cosmic_mind.models.reminder import Recurrence, ReminderRecord
from cosmic_mind.services.clock import Clock, SystemClock
from cosmic_mind.services.reminder_dispatcher import ReminderDispatcher
from cosmic_mind.services.reminder_store import ReminderStore

logger = logging.getLogger(__name__)

RECURRING = (Recurrence.DAILY.value, Recurrence.WEEKLY.value, Recurrence.MONTHLY.value)


def job_id_for(reminder_id: str) -> str:
    return f"reminder_{reminder_id}"


class ReminderScheduler:
    """Schedules, cancels and recovers reminder jobs"""

    def __init__(
        self,
        scheduler: BaseScheduler,
        dispatcher: ReminderDispatcher,
        store: ReminderStore,
        clock: Optional[Clock] = None,
        timezone: str = "Asia/Kolkata",
    ):
        self.scheduler = scheduler
        self.dispatcher = dispatcher
        self.store = store
        self.clock = clock or SystemClock()
        self.tz = pytz.timezone(timezone)
        self._jobs: Dict[str, Job] = {}
        self.dispatcher.on_completed = self.discard

    def __len__(self) -> int:
        return len(self._jobs)

    # Trigger derivation

    def build_trigger(self, reminder: ReminderRecord) -> Optional[BaseTrigger]:
        """Trigger for the reminder's next firings, or None for a one-shot already in the past"""
        anchor = reminder.fire_time_utc.astimezone(self.tz)

        if reminder.recurrence in RECURRING:
            fields = {"hour": anchor.hour, "minute": anchor.minute, "second": anchor.second}
            if reminder.recurrence == Recurrence.WEEKLY.value:
                fields["day_of_week"] = anchor.weekday()
            elif reminder.recurrence == Recurrence.MONTHLY.value:
                fields["day"] = anchor.day
            return CronTrigger(timezone=self.tz, **fields)

        if reminder.recurrence != Recurrence.ONCE.value:
            logger.warning(f"Unknown repeat '{reminder.recurrence}' for reminder {reminder.id}, treating as once")

        if anchor <= self.clock.now():
            return None
        return DateTrigger(run_date=anchor, timezone=self.tz)

    # Registry operations

    def schedule(self, reminder: ReminderRecord) -> None:
        """Register a job for an active reminder, replacing any previous one"""
        try:
            self.cancel(reminder.id)
            if not reminder.active:
                logger.info(f"Reminder {reminder.id} is inactive, not scheduling")
                return

            trigger = self.build_trigger(reminder)
            if trigger is None:
                logger.info(f"⚠️ Skipping one-time reminder in the past: \"{reminder.title}\" [{reminder.id}]")
                return

            job = self.scheduler.add_job(
                self.dispatcher.on_fire,
                trigger=trigger,
                args=[reminder],
                id=job_id_for(reminder.id),
                name=f"Reminder: {reminder.title}",
                replace_existing=True,
            )
            self._jobs[reminder.id] = job
            logger.info(
                f"✅ Scheduled \"{reminder.title}\" ({reminder.recurrence}) anchored at "
                f"{reminder.fire_time_utc.astimezone(self.tz).strftime('%Y-%m-%d %H:%M:%S %Z')}"
            )
        except Exception as e:
            logger.error(f"❌ Error scheduling reminder \"{reminder.title}\" [{reminder.id}]: {e}")

    def cancel(self, reminder_id: str) -> None:
        """Cancel the job for a reminder; no-op when none is registered"""
        job = self._jobs.pop(reminder_id, None)
        if job is None:
            return
        try:
            job.remove()
            logger.info(f"Cancelled job for reminder {reminder_id}")
        except JobLookupError:
            # Already gone from the scheduler, e.g. a one-shot that has fired
            logger.debug(f"Job for reminder {reminder_id} was no longer scheduled")
        except Exception as e:
            logger.error(f"Failed to cancel job for reminder {reminder_id}: {e}")

    def reschedule(self, reminder: ReminderRecord) -> None:
        self.cancel(reminder.id)
        if reminder.active:
            self.schedule(reminder)

    def discard(self, reminder_id: str) -> None:
        """Forget a registry entry without touching the scheduler"""
        self._jobs.pop(reminder_id, None)

    # Inspection

    def is_scheduled(self, reminder_id: str) -> bool:
        return reminder_id in self._jobs

    def job_ids(self) -> List[str]:
        return list(self._jobs)

    def next_fire_time(self, reminder_id: str) -> Optional[datetime]:
        job = self._jobs.get(reminder_id)
        if job is None:
            return None
        # Jobs added before the scheduler starts have no next_run_time yet
        next_run = getattr(job, "next_run_time", None)
        if next_run is not None:
            return next_run
        return job.trigger.get_next_fire_time(None, self.clock.now().astimezone(self.tz))

    # Lifecycle hooks used by the CRUD layer

    def on_reminder_created(self, reminder: ReminderRecord) -> None:
        self.schedule(reminder)

    def on_reminder_toggled(self, reminder: ReminderRecord) -> None:
        if reminder.active:
            self.reschedule(reminder)
        else:
            self.cancel(reminder.id)

    def on_reminder_deleted(self, reminder_id: str) -> None:
        self.cancel(reminder_id)

    def on_process_start(self) -> int:
        """Rebuild the registry from every persisted active reminder"""
        try:
            reminders = self.store.list_active()
        except Exception as e:
            logger.error(f"Failed to load active reminders: {e}")
            return 0

        for reminder in reminders:
            logger.debug(f"Recovering reminder {reminder.to_dict()}")
            self.schedule(reminder)

        logger.info(f"Recovered {len(self._jobs)} reminder jobs from {len(reminders)} active reminders")
        return len(self._jobs)

    def start(self):
        """Start the scheduler"""
        try:
            self.scheduler.start()
            logger.info("Scheduler started successfully")
        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")

    def shutdown(self):
        """Shutdown the scheduler"""
        try:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
            logger.info("Scheduler shut down successfully")
        except Exception as e:
            logger.error(f"Failed to shutdown scheduler: {e}")
