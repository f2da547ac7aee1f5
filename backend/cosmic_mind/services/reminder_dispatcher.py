"""
Reminder Dispatcher - runs when a scheduled reminder job fires.
Formats the message, delivers it with one retry, and retires one-shot reminders.
"""
import asyncio
import logging
from typing import Callable, Optional

import pytz

from cosmic_mind.models.reminder import ReminderRecord
from cosmic_mind.services.clock import Clock, SystemClock
from cosmic_mind.services.notification_channel import DeliveryResult, NotificationChannel
from cosmic_mind.services.reminder_store import ReminderStore
from cosmic_mind.services.retry_policy import RetryPolicy, Sleep

logger = logging.getLogger(__name__)


class ReminderDispatcher:
    """Delivers fired reminders through a notification channel"""

    def __init__(
        self,
        channel: NotificationChannel,
        store: ReminderStore,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Optional[Clock] = None,
        timezone: str = "Asia/Kolkata",
        default_destination: str = "",
        sleep: Sleep = asyncio.sleep,
    ):
        self.channel = channel
        self.store = store
        self.retry_policy = retry_policy or RetryPolicy()
        self.clock = clock or SystemClock()
        self.tz = pytz.timezone(timezone)
        self.default_destination = default_destination
        self.sleep = sleep
        # Called with the reminder id once a one-shot reminder has been retired
        self.on_completed: Optional[Callable[[str], None]] = None

    def resolve_destination(self, reminder: ReminderRecord) -> str:
        if reminder.destination:
            return reminder.destination
        linked = self.store.linked_destination(reminder.owner_id)
        if linked:
            return linked
        return self.default_destination

    def compose_message(self, reminder: ReminderRecord) -> str:
        fired_at = self.clock.now().astimezone(self.tz)
        lines = [f"🔔 *Reminder:* {reminder.title}"]
        if reminder.description:
            lines.append(reminder.description)
        lines.append("")
        lines.append(f"⏰ Time: {fired_at.strftime('%d/%m/%Y, %I:%M:%S %p')} ({fired_at.tzname()})")
        lines.append(f"🔄 Repeat: {reminder.recurrence}")
        return "\n".join(lines)

    async def deliver(self, destination: str, text: str) -> DeliveryResult:
        async def attempt() -> DeliveryResult:
            try:
                return await self.channel.send(destination, text)
            except Exception as e:
                # Channels should not raise, but a misbehaving one counts as a failed attempt
                logger.error(f"Notification channel raised for chat {destination}: {e}")
                return DeliveryResult.failure(str(e))

        result, attempts = await self.retry_policy.run(attempt, sleep=self.sleep)
        if attempts > 1:
            if result.ok:
                logger.info(f"✅ Retry delivered to chat {destination}")
            else:
                logger.error(f"❌ Retry also failed for chat {destination}: {result.error}")
        return result

    async def on_fire(self, reminder: ReminderRecord) -> None:
        """Job callback for a reminder; never raises"""
        logger.info(f"🔔 Reminder firing: {reminder.title} ({reminder.recurrence}) [{reminder.id}]")
        try:
            destination = self.resolve_destination(reminder)
            if not destination:
                logger.warning(f"No destination chat for reminder {reminder.id}, nothing sent")
            else:
                result = await self.deliver(destination, self.compose_message(reminder))
                if result.ok:
                    logger.info(f"✅ Reminder sent to Telegram ({destination}): {reminder.title}")
        except Exception as e:
            logger.error(f"❌ Delivery of reminder {reminder.id} failed: {e}")

        if reminder.is_one_shot:
            self._retire(reminder.id)

    def _retire(self, reminder_id: str) -> None:
        try:
            if self.store.set_active(reminder_id, False):
                logger.info(f"📝 One-time reminder {reminder_id} marked as inactive")
        except Exception as e:
            logger.error(f"Failed to deactivate reminder {reminder_id}: {e}")
        if self.on_completed:
            try:
                self.on_completed(reminder_id)
            except Exception as e:
                logger.error(f"Completion hook failed for reminder {reminder_id}: {e}")
