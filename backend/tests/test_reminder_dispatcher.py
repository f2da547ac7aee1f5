from datetime import timedelta

from cosmic_mind.services.notification_channel import DeliveryResult
from conftest import NOW


async def test_successful_once_delivery_retires_reminder(dispatcher, channel, store, make_reminder, sleep):
    reminder = make_reminder(NOW + timedelta(hours=1), destination="chat-42")
    completed = []
    dispatcher.on_completed = completed.append

    await dispatcher.on_fire(reminder)

    assert [dest for dest, _ in channel.calls] == ["chat-42"]
    assert sleep.delays == []
    assert store.find_reminder(reminder.id).active is False
    assert completed == [reminder.id]


async def test_failure_then_retry_success_sends_twice(dispatcher, channel, store, make_reminder, sleep):
    reminder = make_reminder(NOW + timedelta(hours=1), destination="chat-42")
    channel.results = [DeliveryResult.failure("network down"), DeliveryResult.success()]
    channel.watch_id = reminder.id

    await dispatcher.on_fire(reminder)

    assert len(channel.calls) == 2
    assert channel.calls[0] == channel.calls[1]
    assert sleep.delays == [5.0]
    # Still active while both attempts ran, retired only afterwards
    assert channel.active_at_send == [True, True]
    assert store.find_reminder(reminder.id).active is False


async def test_failed_retry_is_abandoned_without_raising(dispatcher, channel, store, make_reminder, sleep):
    reminder = make_reminder(NOW + timedelta(hours=1), destination="chat-42")
    channel.results = [DeliveryResult.failure("blocked"), DeliveryResult.failure("blocked")]

    await dispatcher.on_fire(reminder)

    assert len(channel.calls) == 2
    assert sleep.delays == [5.0]
    assert store.find_reminder(reminder.id).active is False


async def test_recurring_reminder_stays_active(dispatcher, channel, store, make_reminder):
    reminder = make_reminder(NOW, repeat="weekly", destination="chat-42")
    completed = []
    dispatcher.on_completed = completed.append

    await dispatcher.on_fire(reminder)

    assert len(channel.calls) == 1
    assert store.find_reminder(reminder.id).active is True
    assert completed == []


async def test_channel_exception_counts_as_failed_attempt(dispatcher, channel, store, make_reminder, sleep):
    reminder = make_reminder(NOW + timedelta(hours=1), destination="chat-42")
    calls = []

    async def flaky_send(destination, text):
        calls.append(destination)
        if len(calls) == 1:
            raise RuntimeError("socket closed")
        return DeliveryResult.success()

    channel.send = flaky_send

    await dispatcher.on_fire(reminder)

    assert calls == ["chat-42", "chat-42"]
    assert store.find_reminder(reminder.id).active is False


async def test_deleted_reminder_firing_does_not_raise(dispatcher, channel, store, make_reminder):
    reminder = make_reminder(NOW + timedelta(hours=1), destination="chat-42")
    store.delete(reminder.id)

    await dispatcher.on_fire(reminder)

    assert len(channel.calls) == 1
    assert store.find_reminder(reminder.id) is None


def test_destination_prefers_reminder_then_linked_then_default(dispatcher, make_reminder, session_factory, user):
    own = make_reminder(NOW, destination="chat-42")
    assert dispatcher.resolve_destination(own) == "chat-42"

    linked = make_reminder(NOW)
    assert dispatcher.resolve_destination(linked) == "linked-chat"

    from cosmic_mind.models.user import User
    db = session_factory()
    try:
        db.query(User).filter(User.id == user).update({"telegram_chat_id": None})
        db.commit()
    finally:
        db.close()
    assert dispatcher.resolve_destination(linked) == "fallback-chat"


async def test_no_destination_sends_nothing_but_still_retires(dispatcher, channel, store, make_reminder, session_factory, user):
    from cosmic_mind.models.user import User
    db = session_factory()
    try:
        db.query(User).filter(User.id == user).update({"telegram_chat_id": None})
        db.commit()
    finally:
        db.close()
    dispatcher.default_destination = ""
    reminder = make_reminder(NOW + timedelta(hours=1))

    await dispatcher.on_fire(reminder)

    assert channel.calls == []
    assert store.find_reminder(reminder.id).active is False


def test_message_has_title_description_time_and_repeat(dispatcher, make_reminder):
    reminder = make_reminder(NOW, repeat="daily", title="Stretch", description="Five minutes")

    text = dispatcher.compose_message(reminder)

    assert text.startswith("🔔 *Reminder:* Stretch\nFive minutes\n")
    # NOW is 06:30 IST
    assert "⏰ Time: 15/01/2025, 06:30:00 AM (IST)" in text
    assert text.endswith("🔄 Repeat: daily")
