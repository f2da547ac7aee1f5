import pytest

from cosmic_mind.services.notification_channel import DeliveryResult
from cosmic_mind.services.retry_policy import RetryPolicy


class ScriptedAttempt:
    def __init__(self, *results):
        self.results = list(results)
        self.count = 0

    async def __call__(self):
        self.count += 1
        return self.results.pop(0)


def test_default_policy_is_one_retry_after_five_seconds():
    policy = RetryPolicy()
    assert policy.max_attempts == 2
    assert list(policy.delays()) == [5.0]


def test_rejects_invalid_configuration():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(delay_seconds=-1)


async def test_success_on_first_attempt_does_not_sleep(sleep):
    attempt = ScriptedAttempt(DeliveryResult.success())
    result, attempts = await RetryPolicy().run(attempt, sleep=sleep)
    assert result.ok
    assert attempts == 1
    assert sleep.delays == []


async def test_failure_then_success_retries_once(sleep):
    attempt = ScriptedAttempt(DeliveryResult.failure("down"), DeliveryResult.success())
    result, attempts = await RetryPolicy().run(attempt, sleep=sleep)
    assert result.ok
    assert attempts == 2
    assert sleep.delays == [5.0]


async def test_gives_up_after_max_attempts(sleep):
    attempt = ScriptedAttempt(
        DeliveryResult.failure("down"),
        DeliveryResult.failure("still down"),
        DeliveryResult.success(),
    )
    result, attempts = await RetryPolicy(max_attempts=2, delay_seconds=1.5).run(attempt, sleep=sleep)
    assert not result.ok
    assert result.error == "still down"
    assert attempts == 2
    assert attempt.count == 2
    assert sleep.delays == [1.5]
