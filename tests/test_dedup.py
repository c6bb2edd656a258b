import asyncio

import pytest

from agentlyne.services.dedup import BookingDedupCache
from agentlyne.services.intake import BookingForm


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_form(**overrides):
    payload = {
        "fullName": "Jane Doe",
        "email": "Jane@Acme.io",
        "date": "2024-07-04",
        "time": "14:30",
        "timeZone": "America/New_York",
    }
    payload.update(overrides)
    return BookingForm.from_payload(payload)


def test_key_lowercases_email():
    key = BookingDedupCache.key_for(make_form())
    assert key == ("jane@acme.io", "2024-07-04", "14:30", "America/New_York")


def test_repeat_inside_window_is_duplicate():
    clock = FakeClock()
    cache = BookingDedupCache(ttl_seconds=120, clock=clock)
    key = cache.key_for(make_form())

    assert cache.check_and_remember(key) is False
    clock.now += 60
    assert cache.check_and_remember(key) is True


def test_repeat_after_window_is_new():
    clock = FakeClock()
    cache = BookingDedupCache(ttl_seconds=120, clock=clock)
    key = cache.key_for(make_form())

    cache.check_and_remember(key)
    clock.now += 121
    assert cache.check_and_remember(key) is False


def test_different_slot_is_not_duplicate():
    cache = BookingDedupCache(ttl_seconds=120, clock=FakeClock())
    cache.check_and_remember(cache.key_for(make_form()))
    assert cache.check_and_remember(cache.key_for(make_form(time="15:00"))) is False


def test_sweep_removes_only_expired():
    clock = FakeClock()
    cache = BookingDedupCache(ttl_seconds=120, clock=clock)
    cache.check_and_remember(("a@x.io", "2024-07-04", "10:00", "UTC"))
    clock.now += 100
    cache.check_and_remember(("b@x.io", "2024-07-04", "10:00", "UTC"))
    clock.now += 30

    assert cache.sweep() == 1
    assert len(cache) == 1
    assert cache.sweep() == 0


def test_sweeper_task_runs_until_cancelled():
    clock = FakeClock()
    cache = BookingDedupCache(ttl_seconds=1, clock=clock)
    cache.check_and_remember(("a@x.io", "2024-07-04", "10:00", "UTC"))
    clock.now += 5

    async def run():
        task = asyncio.create_task(cache.run_sweeper(0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert len(cache) == 0


def test_forget_allows_immediate_resubmission():
    cache = BookingDedupCache(ttl_seconds=120, clock=FakeClock())
    key = cache.key_for(make_form())

    cache.check_and_remember(key)
    cache.forget(key)

    assert cache.check_and_remember(key) is False
    cache.forget(("nobody@x.io", "", "", ""))
    assert len(cache) == 1
