from datetime import date, datetime, timezone

from agentlyne.services.schedule import suggest_slots
from agentlyne.services.timezones import to_iso_z, zoned_to_utc, zoned_to_utc_iso


def test_summer_time_new_york():
    assert zoned_to_utc_iso("2024-07-04", "14:30", "America/New_York") == "2024-07-04T18:30:00.000Z"


def test_winter_time_new_york():
    assert zoned_to_utc_iso("2024-01-15", "09:00", "America/New_York") == "2024-01-15T14:00:00.000Z"


def test_blank_zone_is_utc():
    assert zoned_to_utc_iso("2024-07-04", "14:30", "") == "2024-07-04T14:30:00.000Z"
    assert zoned_to_utc_iso("2024-07-04", "14:30", None) == "2024-07-04T14:30:00.000Z"


def test_malformed_input_returns_none():
    assert zoned_to_utc_iso("07/04/2024", "14:30", "America/New_York") is None
    assert zoned_to_utc_iso("2024-13-40", "14:30", "America/New_York") is None
    assert zoned_to_utc_iso("2024-07-04", "2pm", "America/New_York") is None
    assert zoned_to_utc_iso("2024-07-04", "14:30", "Mars/Olympus_Mons") is None
    # local instants whose UTC equivalent falls outside the calendar
    assert zoned_to_utc_iso("0001-01-01", "00:30", "Asia/Tokyo") is None
    assert zoned_to_utc_iso("9999-12-31", "23:30", "America/Los_Angeles") is None


def test_ambiguous_time_takes_first_occurrence():
    # 01:30 happens twice on 2024-11-03 in New York; the EDT one comes first
    assert zoned_to_utc_iso("2024-11-03", "01:30", "America/New_York") == "2024-11-03T05:30:00.000Z"


def test_time_in_spring_forward_gap_moves_forward():
    # 02:30 does not exist on 2024-03-10; it is read with the pre-transition offset
    result = zoned_to_utc("2024-03-10", "02:30", "America/New_York")
    assert result == datetime(2024, 3, 10, 7, 30, tzinfo=timezone.utc)


def test_seconds_are_accepted():
    assert zoned_to_utc_iso("2024-07-04", "14:30:15", "Europe/Berlin") == "2024-07-04T12:30:15.000Z"


def test_to_iso_z_keeps_milliseconds():
    moment = datetime(2024, 1, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
    assert to_iso_z(moment) == "2024-01-01T10:00:00.123Z"


def test_demo_slots():
    assert suggest_slots(date(2024, 1, 1)) == [
        "2024-01-01T10:00:00.000Z",
        "2024-01-01T13:00:00.000Z",
        "2024-01-01T15:30:00.000Z",
    ]


def test_demo_slots_default_to_today():
    today = datetime.now(timezone.utc).date().isoformat()
    slots = suggest_slots()
    assert len(slots) == 3
    assert all(slot.startswith(today) for slot in slots)
