from agentlyne.services.intake import (
    LEAD_REQUIRED,
    BookingForm,
    clean,
    missing_fields_message,
)


def test_aliases_resolve_to_logical_fields():
    form = BookingForm.from_payload({
        "name": "Jane Doe",
        "mail": "jane@acme.io",
        "tel": "+1 555 0100",
        "org": "Acme",
        "date": "2024-07-04",
        "time": "14:30",
        "tz": "America/New_York",
        "message": "Call me after lunch",
    })

    assert form.full_name == "Jane Doe"
    assert form.email == "jane@acme.io"
    assert form.phone == "+1 555 0100"
    assert form.company == "Acme"
    assert form.time_zone == "America/New_York"
    assert form.notes == "Call me after lunch"
    assert form.source == "website"


def test_first_non_blank_alias_wins():
    form = BookingForm.from_payload({"fullName": "  ", "full_name": "Second", "name": "Third"})
    assert form.full_name == "Second"

    form = BookingForm.from_payload({"fullName": "First", "name": "Third"})
    assert form.full_name == "First"


def test_newlines_collapse_except_in_notes():
    form = BookingForm.from_payload({
        "fullName": "  Jane\r\nDoe  ",
        "company": "Acme\n\nCorp",
        "notes": "  line one\nline two  ",
    })

    assert form.full_name == "Jane Doe"
    assert form.company == "Acme Corp"
    assert form.notes == "line one\nline two"


def test_duration_defaults_when_unusable():
    assert BookingForm.from_payload({"duration": "45"}).duration == 45
    assert BookingForm.from_payload({"duration": 60}).duration == 60
    assert BookingForm.from_payload({"duration": "abc"}).duration == 30
    assert BookingForm.from_payload({"duration": 0}).duration == 30
    assert BookingForm.from_payload({"duration": "inf"}).duration == 30
    assert BookingForm.from_payload({"duration": "1e400"}).duration == 30
    assert BookingForm.from_payload({"duration": "nan"}).duration == 30
    assert BookingForm.from_payload({}).duration == 30


def test_missing_required_fields():
    form = BookingForm.from_payload({"email": "jane@acme.io", "time": "10:00"})
    assert form.missing_fields() == ["fullName", "date"]
    assert missing_fields_message(form.missing_fields()) == "Missing required fields: fullName, date."


def test_lead_requires_only_name_and_email():
    form = BookingForm.from_payload({"name": "Jane", "email": "jane@acme.io"})
    assert form.missing_fields(LEAD_REQUIRED) == []
    assert form.missing_fields() == ["date", "time"]


def test_non_object_payload_is_empty_form():
    form = BookingForm.from_payload(["not", "an", "object"])
    assert form.missing_fields() == ["fullName", "email", "date", "time"]


def test_plan_label_and_source():
    form = BookingForm.from_payload({"plan": "Growth", "tier": "Annual", "source": "pricing"})
    assert form.plan_label == "Growth Annual"
    assert form.source == "pricing"


def test_clean_handles_none():
    assert clean(None) == ""
