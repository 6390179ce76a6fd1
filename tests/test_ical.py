from datetime import datetime, timezone
from types import SimpleNamespace

import vobject

from icecal.ical import escape_ical_text, generate_event_block, generate_feed, generate_icalendar
from icecal.models import CalendarEvent

UTC = timezone.utc
NOW = datetime(2025, 7, 1, 10, 0, tzinfo=UTC)


def _event(**overrides) -> CalendarEvent:
    data = dict(
        id="event-1",
        title="Storskrald afhentning",
        description="Waste collection event",
        start=datetime(2025, 7, 7, 7, 0, tzinfo=UTC),
        end=datetime(2025, 7, 7, 8, 0, tzinfo=UTC),
        location="Eksempelvej 1, 1234 Bynavn",
        organizer="waste@municipality.dk",
        attendees=("user@example.com",),
        created=datetime(2025, 1, 1, tzinfo=UTC),
        modified=datetime(2025, 1, 1, tzinfo=UTC),
    )
    data.update(overrides)
    return CalendarEvent(**data)


def _team_meeting() -> CalendarEvent:
    return _event(
        id="event-2",
        title="Team Meeting",
        description="Weekly team sync",
        start=datetime(2025, 7, 8, 9, 0, tzinfo=UTC),
        end=datetime(2025, 7, 8, 10, 0, tzinfo=UTC),
        location="Conference Room A",
        organizer="manager@company.com",
        attendees=("team@company.com",),
    )


class FakeStore:
    def __init__(self, events):
        self.events = events
        self.calls = []

    def get_all_events(self):
        self.calls.append(("all",))
        return self.events

    def get_events_by_address(self, address):
        self.calls.append(("address", address))
        return self.events[:1]


CONFIG = SimpleNamespace(calendar=SimpleNamespace(name="Test Calendar", description="Test calendar for unit tests"))


def test_calendar_contains_all_events():
    ical = generate_icalendar([_event(), _team_meeting()], "Test Calendar", "Test calendar for unit tests", now=NOW)

    assert ical.startswith("BEGIN:VCALENDAR\r\n")
    assert ical.endswith("END:VCALENDAR\r\n")
    assert "X-WR-CALNAME:Test Calendar\r\n" in ical
    assert "X-WR-CALDESC:Test calendar for unit tests\r\n" in ical
    assert "SUMMARY:Storskrald afhentning" in ical
    assert "SUMMARY:Team Meeting" in ical
    assert "LOCATION:Eksempelvej 1\\, 1234 Bynavn" in ical
    assert "LOCATION:Conference Room A" in ical
    assert ical.index("UID:event-1") < ical.index("UID:event-2")


def test_header_lines_are_in_order():
    lines = generate_icalendar([], "Cal", "Desc", address="Eksempelvej 1", now=NOW).split("\r\n")

    assert lines[:7] == [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Ice Calendar Worker//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "X-WR-CALNAME:Cal - Eksempelvej 1",
        "X-WR-CALDESC:Desc for Eksempelvej 1",
    ]


def test_empty_calendar_has_no_events():
    ical = generate_icalendar([], "Cal", "Desc", now=NOW)

    assert "BEGIN:VCALENDAR" in ical
    assert "END:VCALENDAR" in ical
    assert "BEGIN:VEVENT" not in ical


def test_event_block_fields_and_utc_timestamps():
    lines = generate_event_block(_event(), NOW)

    assert lines == [
        "BEGIN:VEVENT",
        "UID:event-1",
        "DTSTAMP:20250701T100000Z",
        "DTSTART:20250707T070000Z",
        "DTEND:20250707T080000Z",
        "CREATED:20250101T000000Z",
        "LAST-MODIFIED:20250101T000000Z",
        "STATUS:CONFIRMED",
        "SUMMARY:Storskrald afhentning",
        "DESCRIPTION:Waste collection event",
        "LOCATION:Eksempelvej 1\\, 1234 Bynavn",
        "ORGANIZER:mailto:waste@municipality.dk",
        "ATTENDEE:mailto:user@example.com",
        "END:VEVENT",
    ]


def test_local_times_are_converted_to_utc(tz):
    event = _event(start=datetime(2025, 7, 7, 7, 0, tzinfo=tz), end=datetime(2025, 7, 7, 8, 0, tzinfo=tz))

    lines = generate_event_block(event, NOW)

    assert "DTSTART:20250707T050000Z" in lines
    assert "DTEND:20250707T060000Z" in lines


def test_special_characters_are_escaped():
    event = _event(
        title="Event with; special, characters\nand newlines",
        description="Description with\nlinebreaks and; semicolons, commas",
    )

    ical = generate_icalendar([event], "Cal", "Desc", now=NOW)

    assert "SUMMARY:Event with\\; special\\, characters\\nand newlines" in ical
    assert "DESCRIPTION:Description with\\nlinebreaks and\\; semicolons\\, commas" in ical


def test_backslash_is_escaped_once():
    assert escape_ical_text("C:\\temp;x") == "C:\\\\temp\\;x"
    assert escape_ical_text("a\\,b") == "a\\\\\\,b"


def test_escaped_text_reads_back_unchanged():
    title = "Pap; glas, metal \\ papir\nanden linje"
    location = "Eksempelvej 1, 1234 Bynavn; bagindgang"
    ical = generate_icalendar([_event(title=title, location=location)], "Cal", "Desc", now=NOW)

    parsed = vobject.readOne(ical)

    assert parsed.vevent.summary.value == title
    assert parsed.vevent.location.value == location
    assert parsed.vevent.dtstart.value == datetime(2025, 7, 7, 7, 0, tzinfo=UTC)


def test_minimal_event_omits_optional_fields():
    minimal = CalendarEvent(
        id="minimal-event",
        title="Minimal Event",
        start=datetime(2025, 7, 7, 7, 0, tzinfo=UTC),
        end=datetime(2025, 7, 7, 8, 0, tzinfo=UTC),
        created=datetime(2025, 1, 1, tzinfo=UTC),
        modified=datetime(2025, 1, 1, tzinfo=UTC),
    )

    ical = generate_icalendar([minimal], "Cal", "Desc", now=NOW)

    assert "SUMMARY:Minimal Event" in ical
    assert "DESCRIPTION:" not in ical
    assert "LOCATION:" not in ical
    assert "ORGANIZER:" not in ical
    assert "ATTENDEE:" not in ical


def test_one_attendee_line_per_address():
    lines = generate_event_block(_event(attendees=("a@example.com", "b@example.com")), NOW)

    assert [line for line in lines if line.startswith("ATTENDEE")] == [
        "ATTENDEE:mailto:a@example.com",
        "ATTENDEE:mailto:b@example.com",
    ]


def test_feed_for_address_uses_address_lookup():
    store = FakeStore([_event(), _team_meeting()])

    ical = generate_feed(store, CONFIG, "Eksempelvej 1", now=NOW)

    assert store.calls == [("address", "Eksempelvej 1")]
    assert "X-WR-CALNAME:Test Calendar - Eksempelvej 1" in ical
    assert "X-WR-CALDESC:Test calendar for unit tests for Eksempelvej 1" in ical
    assert "SUMMARY:Storskrald afhentning" in ical
    assert "SUMMARY:Team Meeting" not in ical


def test_feed_without_address_reads_all_events():
    store = FakeStore([_event(), _team_meeting()])

    ical = generate_feed(store, CONFIG, now=NOW)

    assert store.calls == [("all",)]
    assert ical.count("BEGIN:VEVENT") == 2
