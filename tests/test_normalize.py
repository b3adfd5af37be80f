from datetime import date, datetime, timedelta, timezone

from calfeed.models import VEVENT, CanonicalEvent
from calfeed.normalize import normalize, resolve_fields
from calfeed.reporting import WARNING, Reporter


def test_normalize_plain_record_keeps_only_present_fields():
    reporter = Reporter()

    event = normalize(
        {"title": " Standup ", "start": "2024-06-03T09:00:00Z", "location": "Room 4", "url": ""},
        "team.json",
        reporter,
    )

    assert event == CanonicalEvent(title="Standup", start="2024-06-03T09:00:00Z", location="Room 4")
    assert event.to_dict() == {"title": "Standup", "start": "2024-06-03T09:00:00Z", "location": "Room 4"}
    assert reporter.diagnostics == []


def test_resolve_fields_uses_first_present_alias():
    fields = resolve_fields({"summary": "Review", "name": "ignored", "dtstart": "2024-06-03", "dtend": "2024-06-04"})

    assert fields.title == "Review"
    assert fields.start == "2024-06-03"
    assert fields.end == "2024-06-04"


def test_resolve_fields_skips_blank_aliases():
    fields = resolve_fields({"title": "   ", "name": "Offsite", "start": 20240603})

    assert fields.title == "Offsite"
    assert fields.start == "20240603"


def test_normalize_drops_record_without_title_and_reports_origin():
    reporter = Reporter()

    event = normalize({"start": "2024-06-03"}, "broken.yaml", reporter)

    assert event is None
    assert reporter.count(WARNING) == 1
    diag = reporter.diagnostics[0]
    assert diag.origin == "broken.yaml"
    assert "without title" in diag.message
    assert '"start": "2024-06-03"' in diag.message


def test_normalize_drops_record_without_start():
    reporter = Reporter()

    assert normalize({"title": "Lunch", "end": "2024-06-03T13:00"}, "a.json", reporter) is None
    assert "without start" in reporter.messages(WARNING)[0]


def test_normalize_rejects_non_object_record():
    reporter = Reporter()

    assert normalize(["not", "an", "event"], "list.json", reporter) is None
    assert "non-object" in reporter.messages(WARNING)[0]


def test_normalize_warns_on_non_iso_dates_but_keeps_event():
    reporter = Reporter()

    event = normalize({"title": "Launch", "start": "June 3rd", "end": "2024-06-03 17:00"}, "launch.json", reporter)

    assert event is not None
    assert event.start == "June 3rd"
    assert event.end == "2024-06-03 17:00"
    warnings = reporter.messages(WARNING)
    assert len(warnings) == 2
    assert "non-ISO start" in warnings[0]
    assert "non-ISO end" in warnings[1]


def test_normalize_coerces_yaml_dates_to_iso_text():
    reporter = Reporter()

    event = normalize(
        {"title": "Retro", "start": datetime(2024, 6, 3, 15, 30), "end": date(2024, 6, 4)},
        "retro.yml",
        reporter,
    )

    assert event.start == "2024-06-03T15:30:00"
    assert event.end == "2024-06-04"
    assert reporter.diagnostics == []


def test_normalize_all_day_flag_coercion():
    reporter = Reporter()

    explicit_false = normalize({"title": "A", "start": "2024-05-01", "allDay": "false"}, "a.json", reporter)
    snake_case = normalize({"title": "B", "start": "2024-05-01", "all_day": True}, "b.json", reporter)
    absent = normalize({"title": "C", "start": "2024-05-01"}, "c.json", reporter)

    assert explicit_false.all_day is False
    assert explicit_false.to_dict()["allDay"] is False
    assert snake_case.all_day is True
    assert absent.all_day is None
    assert "allDay" not in absent.to_dict()


def test_normalize_vevent_converts_instants_to_utc_text():
    reporter = Reporter()
    plus_two = timezone(timedelta(hours=2))

    event = normalize(
        {
            "summary": "Planning",
            "dtstart": datetime(2024, 6, 3, 11, 0, tzinfo=plus_two),
            "dtend": datetime(2024, 6, 3, 12, 30, tzinfo=plus_two),
            "location": "HQ",
        },
        "work.ics",
        reporter,
        kind=VEVENT,
    )

    assert event.title == "Planning"
    assert event.start == "2024-06-03T09:00:00Z"
    assert event.end == "2024-06-03T10:30:00Z"
    assert event.location == "HQ"
    assert event.all_day is None


def test_normalize_vevent_date_values_become_all_day():
    reporter = Reporter()

    event = normalize(
        {"summary": "Holiday", "dtstart": date(2024, 5, 1), "dtend": date(2024, 5, 2)},
        "holidays.ics",
        reporter,
        kind=VEVENT,
    )

    assert event.start == "2024-05-01"
    assert event.end == "2024-05-02"
    assert event.all_day is True


def test_normalize_vevent_without_summary_is_untitled_and_uses_duration():
    reporter = Reporter()

    event = normalize(
        {"dtstart": datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc), "duration": timedelta(minutes=45)},
        "misc.ics",
        reporter,
        kind=VEVENT,
    )

    assert event.title == "Untitled"
    assert event.end == "2024-06-03T09:45:00Z"


def test_normalize_vevent_with_unconvertible_start_is_dropped():
    reporter = Reporter()

    event = normalize({"summary": "Ghost", "dtstart": "not-a-date"}, "ghost.ics", reporter, kind=VEVENT)

    assert event is None
    assert "without start" in reporter.messages(WARNING)[0]


def test_normalize_keeps_source_offset_when_utc_conversion_overflows():
    reporter = Reporter()
    minus_five = timezone(timedelta(hours=-5))

    event = normalize(
        {"title": "Edge", "start": datetime(9999, 12, 31, 23, 0, tzinfo=minus_five)},
        "edge.yaml",
        reporter,
    )

    assert event.start == "9999-12-31T23:00:00-05:00"
    assert reporter.diagnostics == []


def test_normalize_vevent_treats_out_of_range_instant_as_absent():
    reporter = Reporter()
    minus_five = timezone(timedelta(hours=-5))

    event = normalize(
        {"summary": "Edge", "dtstart": datetime(9999, 12, 31, 23, 0, tzinfo=minus_five)},
        "edge.ics",
        reporter,
        kind=VEVENT,
    )

    assert event is None
    assert "without start" in reporter.messages(WARNING)[0]
