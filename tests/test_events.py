from src.slotgrid.events import (
    NOT_AVAILABLE,
    EventStatus,
    classify_event,
    events_for_slot,
    extract_identifiers,
    flatten_event_grid,
    parse_booking_event,
)


def test_parse_booking_event():
    details = parse_booking_event(
        {
            "summary": "Trial : Alice(JL123) : Bob Smith(TJL9)",
            "calendar_id": "cal-1",
            "start_time": "2025-07-23T17:00:00Z",
        }
    )
    assert details.learner_name == "Alice"
    assert details.jlid == "JL123"
    assert details.teacher_name == "Bob Smith"
    assert details.teacher_uid == "TJL9"
    assert details.teacher_id == "cal-1"


def test_parse_malformed_summary_degrades():
    details = parse_booking_event({"summary": "garbage"})
    assert details.jlid == NOT_AVAILABLE
    assert details.learner_name == NOT_AVAILABLE
    assert details.teacher_uid == NOT_AVAILABLE


def test_extract_identifiers():
    assert extract_identifiers("Paid : A(JL1) B(JL2) : T(TJL7)") == (["JL1", "JL2"], "TJL7")
    assert extract_identifiers("no tokens here") == ([], None)


def test_classify_event():
    assert classify_event("Availability hours") == EventStatus.AVAILABILITY
    assert classify_event("Week Off") == EventStatus.WEEK_OFF
    assert classify_event("CBT/PL : Alice(JL1) : Bob(TJL2)") == EventStatus.CANCELLED
    assert classify_event("Trial : Alice(JL1) : Bob(TJL2)") == EventStatus.BOOKED


GRID = {
    "2025-07-23": {
        "18:00": {"events": [{"start_time": "2025-07-23T18:00:00Z", "summary": "b"}]},
        "17:00": {"events": [{"start_time": "2025-07-23T19:00:00+02:00", "summary": "a"}]},
    },
    "2025-07-24": "junk",
}


def test_flatten_sorts_and_stamps():
    records = flatten_event_grid(GRID)
    assert [r.summary for r in records] == ["a", "b"]
    assert (records[0].date, records[0].time) == ("2025-07-23", "17:00")


def test_events_for_slot():
    assert [r.summary for r in events_for_slot(GRID, "2025-07-23", "18:00")] == ["b"]
    assert flatten_event_grid(None) == []
