from datetime import date
from urllib.parse import parse_qs

import pytest
import pytest_asyncio
import respx

from src.slotgrid.client import SchedulingApiClient
from src.slotgrid.dashboard import SchedulingDashboard, ViewMode
from src.slotgrid.errors import MalformedTimezoneError
from src.slotgrid.models import CellClass, SlotSource

API_URL = "https://feed.test"
SUMMARY_URL = f"{API_URL}/events/get-bookings-availability-summary/"
DETAILS_URL = f"{API_URL}/events/get-bookings-details/"
TIMEZONES_URL = f"{API_URL}/api/get_timezones/"
TEACHERS_URL = f"{API_URL}/athena/teachers/"
STUDENTS_URL = f"{API_URL}/hs/search-learner/"

DAY = date(2025, 7, 23)
SUMMARY = {"2025-07-23": {"17:00": {"availability": 2, "bookings": 1, "uid": "T1"}}}
DETAILS = {
    "2025-07-23": {
        "17:00": {
            "events": [
                {
                    "summary": "Trial : Alice(JL1) : Bob Smith(T1)",
                    "start_time": "2025-07-23T17:00:00Z",
                    "end_time": "2025-07-23T18:00:00Z",
                    "calendar_id": "cal-1",
                }
            ]
        }
    }
}


def _form(call) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(call.request.content.decode()).items()}


@pytest.fixture
def feed():
    with respx.mock(assert_all_called=False) as mock:
        mock.get(TIMEZONES_URL).respond(
            200, json=["(GMT+00:00) UTC", "(GMT+02:00) CET", "no offset here"]
        )
        mock.get(TEACHERS_URL).respond(
            200, json=[{"id": 7, "uid": "T1", "full_name": "Bob Smith", "email": "bob@example.com"}]
        )
        mock.get(STUDENTS_URL, name="students").respond(
            200,
            json=[
                {"jetlearner_id": "JL1", "deal_name": "Alice", "email": "alice@example.com"},
                {"deal_name": "No id"},
            ],
        )
        mock.post(SUMMARY_URL, name="summary").respond(200, json=SUMMARY)
        mock.post(DETAILS_URL, name="details").respond(200, json=DETAILS)
        yield mock


@pytest_asyncio.fixture
async def dashboard(config, today, feed):
    client = SchedulingApiClient(config)
    dashboard = SchedulingDashboard(client, config, today=today)
    await dashboard.start()
    yield dashboard
    await client.aclose()


@pytest.mark.asyncio
async def test_startup_loads_reference_data(dashboard):
    assert dashboard.timezones == ["(GMT+00:00) UTC", "(GMT+02:00) CET"]
    assert dashboard.timezone == "(GMT+02:00) CET"
    assert len(dashboard.directory) == 1
    assert dashboard.week_start == date(2025, 7, 21)
    assert dashboard.week_data.status.success


@pytest.mark.asyncio
async def test_remote_slot_is_resolved(dashboard):
    cell = dashboard.cell(DAY, "17:00")
    assert (cell.counts.available, cell.counts.booked) == (2, 1)
    assert cell.counts.source == SlotSource.REMOTE
    assert cell.counts.owner_teacher_id == "T1"
    assert cell.counts.teacher_details.full_name == "Bob Smith"
    assert cell.cell_class == CellClass.OPEN
    assert cell.display_time == "19:00"


@pytest.mark.asyncio
async def test_grid_covers_week_and_catalog(dashboard):
    rows = dashboard.grid()
    assert len(rows) == 24
    assert all(len(row.cells) == 7 for row in rows)
    assert len(dashboard.grid(paginated=True)) == 12


@pytest.mark.asyncio
async def test_booked_popup_filters_to_slot_owner(dashboard, feed):
    popup = await dashboard.open_booking_details(DAY, "17:00")

    form = _form(feed["details"].calls.last)
    assert form["teacherid"] == "T1"
    assert form["email"] == "bob@example.com"
    assert form["type"] == "Bookings"
    assert form["start_date"] == form["end_date"] == "2025-07-23"
    assert len(popup.events) == 1
    assert popup.events[0].learner_name == "Alice"
    assert popup.events[0].jlid == "JL1"
    assert not dashboard.popup_pagination.show_controls(len(popup.events))
    assert dashboard.popup_page() == popup.events


@pytest.mark.asyncio
async def test_next_week_refetches(dashboard, feed):
    await dashboard.next_week()
    form = _form(feed["summary"].calls.last)
    assert form["start_date"] == "2025-07-28"
    assert form["end_date"] == "2025-08-03"
    assert dashboard.week_dates[0] == date(2025, 7, 28)


@pytest.mark.asyncio
async def test_filter_change_resets_pagination(dashboard):
    dashboard.list_pagination.current_page = 3
    await dashboard.select_teacher(dashboard.directory.lookup("T1"))
    assert dashboard.list_pagination.current_page == 1


@pytest.mark.asyncio
async def test_list_view_loads_with_teacher_filter(dashboard, feed):
    await dashboard.select_teacher(dashboard.directory.lookup("T1"))
    await dashboard.set_view(ViewMode.LIST)

    form = _form(feed["details"].calls.last)
    assert form["start_date"] == "2025-07-21"
    assert form["end_date"] == "2025-07-31"
    assert "type" not in form
    assert len(dashboard.list_page()) == 1


@pytest.mark.asyncio
async def test_fetch_failure_is_reported_not_raised(dashboard, feed):
    feed["summary"].respond(404)
    assert not await dashboard.load_week()
    assert dashboard.week_data.status.error == "HTTP error! status: 404"
    assert dashboard.cell(DAY, "17:00").counts.available == 2


@pytest.mark.asyncio
async def test_malformed_timezone_is_rejected(dashboard):
    with pytest.raises(MalformedTimezoneError):
        await dashboard.select_timezone("Europe/Paris")
    assert dashboard.timezone == "(GMT+02:00) CET"


@pytest.mark.asyncio
async def test_local_schedule_fills_empty_slots(dashboard):
    assert dashboard.add_local_teacher(DAY, "09:00", "7")
    cell = dashboard.cell(DAY, "09:00")
    assert (cell.counts.available, cell.counts.source) == (1, SlotSource.LOCAL)
    assert cell.cell_class == CellClass.OPEN


@pytest.mark.asyncio
async def test_workflows_use_dashboard_context(dashboard):
    await dashboard.select_teacher(dashboard.directory.lookup("T1"))
    booking = dashboard.new_booking()
    assert booking.draft.teacher.uid == "T1"
    assert booking.timezone == "(GMT+02:00) CET"
    leave = dashboard.new_leave()
    assert leave.teacher.uid == "T1"


@pytest.mark.asyncio
async def test_startup_loads_learners(dashboard):
    assert dashboard.students_status.success
    assert [s.jetlearner_id for s in dashboard.students] == ["JL1"]
    assert dashboard.find_student("JL1").display_name == "Alice"
    assert dashboard.find_student("JL9") is None


@pytest.mark.asyncio
async def test_learner_fetch_failure_is_reported(dashboard, feed):
    feed["students"].respond(404)
    await dashboard.load_students()
    assert dashboard.students == []
    assert dashboard.students_status.error == "HTTP error! status: 404"


@pytest.mark.asyncio
async def test_non_numeric_counts_do_not_break_the_week(dashboard, feed):
    feed["summary"].respond(
        200,
        json={
            "2025-07-23": {
                "17:00": {"availability": "n/a", "bookings": 1, "uid": "T1"},
                "18:00": {"availability": 3, "bookings": 0, "uid": "T1"},
            }
        },
    )
    assert await dashboard.load_week()
    assert not dashboard.week_data.status.is_loading
    assert dashboard.cell(DAY, "17:00").counts.source == SlotSource.LOCAL
    assert dashboard.cell(DAY, "18:00").counts.available == 3
