import math
from datetime import datetime

import pytest

from classroom_checkin.common.checkin_code import format_checkin_code
from classroom_checkin.core.enums import AttendanceStatus, CheckinMode, ConversationStep

from conftest import CLASSROOM

METERS_PER_DEGREE = 6_371_000 * math.pi / 180
AT_0805 = datetime(2026, 3, 2, 8, 5)


def _north(meters: float) -> tuple[float, float]:
    return CLASSROOM[0] + meters / METERS_PER_DEGREE, CLASSROOM[1]


@pytest.fixture
def chat(container):
    return container.conversation_service


def _code(session, mode=CheckinMode.GPS):
    return format_checkin_code(mode, session.course_id, session.session_id)


def _record(container, session, student_id="123456"):
    return container.attendance_repo.get_for_session_and_student(session.session_id, student_id)


def test_gps_code_asks_for_location_then_admits_inside_radius(container, chat, alice, open_session):
    session = open_session("C1")

    replies = chat.handle_text("U-alice", _code(session), now=AT_0805)
    assert replies[0]["quickReply"]["items"][0]["action"]["type"] == "location"
    assert container.conversation_store.get("U-alice").step == ConversationStep.AWAITING_LOCATION

    replies = chat.handle_location("U-alice", *_north(49), now=AT_0805)

    assert "Checked in" in replies[0]["text"]
    record = _record(container, session)
    assert record.status == AttendanceStatus.ON_TIME
    assert record.gps_lat == pytest.approx(_north(49)[0])
    assert container.conversation_store.get("U-alice") is None


def test_late_gps_checkin_reports_minutes(container, chat, alice, open_session):
    session = open_session("C1")
    at_0811 = datetime(2026, 3, 2, 8, 11)
    chat.handle_text("U-alice", _code(session), now=at_0811)

    replies = chat.handle_location("U-alice", *CLASSROOM, now=at_0811)

    assert "Late by 11 min" in replies[0]["text"]
    assert _record(container, session).late_minutes == 11


def test_location_outside_radius_retries_then_redirects_to_venue(container, chat, alice, open_session):
    session = open_session("C1")
    chat.handle_text("U-alice", _code(session), now=AT_0805)
    store = container.conversation_store
    assert store.get("U-alice").retries == 0

    replies = chat.handle_location("U-alice", *_north(51), now=AT_0805)
    assert "outside the classroom range" in replies[0]["text"]
    assert store.get("U-alice").retries == 1

    chat.handle_location("U-alice", *_north(51), now=AT_0805)
    assert store.get("U-alice").retries == 2

    replies = chat.handle_location("U-alice", *_north(51), now=AT_0805)
    assert "Check-in failed" in replies[0]["text"]
    assert "at the venue" in replies[0]["text"]
    assert store.get("U-alice") is None
    assert _record(container, session) is None


def test_venue_only_course_rejects_gps_code_regardless_of_location(container, chat, alice, open_session):
    session = open_session("C2")

    replies = chat.handle_text("U-alice", _code(session), now=AT_0805)

    assert "only accepts check-in at the venue" in replies[0]["text"]
    assert _record(container, session) is None
    assert container.conversation_store.get("U-alice") is None


@pytest.mark.parametrize("course_id", ["C1", "C2", "C3"])
def test_direct_code_never_checks_geofence(container, chat, alice, open_session, course_id):
    session = open_session(course_id)

    replies = chat.handle_text("U-alice", _code(session, CheckinMode.DIRECT), now=AT_0805)

    assert "Checked in" in replies[0]["text"]
    assert _record(container, session).gps_lat is None


def test_gps_code_without_geofence_records_immediately(container, chat, alice, open_session):
    session = open_session("C3")

    replies = chat.handle_text("U-alice", _code(session), now=AT_0805)

    assert "Checked in" in replies[0]["text"]
    assert _record(container, session) is not None


def test_second_checkin_reports_existing_status(container, chat, alice, open_session):
    session = open_session("C3")
    chat.handle_text("U-alice", _code(session), now=AT_0805)

    replies = chat.handle_text("U-alice", _code(session, CheckinMode.DIRECT), now=datetime(2026, 3, 2, 8, 30))

    assert "already checked in" in replies[0]["text"]
    assert "On time" in replies[0]["text"]
    assert len(container.attendance_repo.records) == 1


def test_legacy_prefix_code_is_accepted(container, chat, alice, open_session):
    session = open_session("C3")

    replies = chat.handle_text("U-alice", f"簽到:{session.course_id}|{session.session_id}", now=AT_0805)

    assert "Checked in" in replies[0]["text"]


def test_code_for_closed_or_unknown_session_is_rejected(container, chat, alice, open_session):
    session = open_session("C1")
    container.absence_reconciler.complete_session(session.session_id, now=datetime(2026, 3, 2, 9, 1))

    replies = chat.handle_text("U-alice", _code(session, CheckinMode.DIRECT), now=datetime(2026, 3, 2, 9, 2))
    assert "ended or does not exist" in replies[0]["text"]

    replies = chat.handle_text("U-alice", "direct:C1|Sdoesnotexist", now=AT_0805)
    assert "ended or does not exist" in replies[0]["text"]


def test_location_after_session_closed_is_rejected(container, chat, alice, open_session):
    session = open_session("C1")
    chat.handle_text("U-alice", _code(session), now=AT_0805)
    container.absence_reconciler.complete_session(session.session_id, now=datetime(2026, 3, 2, 9, 1))

    replies = chat.handle_location("U-alice", *CLASSROOM, now=datetime(2026, 3, 2, 9, 2))

    assert "ended or does not exist" in replies[0]["text"]
    assert _record(container, session).status == AttendanceStatus.ABSENT


def test_unregistered_user_cannot_check_in(container, chat, open_session):
    session = open_session("C3")

    replies = chat.handle_text("U-stranger", _code(session), now=AT_0805)

    assert "not registered" in replies[0]["text"]
    assert not container.attendance_repo.records


def test_location_without_pending_checkin(chat, alice):
    replies = chat.handle_location("U-alice", *CLASSROOM, now=AT_0805)

    assert "scan a check-in code first" in replies[0]["text"]


def test_malformed_code_is_reported(chat, alice):
    replies = chat.handle_text("U-alice", "gps:C1", now=AT_0805)

    assert "Invalid check-in code" in replies[0]["text"]
