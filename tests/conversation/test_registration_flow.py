from datetime import datetime

import pytest

from classroom_checkin.common.checkin_code import format_checkin_code
from classroom_checkin.conversation.commands import Command, classify
from classroom_checkin.core.enums import AttendanceStatus, CheckinMode, ConversationStep, StudentStatus
from classroom_checkin.students.model import AttendanceStats

from conftest import make_student

NOW = datetime(2026, 3, 1, 20, 0)
CHECKIN_AT = datetime(2026, 3, 2, 8, 5)


def _say(container, user_id, *texts):
    replies = []
    for text in texts:
        replies = container.conversation_service.handle_text(user_id, text, now=NOW)
    return replies


def test_full_registration_creates_student(container):
    replies = _say(container, "U-new", "register")
    assert container.conversation_store.get("U-new").step == ConversationStep.AWAITING_STUDENT_ID

    replies = _say(container, "U-new", "654321", "Bob")
    assert container.conversation_store.get("U-new").step == ConversationStep.AWAITING_CLASS
    quick = replies[0]["quickReply"]["items"]
    assert [item["action"]["data"] for item in quick] == ["action=selectClass&class=801", "action=selectClass&class=802"]

    replies = _say(container, "U-new", "Class 802")
    assert "Registration complete" in replies[0]["text"]
    assert container.conversation_store.get("U-new") is None

    student = container.students_repo.get_by_line_user("U-new")
    assert (student.student_id, student.student_name, student.class_codes) == ("654321", "Bob", ("802",))


def test_class_can_be_picked_with_postback(container):
    _say(container, "U-new", "註冊", "654321", "Bob")

    replies = container.conversation_service.handle_postback("U-new", "action=selectClass&class=801", now=NOW)

    assert "Registration complete" in replies[0]["text"]
    assert container.students_repo.get_by_id("654321").class_codes == ("801",)


def test_invalid_answers_keep_the_current_step(container):
    replies = _say(container, "U-new", "register", "12ab")
    assert "6-10 digits" in replies[0]["text"]
    assert container.conversation_store.get("U-new").step == ConversationStep.AWAITING_STUDENT_ID

    replies = _say(container, "U-new", "654321", "B")
    assert container.conversation_store.get("U-new").step == ConversationStep.AWAITING_NAME


def test_same_identity_registering_again_is_told_already_registered(container, alice):
    replies = _say(container, "U-alice", "register")

    assert "already registered" in replies[0]["text"]
    assert container.conversation_store.get("U-alice") is None


def test_registration_from_new_identity_rebinds_student(container, alice):
    replies = _say(container, "U-phone", "register", "123456", "Alice", "801")

    assert "linked to this account" in replies[0]["text"]
    assert container.students_repo.get_by_line_user("U-alice") is None
    assert container.students_repo.get_by_line_user("U-phone").student_id == "123456"

    # The old identity is now a stranger.
    replies = _say(container, "U-alice", "profile")
    assert "not registered" in replies[0]["text"]


def test_after_rebind_only_the_new_identity_can_check_in(container, alice, open_session):
    _say(container, "U-phone", "register", "123456", "Alice", "801")
    session = open_session("C3")
    code = format_checkin_code(CheckinMode.DIRECT, session.course_id, session.session_id)
    chat = container.conversation_service

    replies = chat.handle_text("U-alice", code, now=CHECKIN_AT)
    assert "not registered" in replies[0]["text"]
    assert container.attendance_repo.records == {}

    chat.handle_text("U-phone", code, now=CHECKIN_AT)
    record = container.attendance_repo.get_for_session_and_student(session.session_id, "123456")
    assert record.status == AttendanceStatus.ON_TIME


@pytest.mark.parametrize("keyword, command", [("統計", Command.HISTORY), ("出席紀錄", Command.HISTORY), ("課程統計", Command.SUMMARY)])
def test_chinese_report_keywords(keyword, command):
    assert classify(keyword) == command


def test_cancel_drops_the_flow(container):
    _say(container, "U-new", "register", "654321")

    replies = _say(container, "U-new", "cancel")

    assert replies[0]["text"] == "Cancelled."
    assert container.conversation_store.get("U-new") is None


def test_join_and_leave_class(container, alice):
    replies = _say(container, "U-alice", "join")
    labels = [item["action"]["label"] for item in replies[0]["quickReply"]["items"]]
    assert labels == ["Class 802"]

    replies = container.conversation_service.handle_postback("U-alice", "action=selectClass&class=802", now=NOW)
    assert "801, 802" in replies[0]["text"]

    replies = _say(container, "U-alice", "leave", "801")
    assert "Class left" in replies[0]["text"]
    assert container.students_repo.get_by_id("123456").class_codes == ("802",)


def test_cannot_leave_only_class(container, alice):
    replies = _say(container, "U-alice", "leave")

    assert "only class" in replies[0]["text"]
    assert container.conversation_store.get("U-alice") is None


def test_unbind_requires_confirmation(container, alice):
    replies = _say(container, "U-alice", "unbind", "no")
    assert replies[0]["text"] == "Unbind cancelled."
    assert container.students_repo.get_by_id("123456").is_linked

    _say(container, "U-alice", "unbind", "yes")
    student = container.students_repo.get_by_id("123456")
    assert student.line_user_id is None
    assert student.status == StudentStatus.UNBOUND


def test_profile_shows_statistics(container):
    container.students_repo.add(make_student(class_codes=("801", "802")))
    container.students_repo.save_stats(AttendanceStats("123456", attended_count=3, late_count=1, absent_count=1))
    replies = _say(container, "U-alice", "profile")

    text = replies[0]["text"]
    assert "123456" in text
    assert "Class 801, Class 802" in text
    assert "Rate: 75%" in text


def test_unregistered_user_is_asked_to_register(container):
    replies = _say(container, "U-stranger", "hello")

    assert "not registered" in replies[0]["text"]
