import base64
import hashlib
import hmac
import json

import pytest

from classroom_checkin.main import create_app

TASK_HEADERS = {"X-Task-Token": "test-task-token"}


@pytest.fixture
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


def _signed(payload: dict) -> tuple[bytes, dict]:
    body = json.dumps(payload).encode("utf-8")
    digest = hmac.new(b"test-channel-secret", body, hashlib.sha256).digest()
    return body, {"X-Line-Signature": base64.b64encode(digest).decode("ascii"), "Content-Type": "application/json"}


def _text_event(user_id: str, text: str, reply_token: str = "r-1") -> dict:
    return {
        "type": "message",
        "replyToken": reply_token,
        "source": {"type": "user", "userId": user_id},
        "message": {"type": "text", "text": text},
    }


def test_health(client):
    assert client.get("/api/health").get_json() == {"status": "ok"}


def test_webhook_rejects_bad_signature(client, line_client):
    body, _ = _signed({"events": [_text_event("U-alice", "help")]})

    resp = client.post("/webhook", data=body, headers={"X-Line-Signature": "bogus"})

    assert resp.status_code == 400
    assert line_client.replies == []


def test_webhook_replies_to_text_event(client, line_client):
    body, headers = _signed({"events": [_text_event("U-new", "hello")]})

    resp = client.post("/webhook", data=body, headers=headers)

    assert resp.status_code == 200
    assert resp.get_json()["handled"] == 1
    token, messages = line_client.replies[0]
    assert token == "r-1"
    assert "Welcome Tester" in messages[0]["text"]


def test_webhook_location_and_postback_events(client, container, alice, line_client):
    container.conversation_service.handle_text("U-alice", "join")
    events = [
        {
            "type": "postback",
            "replyToken": "r-2",
            "source": {"userId": "U-alice"},
            "postback": {"data": "action=selectClass&class=802"},
        },
        {
            "type": "message",
            "replyToken": "r-3",
            "source": {"userId": "U-alice"},
            "message": {"type": "location", "latitude": 25.0, "longitude": 121.0},
        },
    ]
    body, headers = _signed({"events": events})

    resp = client.post("/webhook", data=body, headers=headers)

    assert resp.get_json()["handled"] == 2
    assert container.students_repo.get_by_id("123456").class_codes == ("801", "802")
    assert "scan a check-in code first" in line_client.replies[1][1][0]["text"]


def test_webhook_isolates_failing_event(client, container, line_client, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(container.conversation_service, "handle_location", boom)
    events = [
        {"type": "message", "replyToken": "r-1", "source": {"userId": "U-x"},
         "message": {"type": "location", "latitude": 1.0, "longitude": 2.0}},
        _text_event("U-y", "help", reply_token="r-2"),
    ]
    body, headers = _signed({"events": events})

    resp = client.post("/webhook", data=body, headers=headers)

    assert resp.status_code == 200
    assert resp.get_json()["handled"] == 1
    assert [token for token, _ in line_client.replies] == ["r-2"]


def test_task_endpoints_require_token(client):
    assert client.post("/tasks/reconcile-absences").status_code == 403
    assert client.post("/tasks/send-reminders", headers={"X-Task-Token": "wrong"}).status_code == 403
    assert client.post("/api/sessions", json={"courseId": "C1"}).status_code == 403


def test_task_endpoints_run_sweeps(client):
    resp = client.post("/tasks/reconcile-absences", headers=TASK_HEADERS)
    assert resp.status_code == 200
    assert resp.get_json()["success"] is True
    assert "sessions_closed" in resp.get_json()

    resp = client.post("/tasks/send-reminders", headers=TASK_HEADERS)
    assert resp.status_code == 200
    assert "prompts_sent" in resp.get_json()


def test_open_session_then_conflict(client):
    payload = {"courseId": "C1", "date": "2026-03-02", "startTime": "08:00", "endTime": "09:00"}

    resp = client.post("/api/sessions", json=payload, headers=TASK_HEADERS)
    assert resp.status_code == 201
    data = resp.get_json()
    assert data["gpsCode"] == f"gps:C1|{data['sessionId']}"
    assert data["directCode"] == f"direct:C1|{data['sessionId']}"

    resp = client.post("/api/sessions", json=payload, headers=TASK_HEADERS)
    assert resp.status_code == 409
    assert resp.get_json()["sessionId"] == data["sessionId"]


@pytest.mark.parametrize(
    "payload, status",
    [
        ({"courseId": "NOPE"}, 404),
        ({"courseId": "C1", "date": "02/03/2026"}, 400),
        ({"courseId": "C1", "date": "2026-03-02", "startTime": "09:00", "endTime": "09:00"}, 400),
    ],
)
def test_open_session_errors(client, payload, status):
    assert client.post("/api/sessions", json=payload, headers=TASK_HEADERS).status_code == status


def test_session_qrcode_png(client, open_session):
    session = open_session("C1")

    resp = client.get(f"/api/sessions/{session.session_id}/qrcode.png", headers=TASK_HEADERS)

    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert resp.data.startswith(b"\x89PNG")
    assert client.get("/api/sessions/missing/qrcode.png", headers=TASK_HEADERS).status_code == 404


def test_complete_session_endpoint(client, alice, open_session):
    session = open_session("C1")

    resp = client.post(f"/api/sessions/{session.session_id}/complete", headers=TASK_HEADERS)

    assert resp.status_code == 200
    assert resp.get_json()["absences_recorded"] == 1
    assert client.post("/api/sessions/missing/complete", headers=TASK_HEADERS).status_code == 404


def test_cli_commands(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["reconcile-absences"])
    assert result.exit_code == 0
    assert "sessions closed=0" in result.output

    result = runner.invoke(args=["send-reminders"])
    assert result.exit_code == 0
    assert "prompts sent=" in result.output


def test_task_token_with_non_ascii_is_forbidden(client):
    resp = client.post("/tasks/reconcile-absences", headers={"X-Task-Token": "sécret"})

    assert resp.status_code == 403
