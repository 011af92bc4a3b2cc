from __future__ import annotations

import io

import qrcode
from flask import Flask, jsonify, request, send_file

from ..common.checkin_code import format_checkin_code
from ..common.datetime_utils import now_local, parse_hhmm, parse_iso_date
from ..common.http import error_status, json_error, token_required
from ..container import Container
from ..core.enums import CheckinMode
from ..core.exceptions import ConflictError, DomainError


def register(app: Flask, container: Container) -> None:
    guarded = token_required(app)
    registry = container.session_registry

    @app.route("/api/health", methods=["GET"], endpoint="api_health")
    def api_health():
        return jsonify({"status": "ok"})

    @app.route("/api/sessions", methods=["POST"], endpoint="api_open_session")
    @guarded
    def api_open_session():
        data = request.get_json(silent=True) or {}
        now = now_local(app.config["TIMEZONE"])
        try:
            course = registry.get_course(str(data.get("courseId") or ""))
            session_date = parse_iso_date(data["date"]) if data.get("date") else now.date()
            start = parse_hhmm(data["startTime"]) if data.get("startTime") else course.start_time
            end = parse_hhmm(data["endTime"]) if data.get("endTime") else course.end_time
        except ValueError:
            return json_error("Invalid date or time (YYYY-MM-DD, HH:MM)", 400)
        except DomainError as e:
            return json_error(str(e), error_status(e))

        try:
            session = registry.open_session(course.course_id, session_date, start, end, now=now)
        except ConflictError as e:
            return json_error(str(e), 409, sessionId=e.session_id)
        except DomainError as e:
            return json_error(str(e), error_status(e))

        return jsonify(
            {
                "success": True,
                "sessionId": session.session_id,
                "directCode": format_checkin_code(CheckinMode.DIRECT, course.course_id, session.session_id),
                "gpsCode": format_checkin_code(CheckinMode.GPS, course.course_id, session.session_id),
            }
        ), 201

    @app.route("/api/sessions/<session_id>/qrcode.png", methods=["GET"], endpoint="api_session_qrcode")
    @guarded
    def api_session_qrcode(session_id: str):
        try:
            session = registry.get_session(session_id)
        except DomainError as e:
            return json_error(str(e), error_status(e))

        # Shown on the classroom screen, so it carries the venue (direct) mode.
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(format_checkin_code(CheckinMode.DIRECT, session.course_id, session.session_id))
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        buf.seek(0)
        return send_file(buf, mimetype="image/png")

    @app.route("/api/sessions/<session_id>/complete", methods=["POST"], endpoint="api_complete_session")
    @guarded
    def api_complete_session(session_id: str):
        try:
            summary = container.absence_reconciler.complete_session(session_id)
        except DomainError as e:
            return json_error(str(e), error_status(e))
        return jsonify({"success": True, **summary.to_dict()})
