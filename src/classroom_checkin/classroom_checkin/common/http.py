from __future__ import annotations

import hmac
from functools import wraps

from flask import Flask, jsonify, request

from ..core.exceptions import ConflictError, DomainError, DuplicateError, NotFoundError, ValidationError


def json_error(message: str, status: int, **extra):
    return jsonify({"success": False, "message": message, **extra}), status


def error_status(err: DomainError) -> int:
    if isinstance(err, NotFoundError):
        return 404
    if isinstance(err, (ConflictError, DuplicateError)):
        return 409
    if isinstance(err, ValidationError):
        return 400
    return 422


def token_required(app: Flask):
    """Guard a view with the shared ``X-Task-Token`` header."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            expected = app.config.get("TASK_TOKEN") or ""
            supplied = request.headers.get("X-Task-Token") or ""
            if not expected or not hmac.compare_digest(expected.encode(), supplied.encode()):
                return json_error("Forbidden", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator
