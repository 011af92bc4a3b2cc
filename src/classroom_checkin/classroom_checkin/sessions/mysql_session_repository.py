from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import SessionState
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, to_time
from .model import CheckinSession
from .repository import SessionRepository

_COLUMNS = "session_id, course_id, session_date, start_time, end_time, state, created_at"


def _to_session(r: dict) -> CheckinSession:
    return CheckinSession(
        session_id=str(r["session_id"]),
        course_id=str(r["course_id"]),
        session_date=r["session_date"],
        start_time=to_time(r["start_time"]),
        end_time=to_time(r["end_time"]),
        state=SessionState(r["state"]),
        created_at=r["created_at"],
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, session_id: str) -> Optional[CheckinSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM checkin_sessions WHERE session_id=%s", (session_id,))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def find_active(self, course_id: str, session_date: date) -> Optional[CheckinSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM checkin_sessions
                WHERE course_id=%s AND session_date=%s AND state<>%s
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (course_id, session_date, SessionState.CLOSED.value),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def create(self, session: CheckinSession) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"INSERT INTO checkin_sessions({_COLUMNS}) VALUES(%s,%s,%s,%s,%s,%s,%s)",
                    (
                        session.session_id,
                        session.course_id,
                        session.session_date,
                        session.start_time,
                        session.end_time,
                        session.state.value,
                        session.created_at,
                    ),
                )
        except IntegrityError as e:
            if is_duplicate_key(e):
                raise ConflictError(
                    f"Course {session.course_id} already has an open session on {session.session_date}"
                ) from e
            raise

    def list_by_state(self, state: SessionState) -> Sequence[CheckinSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM checkin_sessions WHERE state=%s ORDER BY session_date, end_time",
                (state.value,),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def transition(self, session_id: str, *, from_state: SessionState, to_state: SessionState) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE checkin_sessions SET state=%s WHERE session_id=%s AND state=%s",
                (to_state.value, session_id, from_state.value),
            )
            return cur.rowcount > 0
