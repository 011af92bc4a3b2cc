from __future__ import annotations

from datetime import date, datetime

from ..core.enums import LedgerAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .repository import DispatchLedger


class MySQLDispatchLedger(DispatchLedger):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def has_entry(self, subject: str, ledger_date: date, action: LedgerAction) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS hit FROM dispatch_ledger WHERE subject=%s AND ledger_date=%s AND action=%s",
                (subject, ledger_date, action.value),
            )
            return fetchone(cur) is not None

    def add_entry(self, subject: str, ledger_date: date, action: LedgerAction, *, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO dispatch_ledger(subject, ledger_date, action, created_at)
                VALUES(%s,%s,%s,%s)
                """,
                (subject, ledger_date, action.value, now),
            )
            return cur.rowcount > 0
