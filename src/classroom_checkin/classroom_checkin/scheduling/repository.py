from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

from ..core.enums import LedgerAction


class DispatchLedger(Protocol):
    """Append-only record of scheduled side effects already performed."""

    def has_entry(self, subject: str, ledger_date: date, action: LedgerAction) -> bool:
        raise NotImplementedError

    def add_entry(self, subject: str, ledger_date: date, action: LedgerAction, *, now: datetime) -> bool:
        """Returns False when the entry already existed."""

        raise NotImplementedError
