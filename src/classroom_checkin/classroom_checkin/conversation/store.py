from __future__ import annotations

import json
import logging
from typing import Optional, Protocol

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .state import ConversationState

logger = logging.getLogger(__name__)


class ConversationStore(Protocol):
    def get(self, key: str) -> Optional[ConversationState]:
        raise NotImplementedError

    def set(self, key: str, state: ConversationState) -> None:
        raise NotImplementedError

    def clear(self, key: str) -> None:
        raise NotImplementedError


class InMemoryConversationStore(ConversationStore):
    """Process-local store.

    Note: Only valid for a single instance; a restart drops every in-flight flow.
    """

    def __init__(self):
        self._states: dict[str, ConversationState] = {}

    def get(self, key: str) -> Optional[ConversationState]:
        return self._states.get(key)

    def set(self, key: str, state: ConversationState) -> None:
        self._states[key] = state

    def clear(self, key: str) -> None:
        self._states.pop(key, None)


class MySQLConversationStore(ConversationStore):
    """Shared store for multi-instance deployments (one JSON row per identity)."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, key: str) -> Optional[ConversationState]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT payload FROM conversation_states WHERE line_user_id=%s", (key,))
            r = fetchone(cur)
        if not r:
            return None
        try:
            return ConversationState.from_dict(json.loads(r["payload"]))
        except (ValueError, KeyError) as e:
            logger.warning("Dropping unreadable conversation state for %s: %s", key, e)
            self.clear(key)
            return None

    def set(self, key: str, state: ConversationState) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO conversation_states(line_user_id, payload) VALUES(%s,%s)
                ON DUPLICATE KEY UPDATE payload=VALUES(payload)
                """,
                (key, json.dumps(state.to_dict())),
            )

    def clear(self, key: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM conversation_states WHERE line_user_id=%s", (key,))
