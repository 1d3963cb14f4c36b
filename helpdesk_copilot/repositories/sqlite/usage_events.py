from __future__ import annotations

import sqlite3
from typing import Any

from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.base import (
    dump_json,
    load_json,
    row_to_dict,
    use_connection,
    utc_now,
)

USAGE_ACTIONS = ("draft_generated", "draft_regenerated", "draft_edited", "draft_sent")


def _decode(row: Any) -> dict[str, Any]:
    event = row_to_dict(row) or {}
    event["knowledge_item_ids"] = load_json(event.get("knowledge_item_ids"), [])
    event["exemplar_ids"] = load_json(event.get("exemplar_ids"), [])
    for flag in ("was_edited", "was_sent", "guardrail_applied", "guardrail_blocked", "fallback_used"):
        event[flag] = bool(event.get(flag))
    return event


class UsageEventsRepository:
    """Append-only store of AI usage events; rows are never updated."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def append(
        self,
        action: str,
        draft_id: int | None = None,
        ticket_id: int | None = None,
        user_id: str | None = None,
        was_edited: bool = False,
        was_sent: bool = False,
        response_latency_ms: int | None = None,
        knowledge_item_ids: list[int] | None = None,
        exemplar_ids: list[int] | None = None,
        guardrail_applied: bool = False,
        guardrail_blocked: bool = False,
        fallback_used: bool = False,
        draft_length: int | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> dict[str, Any]:
        if action not in USAGE_ACTIONS:
            raise ValueError(f"Unknown usage action: {action}")

        with use_connection(self._settings, conn) as db:
            cursor = db.execute(
                """
                INSERT INTO ai_usage_events (
                    action, draft_id, ticket_id, user_id, was_edited, was_sent,
                    response_latency_ms, knowledge_item_ids, exemplar_ids,
                    guardrail_applied, guardrail_blocked, fallback_used,
                    draft_length, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    action,
                    draft_id,
                    ticket_id,
                    user_id,
                    int(was_edited),
                    int(was_sent),
                    response_latency_ms,
                    dump_json(knowledge_item_ids or []),
                    dump_json(exemplar_ids or []),
                    int(guardrail_applied),
                    int(guardrail_blocked),
                    int(fallback_used),
                    draft_length,
                    utc_now(),
                ),
            )
            row = db.execute("SELECT * FROM ai_usage_events WHERE id = ?", (cursor.lastrowid,)).fetchone()
            return _decode(row)

    def list(
        self,
        draft_id: int | None = None,
        ticket_id: int | None = None,
        action: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in (("draft_id", draft_id), ("ticket_id", ticket_id), ("action", action)):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)

        with use_connection(self._settings, None) as db:
            rows = db.execute(
                f"SELECT * FROM ai_usage_events {where} ORDER BY id ASC LIMIT ?",
                params,
            ).fetchall()
            return [_decode(row) for row in rows]
