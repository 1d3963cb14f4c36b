from __future__ import annotations

from typing import Any

from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.base import (
    dump_json,
    load_json,
    row_to_dict,
    transaction,
    utc_now,
)

_UPDATABLE = {
    "status",
    "priority",
    "assignee_id",
    "tags",
    "customer_name",
    "last_customer_reply_at",
    "last_agent_reply_at",
}


def _decode(row: Any) -> dict[str, Any] | None:
    ticket = row_to_dict(row)
    if ticket is None:
        return None
    ticket["tags"] = load_json(ticket.get("tags"), [])
    return ticket


class TicketsRepository:
    def __init__(self, settings: Settings):
        self._settings = settings

    def create(
        self,
        thread_id: str,
        customer_email: str,
        subject: str,
        customer_name: str | None = None,
        last_customer_reply_at: str | None = None,
        last_agent_reply_at: str | None = None,
    ) -> dict[str, Any]:
        now = utc_now()
        with transaction(self._settings) as conn:
            cursor = conn.execute(
                """
                INSERT INTO tickets (
                    thread_id, customer_email, customer_name, subject, status,
                    priority, assignee_id, tags, last_customer_reply_at,
                    last_agent_reply_at, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, 'open', NULL, NULL, '[]', ?, ?, ?, ?)
                """,
                (
                    thread_id,
                    customer_email,
                    customer_name,
                    subject,
                    last_customer_reply_at,
                    last_agent_reply_at,
                    now,
                    now,
                ),
            )
            row = conn.execute("SELECT * FROM tickets WHERE id = ?", (cursor.lastrowid,)).fetchone()
            return _decode(row) or {}

    def get_by_id(self, ticket_id: int) -> dict[str, Any] | None:
        with transaction(self._settings) as conn:
            row = conn.execute("SELECT * FROM tickets WHERE id = ?", (ticket_id,)).fetchone()
            return _decode(row)

    def get_by_thread_id(self, thread_id: str) -> dict[str, Any] | None:
        with transaction(self._settings) as conn:
            row = conn.execute("SELECT * FROM tickets WHERE thread_id = ?", (thread_id,)).fetchone()
            return _decode(row)

    def list(self, visible_to: str | None = None, limit: int = 200) -> list[dict[str, Any]]:
        """List tickets, oldest customer wait first.

        ``visible_to`` restricts the result to tickets assigned to that user
        plus unassigned ones.
        """
        where = ""
        params: list[Any] = []
        if visible_to is not None:
            where = "WHERE assignee_id = ? OR assignee_id IS NULL"
            params.append(visible_to)
        params.append(limit)

        with transaction(self._settings) as conn:
            rows = conn.execute(
                f"""
                SELECT *
                FROM tickets
                {where}
                ORDER BY last_customer_reply_at IS NULL, last_customer_reply_at ASC, id ASC
                LIMIT ?
                """,
                params,
            ).fetchall()
            return [ticket for ticket in (_decode(row) for row in rows) if ticket]

    def update(self, ticket_id: int, **fields: Any) -> dict[str, Any] | None:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unsupported ticket fields: {sorted(unknown)}")

        updates: list[str] = []
        values: list[Any] = []
        for name, value in fields.items():
            updates.append(f"{name} = ?")
            values.append(dump_json(value) if name == "tags" else value)
        updates.append("updated_at = ?")
        values.append(utc_now())

        with transaction(self._settings) as conn:
            values.append(ticket_id)
            conn.execute(f"UPDATE tickets SET {', '.join(updates)} WHERE id = ?", values)
            row = conn.execute("SELECT * FROM tickets WHERE id = ?", (ticket_id,)).fetchone()
            return _decode(row)
