from __future__ import annotations

from typing import Any

from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.base import row_to_dict, transaction, utc_now


class NotesRepository:
    def __init__(self, settings: Settings):
        self._settings = settings

    def create(self, ticket_id: int, user_id: str, content: str) -> dict[str, Any]:
        now = utc_now()
        with transaction(self._settings) as conn:
            cursor = conn.execute(
                """
                INSERT INTO ticket_notes (ticket_id, user_id, content, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (ticket_id, user_id, content, now, now),
            )
            row = conn.execute("SELECT * FROM ticket_notes WHERE id = ?", (cursor.lastrowid,)).fetchone()
            return row_to_dict(row) or {}

    def list_for_ticket(self, ticket_id: int) -> list[dict[str, Any]]:
        with transaction(self._settings) as conn:
            rows = conn.execute(
                "SELECT * FROM ticket_notes WHERE ticket_id = ? ORDER BY created_at DESC, id DESC",
                (ticket_id,),
            ).fetchall()
            return [dict(row) for row in rows]

    def get_by_id(self, note_id: int) -> dict[str, Any] | None:
        with transaction(self._settings) as conn:
            row = conn.execute("SELECT * FROM ticket_notes WHERE id = ?", (note_id,)).fetchone()
            return row_to_dict(row)

    def delete(self, note_id: int) -> bool:
        with transaction(self._settings) as conn:
            cursor = conn.execute("DELETE FROM ticket_notes WHERE id = ?", (note_id,))
            return cursor.rowcount > 0
