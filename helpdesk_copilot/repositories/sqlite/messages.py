from __future__ import annotations

from typing import Any

from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.base import row_to_dict, transaction, utc_now


class MessagesRepository:
    """Local cache of mail messages as seen by the mail transport."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def save(
        self,
        message_id: str,
        thread_id: str,
        subject: str,
        from_address: str,
        to_address: str,
        body: str,
        direction: str = "inbound",
        sent_at: str | None = None,
    ) -> dict[str, Any]:
        with transaction(self._settings) as conn:
            conn.execute(
                """
                INSERT INTO mail_messages (id, thread_id, subject, from_address, to_address, body, direction, sent_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (id) DO NOTHING
                """,
                (
                    message_id,
                    thread_id,
                    subject,
                    from_address,
                    to_address,
                    body,
                    direction,
                    sent_at or utc_now(),
                ),
            )
            row = conn.execute("SELECT * FROM mail_messages WHERE id = ?", (message_id,)).fetchone()
            return row_to_dict(row) or {}

    def get_by_id(self, message_id: str) -> dict[str, Any] | None:
        with transaction(self._settings) as conn:
            row = conn.execute("SELECT * FROM mail_messages WHERE id = ?", (message_id,)).fetchone()
            return row_to_dict(row)

    def list_thread(self, thread_id: str) -> list[dict[str, Any]]:
        with transaction(self._settings) as conn:
            rows = conn.execute(
                "SELECT * FROM mail_messages WHERE thread_id = ? ORDER BY sent_at ASC, rowid ASC",
                (thread_id,),
            ).fetchall()
            return [dict(row) for row in rows]
