from __future__ import annotations

import sqlite3
from typing import Any

from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.base import row_to_dict, use_connection, utc_now


class DraftsRepository:
    def __init__(self, settings: Settings):
        self._settings = settings

    def upsert(
        self,
        email_id: str,
        owner_scope: str,
        draft_text: str,
        thread_id: str | None = None,
        ticket_id: int | None = None,
        subject: str = "",
        from_address: str = "",
        to_address: str = "",
        original_body: str = "",
        source_user_id: str | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> tuple[dict[str, Any], dict[str, Any] | None]:
        """Write the live draft for ``(email_id, owner_scope)``.

        An existing row keeps its id and ``created_at``; its text is replaced.
        Returns the stored draft and the row it replaced, if any.
        """
        now = utc_now()
        with use_connection(self._settings, conn) as db:
            previous = row_to_dict(
                db.execute(
                    "SELECT * FROM drafts WHERE email_id = ? AND owner_scope = ?",
                    (email_id, owner_scope),
                ).fetchone()
            )
            db.execute(
                """
                INSERT INTO drafts (
                    email_id, owner_scope, thread_id, ticket_id, subject, from_address,
                    to_address, original_body, draft_text, generated_text,
                    source_user_id, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (email_id, owner_scope) DO UPDATE SET
                    thread_id = excluded.thread_id,
                    ticket_id = excluded.ticket_id,
                    subject = excluded.subject,
                    from_address = excluded.from_address,
                    to_address = excluded.to_address,
                    original_body = excluded.original_body,
                    draft_text = excluded.draft_text,
                    generated_text = excluded.generated_text,
                    source_user_id = excluded.source_user_id,
                    updated_at = excluded.updated_at
                """,
                (
                    email_id,
                    owner_scope,
                    thread_id,
                    ticket_id,
                    subject,
                    from_address,
                    to_address,
                    original_body,
                    draft_text,
                    draft_text,
                    source_user_id,
                    now,
                    now,
                ),
            )
            row = db.execute(
                "SELECT * FROM drafts WHERE email_id = ? AND owner_scope = ?",
                (email_id, owner_scope),
            ).fetchone()
            return row_to_dict(row) or {}, previous

    def get_by_id(self, draft_id: int, conn: sqlite3.Connection | None = None) -> dict[str, Any] | None:
        with use_connection(self._settings, conn) as db:
            row = db.execute("SELECT * FROM drafts WHERE id = ?", (draft_id,)).fetchone()
            return row_to_dict(row)

    def get_for_email(self, email_id: str, owner_scope: str) -> dict[str, Any] | None:
        with use_connection(self._settings, None) as db:
            row = db.execute(
                "SELECT * FROM drafts WHERE email_id = ? AND owner_scope = ?",
                (email_id, owner_scope),
            ).fetchone()
            return row_to_dict(row)

    def list_for_owner(self, owner_scope: str) -> list[dict[str, Any]]:
        with use_connection(self._settings, None) as db:
            rows = db.execute(
                "SELECT * FROM drafts WHERE owner_scope = ? ORDER BY updated_at DESC",
                (owner_scope,),
            ).fetchall()
            return [dict(row) for row in rows]

    def update_text(
        self,
        draft_id: int,
        draft_text: str,
        conn: sqlite3.Connection | None = None,
    ) -> dict[str, Any] | None:
        with use_connection(self._settings, conn) as db:
            db.execute(
                "UPDATE drafts SET draft_text = ?, updated_at = ? WHERE id = ?",
                (draft_text, utc_now(), draft_id),
            )
            row = db.execute("SELECT * FROM drafts WHERE id = ?", (draft_id,)).fetchone()
            return row_to_dict(row)

    def delete(self, draft_id: int, conn: sqlite3.Connection | None = None) -> bool:
        with use_connection(self._settings, conn) as db:
            cursor = db.execute("DELETE FROM drafts WHERE id = ?", (draft_id,))
            return cursor.rowcount > 0
