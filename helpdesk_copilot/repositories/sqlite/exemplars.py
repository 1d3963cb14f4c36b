from __future__ import annotations

from typing import Any

from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.base import row_to_dict, transaction, utc_now


def _decode(row: Any) -> dict[str, Any] | None:
    exemplar = row_to_dict(row)
    if exemplar is None:
        return None
    exemplar["is_reply"] = bool(exemplar.get("is_reply"))
    exemplar["has_embedding"] = bool(exemplar.get("has_embedding"))
    return exemplar


class ExemplarsRepository:
    def __init__(self, settings: Settings):
        self._settings = settings

    def insert_if_absent(
        self,
        message_id: str,
        body: str,
        subject: str = "",
        thread_id: str | None = None,
        from_address: str = "",
        to_address: str = "",
        is_reply: bool = False,
    ) -> tuple[dict[str, Any], bool]:
        with transaction(self._settings) as conn:
            cursor = conn.execute(
                """
                INSERT INTO style_exemplars (
                    message_id, thread_id, subject, body, from_address, to_address,
                    is_reply, has_embedding, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)
                ON CONFLICT (message_id) DO NOTHING
                """,
                (message_id, thread_id, subject, body, from_address, to_address, int(is_reply), utc_now()),
            )
            row = conn.execute("SELECT * FROM style_exemplars WHERE message_id = ?", (message_id,)).fetchone()
            return _decode(row) or {}, cursor.rowcount > 0

    def mark_embedded(self, exemplar_id: int) -> None:
        with transaction(self._settings) as conn:
            conn.execute("UPDATE style_exemplars SET has_embedding = 1 WHERE id = ?", (exemplar_id,))

    def get_many(self, exemplar_ids: list[int]) -> list[dict[str, Any]]:
        if not exemplar_ids:
            return []
        placeholders = ", ".join("?" for _ in exemplar_ids)
        with transaction(self._settings) as conn:
            rows = conn.execute(
                f"SELECT * FROM style_exemplars WHERE id IN ({placeholders})",
                exemplar_ids,
            ).fetchall()
            return [exemplar for exemplar in (_decode(row) for row in rows) if exemplar]

    def list_recent(self, limit: int, embedded: bool | None = None) -> list[dict[str, Any]]:
        query = "SELECT * FROM style_exemplars"
        params: list[Any] = []
        if embedded is not None:
            query += " WHERE has_embedding = ?"
            params.append(int(embedded))
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)

        with transaction(self._settings) as conn:
            rows = conn.execute(query, params).fetchall()
            return [exemplar for exemplar in (_decode(row) for row in rows) if exemplar]
