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

_JSON_FIELDS = {"tags", "pending_changes"}
_UPDATABLE = {"title", "body", "tags", "can_paraphrase", "status", "version", "pending_changes", "published_at"}


def _decode(row: Any) -> dict[str, Any] | None:
    item = row_to_dict(row)
    if item is None:
        return None
    item["tags"] = load_json(item.get("tags"), [])
    item["pending_changes"] = load_json(item.get("pending_changes"), None)
    item["can_paraphrase"] = bool(item.get("can_paraphrase"))
    return item


def _encode(name: str, value: Any) -> Any:
    if name in _JSON_FIELDS:
        return None if value is None else dump_json(value)
    if name == "can_paraphrase":
        return int(bool(value))
    return value


class KnowledgeRepository:
    def __init__(self, settings: Settings):
        self._settings = settings

    def create(
        self,
        title: str,
        body: str,
        tags: list[str],
        can_paraphrase: bool,
        status: str,
        version: int,
        published_at: str | None = None,
    ) -> dict[str, Any]:
        now = utc_now()
        with transaction(self._settings) as conn:
            cursor = conn.execute(
                """
                INSERT INTO knowledge_items (
                    title, body, tags, can_paraphrase, status, version,
                    pending_changes, published_at, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, NULL, ?, ?, ?)
                """,
                (title, body, dump_json(tags), int(can_paraphrase), status, version, published_at, now, now),
            )
            row = conn.execute("SELECT * FROM knowledge_items WHERE id = ?", (cursor.lastrowid,)).fetchone()
            return _decode(row) or {}

    def get_by_id(self, item_id: int) -> dict[str, Any] | None:
        with transaction(self._settings) as conn:
            row = conn.execute("SELECT * FROM knowledge_items WHERE id = ?", (item_id,)).fetchone()
            return _decode(row)

    def list(self, status: str | None = None) -> list[dict[str, Any]]:
        query = "SELECT * FROM knowledge_items"
        params: tuple[Any, ...] = ()
        if status is not None:
            query += " WHERE status = ?"
            params = (status,)
        query += " ORDER BY created_at DESC, id DESC"

        with transaction(self._settings) as conn:
            rows = conn.execute(query, params).fetchall()
            return [item for item in (_decode(row) for row in rows) if item]

    def update(self, item_id: int, **fields: Any) -> dict[str, Any] | None:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unsupported knowledge fields: {sorted(unknown)}")

        updates = [f"{name} = ?" for name in fields]
        values = [_encode(name, value) for name, value in fields.items()]
        updates.append("updated_at = ?")
        values.append(utc_now())

        with transaction(self._settings) as conn:
            values.append(item_id)
            conn.execute(f"UPDATE knowledge_items SET {', '.join(updates)} WHERE id = ?", values)
            row = conn.execute("SELECT * FROM knowledge_items WHERE id = ?", (item_id,)).fetchone()
            return _decode(row)

    def delete(self, item_id: int) -> bool:
        with transaction(self._settings) as conn:
            cursor = conn.execute("DELETE FROM knowledge_items WHERE id = ?", (item_id,))
            return cursor.rowcount > 0
