from __future__ import annotations

from typing import Any

from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.base import dump_json, load_json, transaction, utc_now


class GuardrailsRepository:
    """Single-row store holding the active rules and an optional staged draft."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def get(self) -> dict[str, Any] | None:
        with transaction(self._settings) as conn:
            row = conn.execute("SELECT * FROM guardrails WHERE id = 1").fetchone()
            if row is None:
                return None
            return {
                "active": load_json(row["active"], {}),
                "draft": load_json(row["draft"], None),
                "updated_at": row["updated_at"],
            }

    def save(self, active: dict[str, Any], draft: dict[str, Any] | None) -> dict[str, Any]:
        with transaction(self._settings) as conn:
            conn.execute(
                """
                INSERT INTO guardrails (id, active, draft, updated_at)
                VALUES (1, ?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET
                    active = excluded.active,
                    draft = excluded.draft,
                    updated_at = excluded.updated_at
                """,
                (dump_json(active), None if draft is None else dump_json(draft), utc_now()),
            )
        return self.get() or {}
