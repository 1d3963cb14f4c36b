from __future__ import annotations

import logging
from typing import Any

from helpdesk_copilot.core.errors import Forbidden, NotFound
from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.base import utc_now
from helpdesk_copilot.repositories.sqlite.knowledge import KnowledgeRepository
from helpdesk_copilot.schemas.domain import Actor

logger = logging.getLogger(__name__)

_EDITABLE = ("title", "body", "tags", "can_paraphrase")


def _clean_tags(tags: list[str]) -> list[str]:
    return list(dict.fromkeys(tag.strip() for tag in tags if tag and tag.strip()))


class KnowledgeRetriever:
    """Selects published knowledge items whose tags appear in a message.

    A tag matches when it occurs (case-insensitively) inside the message text
    or equals one of the ticket tags. More matched tags rank first; ties go
    to the most recently published item.
    """

    def __init__(self, settings: Settings, knowledge_repo: KnowledgeRepository):
        self._settings = settings
        self._repo = knowledge_repo

    def retrieve(self, message_text: str, available_tags: list[str]) -> list[dict[str, Any]]:
        text = message_text.lower()
        ticket_tags = {tag.strip().lower() for tag in available_tags if tag and tag.strip()}

        scored: list[tuple[int, str, dict[str, Any]]] = []
        for item in self._repo.list(status="published"):
            matched = [
                tag
                for tag in item["tags"]
                if tag.strip() and (tag.strip().lower() in text or tag.strip().lower() in ticket_tags)
            ]
            if not matched:
                continue
            scored.append((len(matched), item.get("published_at") or "", {**item, "matched_tags": matched}))

        scored.sort(key=lambda entry: (entry[0], entry[1]), reverse=True)
        return [item for _, _, item in scored[: self._settings.knowledge_top_k]]


class KnowledgeService:
    """Curates knowledge items; only admins make content live."""

    def __init__(self, knowledge_repo: KnowledgeRepository):
        self._repo = knowledge_repo

    @staticmethod
    def _require_privileged(actor: Actor) -> None:
        if not actor.is_privileged:
            raise Forbidden("Only admins and managers can manage knowledge")

    def _get_or_404(self, item_id: int) -> dict[str, Any]:
        item = self._repo.get_by_id(item_id)
        if not item:
            raise NotFound("Knowledge item not found")
        return item

    def list_items(self, actor: Actor, include_all: bool = False) -> list[dict[str, Any]]:
        if include_all:
            self._require_privileged(actor)
            return self._repo.list()
        return self._repo.list(status="published")

    def create(
        self,
        actor: Actor,
        title: str,
        body: str,
        tags: list[str],
        can_paraphrase: bool,
    ) -> dict[str, Any]:
        self._require_privileged(actor)
        published = actor.is_admin
        item = self._repo.create(
            title=title.strip(),
            body=body.strip(),
            tags=_clean_tags(tags),
            can_paraphrase=can_paraphrase,
            status="published" if published else "pending",
            version=1 if published else 0,
            published_at=utc_now() if published else None,
        )
        logger.info("Knowledge item %s created by %s (%s)", item["id"], actor.user_id, item["status"])
        return item

    def update(self, actor: Actor, item_id: int, **changes: Any) -> dict[str, Any]:
        self._require_privileged(actor)
        item = self._get_or_404(item_id)
        changes = {name: value for name, value in changes.items() if name in _EDITABLE and value is not None}
        if "title" in changes:
            changes["title"] = changes["title"].strip()
        if "body" in changes:
            changes["body"] = changes["body"].strip()
        if "tags" in changes:
            changes["tags"] = _clean_tags(changes["tags"])

        if actor.is_admin:
            updated = self._repo.update(
                item_id,
                **changes,
                status="published",
                version=item["version"] + 1,
                published_at=utc_now(),
                pending_changes=None,
            )
        elif item["status"] == "pending":
            updated = self._repo.update(item_id, **changes)
        else:
            updated = self._repo.update(item_id, pending_changes=changes)
        return updated or item

    def publish(self, actor: Actor, item_id: int) -> dict[str, Any]:
        if not actor.is_admin:
            raise Forbidden("Only admins can publish knowledge")
        item = self._get_or_404(item_id)
        staged = item.get("pending_changes") or {}
        updated = self._repo.update(
            item_id,
            **{name: value for name, value in staged.items() if name in _EDITABLE},
            status="published",
            version=item["version"] + 1,
            published_at=utc_now(),
            pending_changes=None,
        )
        logger.info("Knowledge item %s published at version %s", item_id, item["version"] + 1)
        return updated or item

    def delete(self, actor: Actor, item_id: int) -> None:
        self._require_privileged(actor)
        if not self._repo.delete(item_id):
            raise NotFound("Knowledge item not found")
