from __future__ import annotations

import logging
from typing import Any

from helpdesk_copilot.core.errors import NotFound
from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.base import transaction
from helpdesk_copilot.repositories.sqlite.drafts import DraftsRepository
from helpdesk_copilot.repositories.sqlite.usage_events import UsageEventsRepository
from helpdesk_copilot.schemas.domain import MailMessage
from helpdesk_copilot.services.draft_generator import GenerationResult

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    """Trim and collapse whitespace; case is preserved."""
    return " ".join(text.split())


def was_edited(generated_text: str, final_text: str) -> bool:
    return normalize_text(generated_text) != normalize_text(final_text)


class DraftLifecycleTracker:
    """Persists drafts and appends the usage event for each step.

    A draft write and its usage event always share one SQLite transaction.
    """

    def __init__(self, settings: Settings, drafts_repo: DraftsRepository, usage_repo: UsageEventsRepository):
        self._settings = settings
        self._drafts = drafts_repo
        self._usage = usage_repo

    def on_generated(
        self,
        message: MailMessage,
        owner_scope: str,
        result: GenerationResult,
        user_id: str | None,
        ticket_id: int | None = None,
    ) -> tuple[dict[str, Any], bool]:
        """Store the generated text; returns the draft and whether it was a regeneration."""
        with transaction(self._settings) as conn:
            draft, previous = self._drafts.upsert(
                email_id=message.id,
                owner_scope=owner_scope,
                draft_text=result.draft_text,
                thread_id=message.thread_id,
                ticket_id=ticket_id,
                subject=message.subject,
                from_address=message.from_address,
                to_address=message.to_address,
                original_body=message.body,
                source_user_id=user_id,
                conn=conn,
            )
            regenerated = previous is not None
            self._usage.append(
                action="draft_regenerated" if regenerated else "draft_generated",
                draft_id=draft["id"],
                ticket_id=ticket_id,
                user_id=user_id,
                response_latency_ms=result.latency_ms,
                knowledge_item_ids=result.used_knowledge_ids,
                exemplar_ids=result.used_exemplar_ids,
                guardrail_applied=result.guardrail_applied,
                guardrail_blocked=result.guardrail_blocked,
                fallback_used=result.fallback_used,
                draft_length=len(result.draft_text),
                conn=conn,
            )
        return draft, regenerated

    def on_edited(self, draft_id: int, new_text: str, user_id: str | None) -> dict[str, Any]:
        with transaction(self._settings) as conn:
            draft = self._drafts.get_by_id(draft_id, conn=conn)
            if not draft:
                raise NotFound("Draft not found")
            updated = self._drafts.update_text(draft_id, new_text, conn=conn) or draft
            self._usage.append(
                action="draft_edited",
                draft_id=draft_id,
                ticket_id=draft.get("ticket_id"),
                user_id=user_id,
                was_edited=was_edited(draft["generated_text"], new_text),
                draft_length=len(new_text),
                conn=conn,
            )
        return updated

    def on_sent(self, draft_id: int, final_text: str, user_id: str | None) -> dict[str, Any]:
        """Record the send outcome and drop the live draft."""
        with transaction(self._settings) as conn:
            draft = self._drafts.get_by_id(draft_id, conn=conn)
            if not draft:
                raise NotFound("Draft not found")
            edited = was_edited(draft["generated_text"], final_text)
            event = self._usage.append(
                action="draft_sent",
                draft_id=draft_id,
                ticket_id=draft.get("ticket_id"),
                user_id=user_id,
                was_edited=edited,
                was_sent=True,
                draft_length=len(final_text),
                conn=conn,
            )
            self._drafts.delete(draft_id, conn=conn)
        logger.info("Draft %s sent (edited=%s)", draft_id, edited)
        return event
