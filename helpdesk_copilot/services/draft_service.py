from __future__ import annotations

import logging
from typing import Any

from helpdesk_copilot.core.errors import Forbidden, NotFound
from helpdesk_copilot.integrations.embeddings import Embedder, StyleExemplarIndex, message_context
from helpdesk_copilot.integrations.llm import ThreadTurn
from helpdesk_copilot.integrations.mail import MailTransport
from helpdesk_copilot.repositories.sqlite.drafts import DraftsRepository
from helpdesk_copilot.repositories.sqlite.tickets import TicketsRepository
from helpdesk_copilot.repositories.sqlite.usage_events import UsageEventsRepository
from helpdesk_copilot.schemas.domain import Actor, MailMessage, OutgoingReply
from helpdesk_copilot.services.draft_generator import DraftGenerator
from helpdesk_copilot.services.draft_lifecycle import DraftLifecycleTracker
from helpdesk_copilot.services.guardrail_service import GuardrailService
from helpdesk_copilot.services.ticket_service import TicketStateMachine

logger = logging.getLogger(__name__)


def reply_subject(subject: str) -> str:
    subject = subject.strip()
    if subject.lower().startswith("re:"):
        return subject
    return f"Re: {subject}"


class DraftService:
    def __init__(
        self,
        transport: MailTransport,
        tickets_repo: TicketsRepository,
        drafts_repo: DraftsRepository,
        usage_repo: UsageEventsRepository,
        state_machine: TicketStateMachine,
        guardrail_service: GuardrailService,
        generator: DraftGenerator,
        tracker: DraftLifecycleTracker,
        embedder: Embedder,
        exemplar_index: StyleExemplarIndex,
    ):
        self._transport = transport
        self._tickets = tickets_repo
        self._drafts = drafts_repo
        self._usage = usage_repo
        self._state_machine = state_machine
        self._guardrails = guardrail_service
        self._generator = generator
        self._tracker = tracker
        self._embedder = embedder
        self._index = exemplar_index

    def serialize_draft(self, draft: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": draft["id"],
            "email_id": draft["email_id"],
            "thread_id": draft.get("thread_id"),
            "ticket_id": draft.get("ticket_id"),
            "subject": draft["subject"],
            "from_address": draft["from_address"],
            "to_address": draft["to_address"],
            "original_body": draft["original_body"],
            "draft_text": draft["draft_text"],
            "source_user_id": draft.get("source_user_id"),
            "created_at": draft["created_at"],
            "updated_at": draft["updated_at"],
        }

    @property
    def owner_scope(self) -> str:
        return self._transport.get_profile()["email_address"].lower()

    def _load_message(self, email_id: str) -> MailMessage:
        message = self._transport.get_message(email_id)
        if message is None:
            raise NotFound("Email not found")
        return message

    def _visible_ticket(self, actor: Actor, thread_id: str) -> dict[str, Any] | None:
        ticket = self._tickets.get_by_thread_id(thread_id)
        if ticket is None:
            return None
        return self._state_machine.get_ticket(actor, ticket["id"])

    def thread_history(self, message: MailMessage) -> list[ThreadTurn]:
        """Earlier thread messages, oldest first, up to the incoming one."""
        account = self.owner_scope
        turns: list[ThreadTurn] = []
        for item in self._transport.fetch_thread(message.thread_id):
            if item.id == message.id:
                break
            if not item.body.strip():
                continue
            author = "agent" if item.from_address.lower() == account else "customer"
            turns.append(ThreadTurn(author=author, text=item.body))
        return turns

    def generate_for_email(self, actor: Actor, email_id: str) -> dict[str, Any]:
        message = self._load_message(email_id)
        ticket = self._visible_ticket(actor, message.thread_id)
        owner_scope = self.owner_scope
        regenerating = self._drafts.get_for_email(email_id, owner_scope) is not None

        result = self._generator.generate(
            message,
            ticket["tags"] if ticket else [],
            self._guardrails.get_config(),
            thread=self.thread_history(message),
            regenerating=regenerating,
        )
        draft, regenerated = self._tracker.on_generated(
            message=message,
            owner_scope=owner_scope,
            result=result,
            user_id=actor.user_id,
            ticket_id=ticket["id"] if ticket else None,
        )
        return {
            "email_id": email_id,
            "draft": self.serialize_draft(draft),
            "regenerated": regenerated,
            "fallback_used": result.fallback_used,
            "used_knowledge_ids": result.used_knowledge_ids,
            "used_exemplar_ids": result.used_exemplar_ids,
            "latency_ms": result.latency_ms,
        }

    def get_draft(self, actor: Actor, email_id: str) -> dict[str, Any]:
        message = self._load_message(email_id)
        self._visible_ticket(actor, message.thread_id)
        draft = self._drafts.get_for_email(email_id, self.owner_scope)
        if not draft:
            raise NotFound("No draft for this email")
        return self.serialize_draft(draft)

    def edit(self, actor: Actor, draft_id: int, draft_text: str) -> dict[str, Any]:
        draft = self._drafts.get_by_id(draft_id)
        if not draft:
            raise NotFound("Draft not found")
        if draft.get("thread_id"):
            self._visible_ticket(actor, draft["thread_id"])
        return self.serialize_draft(self._tracker.on_edited(draft_id, draft_text, actor.user_id))

    def send_reply(
        self,
        actor: Actor,
        email_id: str,
        draft_text: str,
        draft_id: int | None = None,
    ) -> dict[str, Any]:
        message = self._load_message(email_id)
        ticket = self._visible_ticket(actor, message.thread_id)
        owner_scope = self.owner_scope

        if draft_id is not None:
            draft = self._drafts.get_by_id(draft_id)
            if not draft or draft["email_id"] != email_id:
                raise NotFound("Draft not found")
        else:
            draft = self._drafts.get_for_email(email_id, owner_scope)

        sent = self._transport.send(
            OutgoingReply(
                thread_id=message.thread_id,
                in_reply_to=message.id,
                to_address=message.from_address,
                from_address=owner_scope,
                subject=reply_subject(message.subject),
                body=draft_text,
            )
        )
        self._capture_exemplar(sent)

        if ticket is not None:
            self._state_machine.record_agent_reply(ticket["id"], sent.sent_at)

        edited = False
        if draft:
            event = self._tracker.on_sent(draft["id"], draft_text, actor.user_id)
            edited = event["was_edited"]

        return {
            "success": True,
            "message_id": sent.id,
            "thread_id": sent.thread_id,
            "was_edited": edited,
        }

    def _capture_exemplar(self, sent: MailMessage) -> None:
        vector = self._embedder.try_embed(message_context(sent.subject, sent.body))
        try:
            self._index.index(sent, vector, is_reply=True)
        except Exception:
            logger.exception("Failed to index sent message %s as a style exemplar", sent.id)

    def list_usage_events(
        self,
        actor: Actor,
        draft_id: int | None = None,
        ticket_id: int | None = None,
        action: str | None = None,
    ) -> list[dict[str, Any]]:
        if not actor.is_privileged:
            raise Forbidden("Only admins and managers can view AI usage")
        return self._usage.list(draft_id=draft_id, ticket_id=ticket_id, action=action)
