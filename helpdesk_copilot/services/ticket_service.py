from __future__ import annotations

import logging
from typing import Any

from helpdesk_copilot.core.errors import Forbidden, NotFound, ValidationFailed
from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.base import utc_now
from helpdesk_copilot.repositories.sqlite.notes import NotesRepository
from helpdesk_copilot.repositories.sqlite.tickets import TicketsRepository
from helpdesk_copilot.schemas.domain import TICKET_PRIORITIES, TICKET_STATUSES, Actor, MailMessage

logger = logging.getLogger(__name__)

_AGENT_REPLY_MOVES_TO_PENDING = ("open", "pending")


def serialize_ticket(ticket: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": ticket["id"],
        "thread_id": ticket["thread_id"],
        "customer_email": ticket["customer_email"],
        "customer_name": ticket.get("customer_name"),
        "subject": ticket["subject"],
        "status": ticket["status"],
        # An unassigned ticket has no meaningful priority, even if one is stored.
        "priority": ticket.get("priority") if ticket.get("assignee_id") else None,
        "assignee_id": ticket.get("assignee_id"),
        "tags": list(ticket.get("tags") or []),
        "last_customer_reply_at": ticket.get("last_customer_reply_at"),
        "last_agent_reply_at": ticket.get("last_agent_reply_at"),
        "created_at": ticket["created_at"],
        "updated_at": ticket["updated_at"],
    }


class TicketStateMachine:
    """Ticket lifecycle: ingestion, assignment, priority, status, tags and notes.

    Mutations are last-write-wins and always return the serialized ticket.
    """

    def __init__(self, settings: Settings, tickets_repo: TicketsRepository, notes_repo: NotesRepository):
        self._settings = settings
        self._tickets = tickets_repo
        self._notes = notes_repo

    def _get_or_404(self, ticket_id: int) -> dict[str, Any]:
        ticket = self._tickets.get_by_id(ticket_id)
        if not ticket:
            raise NotFound("Ticket not found")
        return ticket

    def _update(self, ticket_id: int, **fields: Any) -> dict[str, Any]:
        ticket = self._tickets.update(ticket_id, **fields)
        if not ticket:
            raise NotFound("Ticket not found")
        return serialize_ticket(ticket)

    def ingest_message(
        self,
        message: MailMessage,
        is_from_agent: bool = False,
        customer_name: str | None = None,
    ) -> dict[str, Any]:
        """Create or bump the ticket for the message's thread."""
        sent_at = message.sent_at or utc_now()
        ticket = self._tickets.get_by_thread_id(message.thread_id)
        if ticket is None:
            ticket = self._tickets.create(
                thread_id=message.thread_id,
                customer_email=message.to_address if is_from_agent else message.from_address,
                customer_name=customer_name,
                subject=message.subject or "(no subject)",
            )
            logger.info("Created ticket %s for thread %s", ticket["id"], message.thread_id)

        if is_from_agent:
            fields: dict[str, Any] = {"last_agent_reply_at": sent_at}
            if ticket["status"] in _AGENT_REPLY_MOVES_TO_PENDING:
                fields["status"] = "pending"
        else:
            fields = {"status": "open", "last_customer_reply_at": sent_at}
            if customer_name and not ticket.get("customer_name"):
                fields["customer_name"] = customer_name
        return self._update(ticket["id"], **fields)

    def record_agent_reply(self, ticket_id: int, sent_at: str | None = None) -> dict[str, Any]:
        ticket = self._get_or_404(ticket_id)
        fields: dict[str, Any] = {"last_agent_reply_at": sent_at or utc_now()}
        if ticket["status"] in _AGENT_REPLY_MOVES_TO_PENDING:
            fields["status"] = "pending"
        return self._update(ticket_id, **fields)

    def list_tickets(self, actor: Actor, limit: int = 200) -> list[dict[str, Any]]:
        visible_to = None if actor.is_privileged else actor.user_id
        return [serialize_ticket(ticket) for ticket in self._tickets.list(visible_to=visible_to, limit=limit)]

    def get_ticket(self, actor: Actor, ticket_id: int) -> dict[str, Any]:
        ticket = self._get_or_404(ticket_id)
        assignee = ticket.get("assignee_id")
        if not actor.is_privileged and assignee and assignee != actor.user_id:
            raise NotFound("Ticket not found")
        return serialize_ticket(ticket)

    def assign(
        self,
        actor: Actor,
        ticket_id: int,
        assignee_id: str | None,
        priority: str | None = None,
    ) -> dict[str, Any]:
        ticket = self._get_or_404(ticket_id)
        current = ticket.get("assignee_id")

        if not actor.is_privileged:
            if assignee_id is None:
                raise Forbidden("Agents cannot unassign tickets")
            if assignee_id != actor.user_id:
                raise Forbidden("Agents can only assign tickets to themselves")
            if current and current != actor.user_id:
                raise Forbidden("Ticket is already assigned to another agent")

        if priority is not None and priority not in TICKET_PRIORITIES:
            raise ValidationFailed(f"Invalid priority: {priority}")

        if assignee_id is None:
            logger.info("Ticket %s unassigned by %s", ticket_id, actor.user_id)
            return self._update(ticket_id, assignee_id=None)

        if current is None and priority is None:
            raise ValidationFailed("priority required.")

        fields: dict[str, Any] = {"assignee_id": assignee_id}
        if priority is not None:
            fields["priority"] = priority
        logger.info("Ticket %s assigned to %s by %s", ticket_id, assignee_id, actor.user_id)
        return self._update(ticket_id, **fields)

    def set_priority(self, actor: Actor, ticket_id: int, priority: str) -> dict[str, Any]:
        if not actor.is_privileged:
            raise Forbidden("Only admins and managers can change priority")
        if priority not in TICKET_PRIORITIES:
            raise ValidationFailed(f"Invalid priority: {priority}")
        ticket = self._get_or_404(ticket_id)
        if not ticket.get("assignee_id"):
            raise ValidationFailed("Ticket must be assigned before setting a priority")
        return self._update(ticket_id, priority=priority)

    def set_status(self, actor: Actor, ticket_id: int, status: str) -> dict[str, Any]:
        if status not in TICKET_STATUSES:
            raise ValidationFailed(f"Invalid status: {status}")
        self._get_or_404(ticket_id)
        logger.info("Ticket %s status -> %s by %s", ticket_id, status, actor.user_id)
        return self._update(ticket_id, status=status)

    def sanitize_tags(self, tags: list[str]) -> list[str]:
        seen: set[str] = set()
        cleaned: list[str] = []
        for tag in tags:
            value = str(tag).strip()
            if not value or value.lower() in seen:
                continue
            seen.add(value.lower())
            cleaned.append(value)

        if len(cleaned) > self._settings.max_tags:
            raise ValidationFailed(f"Maximum {self._settings.max_tags} tags allowed")
        if any(len(tag) > self._settings.max_tag_length for tag in cleaned):
            raise ValidationFailed(f"Tags must be {self._settings.max_tag_length} characters or less")
        return cleaned

    def set_tags(self, actor: Actor, ticket_id: int, tags: list[str]) -> dict[str, Any]:
        cleaned = self.sanitize_tags(tags)
        self._get_or_404(ticket_id)
        logger.info("Ticket %s tags set by %s", ticket_id, actor.user_id)
        return self._update(ticket_id, tags=cleaned)

    def add_tag(self, actor: Actor, ticket_id: int, tag: str) -> dict[str, Any]:
        ticket = serialize_ticket(self._get_or_404(ticket_id))
        return self.set_tags(actor, ticket_id, [*ticket["tags"], tag])

    def remove_tag(self, actor: Actor, ticket_id: int, tag: str) -> dict[str, Any]:
        ticket = serialize_ticket(self._get_or_404(ticket_id))
        target = tag.strip().lower()
        return self.set_tags(actor, ticket_id, [item for item in ticket["tags"] if item.lower() != target])

    def add_note(self, actor: Actor, ticket_id: int, content: str) -> dict[str, Any]:
        self.get_ticket(actor, ticket_id)
        content = content.strip()
        if not content:
            raise ValidationFailed("Note content is required")
        return self._notes.create(ticket_id=ticket_id, user_id=actor.user_id, content=content)

    def list_notes(self, actor: Actor, ticket_id: int) -> list[dict[str, Any]]:
        self.get_ticket(actor, ticket_id)
        return self._notes.list_for_ticket(ticket_id)

    def delete_note(self, actor: Actor, ticket_id: int, note_id: int) -> None:
        note = self._notes.get_by_id(note_id)
        if not note or note["ticket_id"] != ticket_id:
            raise NotFound("Note not found")
        if note["user_id"] != actor.user_id and not actor.is_privileged:
            raise Forbidden("You can only delete your own notes")
        self._notes.delete(note_id)
