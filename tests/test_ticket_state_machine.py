"""Tests for ticket ingestion, assignment and tagging rules."""

from __future__ import annotations

import pytest

from helpdesk_copilot.core.errors import Forbidden, NotFound, ValidationFailed
from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite import NotesRepository, TicketsRepository
from helpdesk_copilot.schemas.domain import MailMessage
from helpdesk_copilot.services.ticket_service import TicketStateMachine

from conftest import ADMIN, AGENT, MANAGER, OTHER_AGENT


@pytest.fixture
def machine(db: Settings, tickets_repo: TicketsRepository, notes_repo: NotesRepository) -> TicketStateMachine:
    return TicketStateMachine(db, tickets_repo, notes_repo)


def _customer_message(thread_id: str = "thread-1", sent_at: str | None = None) -> MailMessage:
    return MailMessage(
        id=f"{thread_id}-msg",
        thread_id=thread_id,
        subject="Where is my order?",
        from_address="alice@customer.io",
        to_address="support@acme.io",
        body="My order has not arrived yet.",
        sent_at=sent_at,
    )


def test_first_message_creates_open_unassigned_ticket(machine: TicketStateMachine) -> None:
    ticket = machine.ingest_message(_customer_message(), customer_name="Alice")

    assert ticket["status"] == "open"
    assert ticket["assignee_id"] is None
    assert ticket["priority"] is None
    assert ticket["customer_email"] == "alice@customer.io"
    assert ticket["customer_name"] == "Alice"
    assert ticket["last_customer_reply_at"] is not None


def test_agent_reply_moves_open_ticket_to_pending_but_not_closed(machine: TicketStateMachine) -> None:
    ticket = machine.ingest_message(_customer_message())
    agent_message = _customer_message().model_copy(
        update={"id": "reply-1", "from_address": "support@acme.io", "to_address": "alice@customer.io"}
    )

    pending = machine.ingest_message(agent_message, is_from_agent=True)
    assert pending["status"] == "pending"
    assert pending["last_agent_reply_at"] is not None

    machine.set_status(ADMIN, ticket["id"], "closed")
    still_closed = machine.ingest_message(agent_message, is_from_agent=True)
    assert still_closed["status"] == "closed"

    reopened = machine.ingest_message(_customer_message())
    assert reopened["status"] == "open"
    assert reopened["id"] == ticket["id"]


def test_assign_without_priority_fails_then_succeeds_with_priority(machine: TicketStateMachine) -> None:
    ticket = machine.ingest_message(_customer_message())

    with pytest.raises(ValidationFailed, match="priority required."):
        machine.assign(AGENT, ticket["id"], AGENT.user_id)

    assigned = machine.assign(AGENT, ticket["id"], AGENT.user_id, priority="high")

    assert assigned["status"] == "open"
    assert assigned["assignee_id"] == AGENT.user_id
    assert assigned["priority"] == "high"


def test_reassignment_keeps_priority_and_unassign_hides_it(machine: TicketStateMachine) -> None:
    ticket = machine.ingest_message(_customer_message())
    machine.assign(MANAGER, ticket["id"], AGENT.user_id, priority="urgent")

    reassigned = machine.assign(MANAGER, ticket["id"], OTHER_AGENT.user_id)
    assert reassigned["assignee_id"] == OTHER_AGENT.user_id
    assert reassigned["priority"] == "urgent"

    unassigned = machine.assign(MANAGER, ticket["id"], None)
    assert unassigned["assignee_id"] is None
    assert unassigned["priority"] is None


def test_agent_cannot_take_someone_elses_ticket_or_unassign(machine: TicketStateMachine) -> None:
    ticket = machine.ingest_message(_customer_message())
    machine.assign(ADMIN, ticket["id"], OTHER_AGENT.user_id, priority="low")

    with pytest.raises(Forbidden):
        machine.assign(AGENT, ticket["id"], AGENT.user_id, priority="low")
    with pytest.raises(Forbidden):
        machine.assign(OTHER_AGENT, ticket["id"], None)
    with pytest.raises(Forbidden):
        machine.assign(OTHER_AGENT, ticket["id"], AGENT.user_id)


def test_set_priority_requires_privileged_role_and_assignment(machine: TicketStateMachine) -> None:
    ticket = machine.ingest_message(_customer_message())

    with pytest.raises(Forbidden):
        machine.set_priority(AGENT, ticket["id"], "high")
    with pytest.raises(ValidationFailed):
        machine.set_priority(MANAGER, ticket["id"], "high")

    machine.assign(MANAGER, ticket["id"], AGENT.user_id, priority="low")
    assert machine.set_priority(MANAGER, ticket["id"], "high")["priority"] == "high"


def test_invalid_status_is_rejected(machine: TicketStateMachine) -> None:
    ticket = machine.ingest_message(_customer_message())

    with pytest.raises(ValidationFailed):
        machine.set_status(AGENT, ticket["id"], "archived")
    assert machine.set_status(AGENT, ticket["id"], "on_hold")["status"] == "on_hold"


def test_tags_are_trimmed_deduplicated_and_bounded(machine: TicketStateMachine, settings: Settings) -> None:
    ticket = machine.ingest_message(_customer_message())

    updated = machine.set_tags(AGENT, ticket["id"], ["  Refund ", "refund", "", "Shipping"])
    assert updated["tags"] == ["Refund", "Shipping"]

    updated = machine.add_tag(AGENT, ticket["id"], "vip")
    assert updated["tags"] == ["Refund", "Shipping", "vip"]
    updated = machine.remove_tag(AGENT, ticket["id"], "REFUND")
    assert updated["tags"] == ["Shipping", "vip"]

    with pytest.raises(ValidationFailed):
        machine.set_tags(AGENT, ticket["id"], [f"tag-{index}" for index in range(settings.max_tags + 1)])
    with pytest.raises(ValidationFailed):
        machine.set_tags(AGENT, ticket["id"], ["x" * (settings.max_tag_length + 1)])


def test_agent_can_change_status_and_tags_on_a_colleagues_ticket(machine: TicketStateMachine) -> None:
    ticket = machine.ingest_message(_customer_message())
    machine.assign(MANAGER, ticket["id"], OTHER_AGENT.user_id, priority="medium")

    with pytest.raises(NotFound):
        machine.get_ticket(AGENT, ticket["id"])

    assert machine.set_status(AGENT, ticket["id"], "on_hold")["status"] == "on_hold"
    assert machine.set_tags(AGENT, ticket["id"], ["vip"])["tags"] == ["vip"]
    assert machine.add_tag(AGENT, ticket["id"], "refund")["tags"] == ["vip", "refund"]
    updated = machine.remove_tag(AGENT, ticket["id"], "VIP")
    assert updated["tags"] == ["refund"]
    assert updated["assignee_id"] == OTHER_AGENT.user_id

    with pytest.raises(NotFound):
        machine.set_status(AGENT, 9999, "closed")


def test_agents_see_own_and_unassigned_tickets_oldest_wait_first(machine: TicketStateMachine) -> None:
    newer = machine.ingest_message(_customer_message("thread-new", sent_at="2026-01-02T10:00:00+00:00"))
    older = machine.ingest_message(_customer_message("thread-old", sent_at="2026-01-01T10:00:00+00:00"))
    theirs = machine.ingest_message(_customer_message("thread-theirs", sent_at="2025-12-31T10:00:00+00:00"))
    machine.assign(ADMIN, theirs["id"], OTHER_AGENT.user_id, priority="medium")

    visible = [ticket["id"] for ticket in machine.list_tickets(AGENT)]
    assert visible == [older["id"], newer["id"]]

    everything = [ticket["id"] for ticket in machine.list_tickets(MANAGER)]
    assert everything == [theirs["id"], older["id"], newer["id"]]

    with pytest.raises(NotFound):
        machine.get_ticket(AGENT, theirs["id"])


def test_notes_are_listed_newest_first_and_deleted_by_author(machine: TicketStateMachine) -> None:
    ticket = machine.ingest_message(_customer_message())
    first = machine.add_note(AGENT, ticket["id"], "Called the courier.")
    second = machine.add_note(OTHER_AGENT, ticket["id"], "Customer is a VIP.")

    notes = machine.list_notes(AGENT, ticket["id"])
    assert [note["id"] for note in notes] == [second["id"], first["id"]]

    with pytest.raises(Forbidden):
        machine.delete_note(AGENT, ticket["id"], second["id"])
    machine.delete_note(MANAGER, ticket["id"], second["id"])
    machine.delete_note(AGENT, ticket["id"], first["id"])
    assert machine.list_notes(AGENT, ticket["id"]) == []
