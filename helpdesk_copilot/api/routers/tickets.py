from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from helpdesk_copilot.api.dependencies import (
    get_actor,
    get_mail_transport,
    get_presence,
    get_ticket_state_machine,
)
from helpdesk_copilot.integrations.mail import StoredMailTransport
from helpdesk_copilot.schemas.api import (
    AssignRequest,
    InboundMessageRequest,
    NoteCreateRequest,
    NoteResponse,
    PriorityRequest,
    StatusRequest,
    TagsRequest,
    ThreadMessageResponse,
    TicketResponse,
    TypingRequest,
    TypingResponse,
)
from helpdesk_copilot.schemas.domain import Actor, MailMessage
from helpdesk_copilot.services.presence import TypingPresence
from helpdesk_copilot.services.ticket_service import TicketStateMachine

router = APIRouter()


@router.post("/api/inbound", response_model=TicketResponse)
def ingest_message_route(
    payload: InboundMessageRequest,
    transport: StoredMailTransport = Depends(get_mail_transport),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> dict[str, Any]:
    message = transport.record_inbound(
        MailMessage(
            id=payload.message_id,
            thread_id=payload.thread_id or payload.message_id,
            subject=payload.subject,
            from_address=str(payload.from_address),
            to_address=str(payload.to_address),
            body=payload.body,
            sent_at=payload.sent_at,
        )
    )
    return state_machine.ingest_message(
        message,
        is_from_agent=payload.is_from_agent,
        customer_name=payload.customer_name,
    )


@router.get("/api/tickets", response_model=list[TicketResponse])
def list_tickets_route(
    limit: int = Query(default=200, ge=1, le=1000),
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> list[dict[str, Any]]:
    return state_machine.list_tickets(actor, limit=limit)


@router.get("/api/tickets/{ticket_id}", response_model=TicketResponse)
def get_ticket_route(
    ticket_id: int,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> dict[str, Any]:
    return state_machine.get_ticket(actor, ticket_id)


@router.patch("/api/tickets/{ticket_id}/assign", response_model=TicketResponse)
def assign_ticket_route(
    ticket_id: int,
    payload: AssignRequest,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> dict[str, Any]:
    return state_machine.assign(actor, ticket_id, payload.assignee_id, priority=payload.priority)


@router.patch("/api/tickets/{ticket_id}/priority", response_model=TicketResponse)
def set_priority_route(
    ticket_id: int,
    payload: PriorityRequest,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> dict[str, Any]:
    return state_machine.set_priority(actor, ticket_id, payload.priority)


@router.patch("/api/tickets/{ticket_id}/status", response_model=TicketResponse)
def set_status_route(
    ticket_id: int,
    payload: StatusRequest,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> dict[str, Any]:
    return state_machine.set_status(actor, ticket_id, payload.status)


@router.patch("/api/tickets/{ticket_id}/tags", response_model=TicketResponse)
def set_tags_route(
    ticket_id: int,
    payload: TagsRequest,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> dict[str, Any]:
    return state_machine.set_tags(actor, ticket_id, payload.tags)


@router.post("/api/tickets/{ticket_id}/tags/{tag}", response_model=TicketResponse)
def add_tag_route(
    ticket_id: int,
    tag: str,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> dict[str, Any]:
    return state_machine.add_tag(actor, ticket_id, tag)


@router.delete("/api/tickets/{ticket_id}/tags/{tag}", response_model=TicketResponse)
def remove_tag_route(
    ticket_id: int,
    tag: str,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> dict[str, Any]:
    return state_machine.remove_tag(actor, ticket_id, tag)


@router.get("/api/tickets/{ticket_id}/thread", response_model=list[ThreadMessageResponse])
def ticket_thread_route(
    ticket_id: int,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
    transport: StoredMailTransport = Depends(get_mail_transport),
) -> list[dict[str, Any]]:
    ticket = state_machine.get_ticket(actor, ticket_id)
    return transport.thread_rows(ticket["thread_id"])


@router.get("/api/tickets/{ticket_id}/typing", response_model=TypingResponse)
def typing_status_route(
    ticket_id: int,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
    presence: TypingPresence = Depends(get_presence),
) -> dict[str, list[str]]:
    state_machine.get_ticket(actor, ticket_id)
    return {"typing_users": presence.typing_users(ticket_id, viewer_id=actor.user_id)}


@router.post("/api/tickets/{ticket_id}/typing", response_model=TypingResponse)
def update_typing_route(
    ticket_id: int,
    payload: TypingRequest,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
    presence: TypingPresence = Depends(get_presence),
) -> dict[str, list[str]]:
    state_machine.get_ticket(actor, ticket_id)
    presence.mark(ticket_id, actor.user_id, typing=payload.typing)
    return {"typing_users": presence.typing_users(ticket_id, viewer_id=actor.user_id)}


@router.get("/api/tickets/{ticket_id}/notes", response_model=list[NoteResponse])
def list_notes_route(
    ticket_id: int,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> list[dict[str, Any]]:
    return state_machine.list_notes(actor, ticket_id)


@router.post("/api/tickets/{ticket_id}/notes", response_model=NoteResponse, status_code=201)
def add_note_route(
    ticket_id: int,
    payload: NoteCreateRequest,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> dict[str, Any]:
    return state_machine.add_note(actor, ticket_id, payload.content)


@router.delete("/api/tickets/{ticket_id}/notes/{note_id}", status_code=204)
def delete_note_route(
    ticket_id: int,
    note_id: int,
    actor: Actor = Depends(get_actor),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
) -> None:
    state_machine.delete_note(actor, ticket_id, note_id)
