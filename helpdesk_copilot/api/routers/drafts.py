from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query

from helpdesk_copilot.api.dependencies import get_actor, get_draft_service
from helpdesk_copilot.schemas.api import (
    DraftResponse,
    DraftUpdateRequest,
    GenerateDraftResponse,
    SendReplyRequest,
    SendReplyResponse,
    UsageEventResponse,
)
from helpdesk_copilot.schemas.domain import Actor
from helpdesk_copilot.services.draft_service import DraftService

router = APIRouter()


@router.post("/api/emails/{email_id}/draft", response_model=GenerateDraftResponse)
def generate_draft_route(
    email_id: str,
    actor: Actor = Depends(get_actor),
    draft_service: DraftService = Depends(get_draft_service),
) -> dict[str, Any]:
    return draft_service.generate_for_email(actor, email_id)


@router.get("/api/emails/{email_id}/draft", response_model=DraftResponse)
def get_draft_route(
    email_id: str,
    actor: Actor = Depends(get_actor),
    draft_service: DraftService = Depends(get_draft_service),
) -> dict[str, Any]:
    return draft_service.get_draft(actor, email_id)


@router.patch("/api/drafts/{draft_id}", response_model=DraftResponse)
def edit_draft_route(
    draft_id: int,
    payload: DraftUpdateRequest,
    actor: Actor = Depends(get_actor),
    draft_service: DraftService = Depends(get_draft_service),
) -> dict[str, Any]:
    return draft_service.edit(actor, draft_id, payload.draft_text)


@router.post("/api/emails/{email_id}/reply", response_model=SendReplyResponse)
def send_reply_route(
    email_id: str,
    payload: SendReplyRequest,
    actor: Actor = Depends(get_actor),
    draft_service: DraftService = Depends(get_draft_service),
) -> dict[str, Any]:
    return draft_service.send_reply(actor, email_id, payload.draft_text, draft_id=payload.draft_id)


@router.get("/api/usage-events", response_model=list[UsageEventResponse])
def list_usage_events_route(
    draft_id: int | None = Query(default=None),
    ticket_id: int | None = Query(default=None),
    action: Literal["draft_generated", "draft_regenerated", "draft_edited", "draft_sent"] | None = Query(
        default=None
    ),
    actor: Actor = Depends(get_actor),
    draft_service: DraftService = Depends(get_draft_service),
) -> list[dict[str, Any]]:
    return draft_service.list_usage_events(actor, draft_id=draft_id, ticket_id=ticket_id, action=action)
