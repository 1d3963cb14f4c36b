from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from helpdesk_copilot.api.dependencies import get_actor, get_exemplar_service
from helpdesk_copilot.schemas.api import ExemplarImportRequest, ExemplarResponse
from helpdesk_copilot.schemas.domain import Actor, MailMessage
from helpdesk_copilot.services.exemplar_service import ExemplarService

router = APIRouter()


@router.post("/api/exemplars", response_model=ExemplarResponse, status_code=201)
def import_exemplar_route(
    payload: ExemplarImportRequest,
    actor: Actor = Depends(get_actor),
    exemplar_service: ExemplarService = Depends(get_exemplar_service),
) -> dict[str, Any]:
    message = MailMessage(
        id=payload.message_id,
        thread_id=payload.thread_id or payload.message_id,
        subject=payload.subject,
        from_address=payload.from_address,
        to_address=payload.to_address,
        body=payload.body,
    )
    return exemplar_service.import_message(actor, message, is_reply=payload.is_reply)
