from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from helpdesk_copilot.api.dependencies import get_actor, get_guardrail_service
from helpdesk_copilot.schemas.api import GuardrailsRequest, GuardrailsResponse
from helpdesk_copilot.schemas.domain import Actor, GuardrailConfig, GuardrailRules
from helpdesk_copilot.services.guardrail_service import GuardrailService

router = APIRouter()


def _serialize(config: GuardrailConfig) -> dict[str, Any]:
    return {
        "active": config.active,
        "draft": config.draft,
        "pending": config.pending,
        "updated_at": config.updated_at,
    }


@router.get("/api/guardrails", response_model=GuardrailsResponse)
def get_guardrails_route(
    actor: Actor = Depends(get_actor),
    guardrail_service: GuardrailService = Depends(get_guardrail_service),
) -> dict[str, Any]:
    return _serialize(guardrail_service.get_config())


@router.post("/api/guardrails", response_model=GuardrailsResponse)
def save_guardrails_route(
    payload: GuardrailsRequest,
    actor: Actor = Depends(get_actor),
    guardrail_service: GuardrailService = Depends(get_guardrail_service),
) -> dict[str, Any]:
    rules = GuardrailRules.model_validate(payload.model_dump())
    return _serialize(guardrail_service.save(rules, actor))


@router.post("/api/guardrails/publish", response_model=GuardrailsResponse)
def publish_guardrails_route(
    actor: Actor = Depends(get_actor),
    guardrail_service: GuardrailService = Depends(get_guardrail_service),
) -> dict[str, Any]:
    return _serialize(guardrail_service.publish(actor))
