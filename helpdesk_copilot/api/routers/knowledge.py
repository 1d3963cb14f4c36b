from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from helpdesk_copilot.api.dependencies import get_actor, get_knowledge_service
from helpdesk_copilot.schemas.api import (
    KnowledgeCreateRequest,
    KnowledgeItemResponse,
    KnowledgeUpdateRequest,
)
from helpdesk_copilot.schemas.domain import Actor
from helpdesk_copilot.services.knowledge_service import KnowledgeService

router = APIRouter()


@router.get("/api/knowledge", response_model=list[KnowledgeItemResponse])
def list_knowledge_route(
    include_pending: bool = Query(default=False),
    actor: Actor = Depends(get_actor),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> list[dict[str, Any]]:
    return knowledge_service.list_items(actor, include_all=include_pending)


@router.post("/api/knowledge", response_model=KnowledgeItemResponse, status_code=201)
def create_knowledge_route(
    payload: KnowledgeCreateRequest,
    actor: Actor = Depends(get_actor),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> dict[str, Any]:
    return knowledge_service.create(
        actor,
        title=payload.title,
        body=payload.body,
        tags=payload.tags,
        can_paraphrase=payload.can_paraphrase,
    )


@router.patch("/api/knowledge/{item_id}", response_model=KnowledgeItemResponse)
def update_knowledge_route(
    item_id: int,
    payload: KnowledgeUpdateRequest,
    actor: Actor = Depends(get_actor),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> dict[str, Any]:
    return knowledge_service.update(actor, item_id, **payload.model_dump(exclude_none=True))


@router.post("/api/knowledge/{item_id}/publish", response_model=KnowledgeItemResponse)
def publish_knowledge_route(
    item_id: int,
    actor: Actor = Depends(get_actor),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> dict[str, Any]:
    return knowledge_service.publish(actor, item_id)


@router.delete("/api/knowledge/{item_id}", status_code=204)
def delete_knowledge_route(
    item_id: int,
    actor: Actor = Depends(get_actor),
    knowledge_service: KnowledgeService = Depends(get_knowledge_service),
) -> None:
    knowledge_service.delete(actor, item_id)
