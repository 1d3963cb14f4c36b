from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field

from helpdesk_copilot.schemas.domain import (
    GuardrailRules,
    KnowledgeStatus,
    TicketPriority,
    TicketStatus,
    TopicRule,
)


class InboundMessageRequest(BaseModel):
    message_id: str = Field(min_length=1)
    thread_id: str | None = None
    subject: str = ""
    from_address: EmailStr
    to_address: EmailStr
    customer_name: str | None = None
    body: str = ""
    sent_at: str | None = None
    is_from_agent: bool = False


class TicketResponse(BaseModel):
    id: int
    thread_id: str
    customer_email: str
    customer_name: str | None = None
    subject: str
    status: TicketStatus
    priority: TicketPriority | None = None
    assignee_id: str | None = None
    tags: list[str] = Field(default_factory=list)
    last_customer_reply_at: str | None = None
    last_agent_reply_at: str | None = None
    created_at: str
    updated_at: str


class AssignRequest(BaseModel):
    assignee_id: str | None = None
    priority: TicketPriority | None = None


class PriorityRequest(BaseModel):
    priority: TicketPriority


class StatusRequest(BaseModel):
    status: TicketStatus


class TagsRequest(BaseModel):
    tags: list[str]


class TypingRequest(BaseModel):
    typing: bool


class TypingResponse(BaseModel):
    typing_users: list[str]


class NoteCreateRequest(BaseModel):
    content: str = Field(min_length=1)


class NoteResponse(BaseModel):
    id: int
    ticket_id: int
    user_id: str
    content: str
    created_at: str
    updated_at: str


class ThreadMessageResponse(BaseModel):
    id: str
    thread_id: str
    subject: str
    from_address: str
    to_address: str
    body: str
    direction: str
    sent_at: str


class DraftResponse(BaseModel):
    id: int
    email_id: str
    thread_id: str | None = None
    ticket_id: int | None = None
    subject: str
    from_address: str
    to_address: str
    original_body: str
    draft_text: str
    source_user_id: str | None = None
    created_at: str
    updated_at: str


class GenerateDraftResponse(BaseModel):
    email_id: str
    draft: DraftResponse
    regenerated: bool
    fallback_used: bool
    used_knowledge_ids: list[int] = Field(default_factory=list)
    used_exemplar_ids: list[int] = Field(default_factory=list)
    latency_ms: int


class DraftUpdateRequest(BaseModel):
    draft_text: str


class SendReplyRequest(BaseModel):
    draft_text: str = Field(min_length=1)
    draft_id: int | None = None


class SendReplyResponse(BaseModel):
    success: bool
    message_id: str
    thread_id: str
    was_edited: bool


class UsageEventResponse(BaseModel):
    id: int
    action: Literal["draft_generated", "draft_regenerated", "draft_edited", "draft_sent"]
    draft_id: int | None = None
    ticket_id: int | None = None
    user_id: str | None = None
    was_edited: bool
    was_sent: bool
    response_latency_ms: int | None = None
    knowledge_item_ids: list[int] = Field(default_factory=list)
    exemplar_ids: list[int] = Field(default_factory=list)
    guardrail_applied: bool
    guardrail_blocked: bool
    fallback_used: bool
    draft_length: int | None = None
    created_at: str


class KnowledgeCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)
    can_paraphrase: bool = False


class KnowledgeUpdateRequest(BaseModel):
    title: str | None = None
    body: str | None = None
    tags: list[str] | None = None
    can_paraphrase: bool | None = None


class KnowledgeItemResponse(BaseModel):
    id: int
    title: str
    body: str
    tags: list[str]
    can_paraphrase: bool
    status: KnowledgeStatus
    version: int
    pending_changes: dict[str, Any] | None = None
    published_at: str | None = None
    created_at: str
    updated_at: str


class GuardrailsRequest(BaseModel):
    tone_style: str = ""
    rules: str = ""
    banned_words: list[str] = Field(default_factory=list)
    topic_rules: list[TopicRule] = Field(default_factory=list)


class GuardrailsResponse(BaseModel):
    active: GuardrailRules
    draft: GuardrailRules | None = None
    pending: bool
    updated_at: str | None = None


class ExemplarImportRequest(BaseModel):
    message_id: str = Field(min_length=1)
    thread_id: str | None = None
    subject: str = ""
    body: str = Field(min_length=1)
    from_address: str = ""
    to_address: str = ""
    is_reply: bool = False


class ExemplarResponse(BaseModel):
    id: int
    message_id: str
    subject: str
    is_reply: bool
    has_embedding: bool
    created_at: str
