from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

Role = Literal["admin", "manager", "agent"]
TicketStatus = Literal["open", "pending", "on_hold", "closed"]
TicketPriority = Literal["low", "medium", "high", "urgent"]
KnowledgeStatus = Literal["pending", "published"]

TICKET_STATUSES: tuple[str, ...] = ("open", "pending", "on_hold", "closed")
TICKET_PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "urgent")
PRIVILEGED_ROLES: tuple[str, ...] = ("admin", "manager")


class Actor(BaseModel):
    """An already-authenticated caller."""

    user_id: str
    role: Role = "agent"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


class TopicRule(BaseModel):
    tag: str
    instruction: str


class GuardrailRules(BaseModel):
    tone_style: str = ""
    rules: str = ""
    banned_words: list[str] = Field(default_factory=list)
    topic_rules: list[TopicRule] = Field(default_factory=list)


class GuardrailConfig(BaseModel):
    """Live rules plus an optional staged edit awaiting publish."""

    active: GuardrailRules = Field(default_factory=GuardrailRules)
    draft: GuardrailRules | None = None
    updated_at: str | None = None

    @property
    def pending(self) -> bool:
        return self.draft is not None


class MailMessage(BaseModel):
    id: str
    thread_id: str
    subject: str = ""
    from_address: str = ""
    to_address: str = ""
    body: str = ""
    sent_at: str | None = None


class OutgoingReply(BaseModel):
    thread_id: str
    in_reply_to: str
    to_address: str
    from_address: str | None = None
    subject: str
    body: str
