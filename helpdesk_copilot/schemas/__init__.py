from helpdesk_copilot.schemas.api import (
    AssignRequest,
    DraftResponse,
    DraftUpdateRequest,
    ExemplarImportRequest,
    ExemplarResponse,
    GenerateDraftResponse,
    GuardrailsRequest,
    GuardrailsResponse,
    InboundMessageRequest,
    KnowledgeCreateRequest,
    KnowledgeItemResponse,
    KnowledgeUpdateRequest,
    NoteCreateRequest,
    NoteResponse,
    PriorityRequest,
    SendReplyRequest,
    SendReplyResponse,
    StatusRequest,
    TagsRequest,
    ThreadMessageResponse,
    TicketResponse,
    TypingRequest,
    TypingResponse,
    UsageEventResponse,
)
from helpdesk_copilot.schemas.domain import (
    Actor,
    GuardrailConfig,
    GuardrailRules,
    MailMessage,
    OutgoingReply,
    TopicRule,
)


__all__ = [
    "Actor",
    "GuardrailConfig",
    "GuardrailRules",
    "TopicRule",
    "MailMessage",
    "OutgoingReply",
    "InboundMessageRequest",
    "TicketResponse",
    "AssignRequest",
    "PriorityRequest",
    "StatusRequest",
    "TagsRequest",
    "TypingRequest",
    "TypingResponse",
    "NoteCreateRequest",
    "NoteResponse",
    "ThreadMessageResponse",
    "DraftResponse",
    "DraftUpdateRequest",
    "GenerateDraftResponse",
    "SendReplyRequest",
    "SendReplyResponse",
    "UsageEventResponse",
    "KnowledgeCreateRequest",
    "KnowledgeUpdateRequest",
    "KnowledgeItemResponse",
    "GuardrailsRequest",
    "GuardrailsResponse",
    "ExemplarImportRequest",
    "ExemplarResponse",
]
