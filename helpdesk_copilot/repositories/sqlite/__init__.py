from __future__ import annotations

from helpdesk_copilot.repositories.sqlite.base import init_db, transaction
from helpdesk_copilot.repositories.sqlite.drafts import DraftsRepository
from helpdesk_copilot.repositories.sqlite.exemplars import ExemplarsRepository
from helpdesk_copilot.repositories.sqlite.guardrails import GuardrailsRepository
from helpdesk_copilot.repositories.sqlite.knowledge import KnowledgeRepository
from helpdesk_copilot.repositories.sqlite.messages import MessagesRepository
from helpdesk_copilot.repositories.sqlite.notes import NotesRepository
from helpdesk_copilot.repositories.sqlite.tickets import TicketsRepository
from helpdesk_copilot.repositories.sqlite.usage_events import UsageEventsRepository

__all__ = [
    "init_db",
    "transaction",
    "TicketsRepository",
    "NotesRepository",
    "MessagesRepository",
    "DraftsRepository",
    "ExemplarsRepository",
    "KnowledgeRepository",
    "GuardrailsRepository",
    "UsageEventsRepository",
]
