from __future__ import annotations

from collections.abc import Callable
from threading import Lock

from fastapi import Depends, Header, Request

from helpdesk_copilot.core.errors import Unauthorized
from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.integrations.embeddings import Embedder, StyleExemplarIndex
from helpdesk_copilot.integrations.llm import CompletionClient
from helpdesk_copilot.integrations.mail import StoredMailTransport
from helpdesk_copilot.repositories.sqlite import (
    DraftsRepository,
    ExemplarsRepository,
    GuardrailsRepository,
    KnowledgeRepository,
    MessagesRepository,
    NotesRepository,
    TicketsRepository,
    UsageEventsRepository,
)
from helpdesk_copilot.schemas.domain import Actor
from helpdesk_copilot.services.draft_generator import DraftGenerator
from helpdesk_copilot.services.draft_lifecycle import DraftLifecycleTracker
from helpdesk_copilot.services.draft_service import DraftService
from helpdesk_copilot.services.exemplar_service import ExemplarService
from helpdesk_copilot.services.guardrail_service import GuardrailEnforcer, GuardrailService
from helpdesk_copilot.services.knowledge_service import KnowledgeRetriever, KnowledgeService
from helpdesk_copilot.services.presence import TypingPresence
from helpdesk_copilot.services.ticket_service import TicketStateMachine

_ROLES = ("admin", "manager", "agent")


def cached_completion_factory(settings: Settings) -> Callable[[], CompletionClient]:
    """Build the completion client on first use and reuse it afterwards.

    A missing API key raises ``NotConfigured`` on every call until configured.
    """
    client: CompletionClient | None = None
    lock = Lock()

    def factory() -> CompletionClient:
        nonlocal client
        with lock:
            if client is None:
                client = CompletionClient(settings)
            return client

    return factory


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    if not x_user_id or not x_user_id.strip():
        raise Unauthorized("Not authenticated")
    role = (x_user_role or "agent").strip().lower()
    if role not in _ROLES:
        raise Unauthorized(f"Unknown role: {role}")
    return Actor(user_id=x_user_id.strip(), role=role)


def get_presence(request: Request) -> TypingPresence:
    return request.app.state.presence


def get_embedder(request: Request) -> Embedder:
    return request.app.state.embedder


def get_exemplar_index(request: Request) -> StyleExemplarIndex:
    return request.app.state.exemplar_index


def get_tickets_repository(settings: Settings = Depends(get_settings_dep)) -> TicketsRepository:
    return TicketsRepository(settings)


def get_drafts_repository(settings: Settings = Depends(get_settings_dep)) -> DraftsRepository:
    return DraftsRepository(settings)


def get_usage_repository(settings: Settings = Depends(get_settings_dep)) -> UsageEventsRepository:
    return UsageEventsRepository(settings)


def get_knowledge_repository(settings: Settings = Depends(get_settings_dep)) -> KnowledgeRepository:
    return KnowledgeRepository(settings)


def get_mail_transport(settings: Settings = Depends(get_settings_dep)) -> StoredMailTransport:
    return StoredMailTransport(MessagesRepository(settings), account_email=settings.account_email)


def get_ticket_state_machine(
    settings: Settings = Depends(get_settings_dep),
    tickets_repo: TicketsRepository = Depends(get_tickets_repository),
) -> TicketStateMachine:
    return TicketStateMachine(settings, tickets_repo, NotesRepository(settings))


def get_guardrail_service(settings: Settings = Depends(get_settings_dep)) -> GuardrailService:
    return GuardrailService(GuardrailsRepository(settings))


def get_knowledge_service(
    knowledge_repo: KnowledgeRepository = Depends(get_knowledge_repository),
) -> KnowledgeService:
    return KnowledgeService(knowledge_repo)


def get_knowledge_retriever(
    settings: Settings = Depends(get_settings_dep),
    knowledge_repo: KnowledgeRepository = Depends(get_knowledge_repository),
) -> KnowledgeRetriever:
    return KnowledgeRetriever(settings, knowledge_repo)


def get_exemplar_service(
    embedder: Embedder = Depends(get_embedder),
    exemplar_index: StyleExemplarIndex = Depends(get_exemplar_index),
) -> ExemplarService:
    return ExemplarService(embedder, exemplar_index)


def get_draft_generator(
    request: Request,
    settings: Settings = Depends(get_settings_dep),
    embedder: Embedder = Depends(get_embedder),
    exemplar_index: StyleExemplarIndex = Depends(get_exemplar_index),
    retriever: KnowledgeRetriever = Depends(get_knowledge_retriever),
) -> DraftGenerator:
    return DraftGenerator(
        settings=settings,
        embedder=embedder,
        exemplar_index=exemplar_index,
        knowledge_retriever=retriever,
        enforcer=GuardrailEnforcer(),
        completion_factory=request.app.state.completion_factory,
    )


def get_draft_service(
    settings: Settings = Depends(get_settings_dep),
    transport: StoredMailTransport = Depends(get_mail_transport),
    tickets_repo: TicketsRepository = Depends(get_tickets_repository),
    drafts_repo: DraftsRepository = Depends(get_drafts_repository),
    usage_repo: UsageEventsRepository = Depends(get_usage_repository),
    state_machine: TicketStateMachine = Depends(get_ticket_state_machine),
    guardrail_service: GuardrailService = Depends(get_guardrail_service),
    generator: DraftGenerator = Depends(get_draft_generator),
    embedder: Embedder = Depends(get_embedder),
    exemplar_index: StyleExemplarIndex = Depends(get_exemplar_index),
) -> DraftService:
    return DraftService(
        transport=transport,
        tickets_repo=tickets_repo,
        drafts_repo=drafts_repo,
        usage_repo=usage_repo,
        state_machine=state_machine,
        guardrail_service=guardrail_service,
        generator=generator,
        tracker=DraftLifecycleTracker(settings, drafts_repo, usage_repo),
        embedder=embedder,
        exemplar_index=exemplar_index,
    )


def build_exemplar_index(settings: Settings) -> StyleExemplarIndex:
    return StyleExemplarIndex(settings, ExemplarsRepository(settings))
