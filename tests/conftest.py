from __future__ import annotations

import hashlib
import math
import re
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import chromadb
import pytest
from fastapi.testclient import TestClient
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage

from helpdesk_copilot.api.app_factory import create_app
from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.integrations.embeddings import Embedder, StyleExemplarIndex
from helpdesk_copilot.integrations.llm import CompletionClient
from helpdesk_copilot.repositories.sqlite import (
    DraftsRepository,
    ExemplarsRepository,
    GuardrailsRepository,
    KnowledgeRepository,
    MessagesRepository,
    NotesRepository,
    TicketsRepository,
    UsageEventsRepository,
    init_db,
)
from helpdesk_copilot.schemas.domain import Actor
from helpdesk_copilot.services.draft_generator import DraftGenerator
from helpdesk_copilot.services.guardrail_service import GuardrailEnforcer
from helpdesk_copilot.services.knowledge_service import KnowledgeRetriever

ACCOUNT_EMAIL = "support@acme.io"
ADMIN = Actor(user_id="admin-1", role="admin")
MANAGER = Actor(user_id="manager-1", role="manager")
AGENT = Actor(user_id="agent-1", role="agent")
OTHER_AGENT = Actor(user_id="agent-2", role="agent")


def headers(actor: Actor) -> dict[str, str]:
    return {"X-User-Id": actor.user_id, "X-User-Role": actor.role}


class HashingEmbeddingFunction:
    """Deterministic bag-of-words vectors; shared words mean higher cosine similarity."""

    def __init__(self, dimensions: int = 64) -> None:
        self.dimensions = dimensions
        self.calls = 0

    def __call__(self, texts: list[str]) -> list[list[float]]:
        self.calls += 1
        return [self._vector(text) for text in texts]

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % self.dimensions
            vector[bucket] += 1.0
        norm = math.sqrt(sum(value * value for value in vector)) or 1.0
        return [value / norm for value in vector]


class FailingEmbeddingFunction:
    def __call__(self, texts: list[str]) -> list[list[float]]:
        del texts
        raise RuntimeError("embedding service unavailable")


class RecordingChatModel:
    """Chat model stub that replays responses and keeps every message list it received."""

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.calls: list[list[Any]] = []

    def invoke(self, messages: list[Any]) -> AIMessage:
        self.calls.append(messages)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, AIMessage):
            return response
        return AIMessage(content=response)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        workspace_dir=tmp_path,
        data_dir=Path("data"),
        db_path=Path("data/helpdesk.db"),
        chroma_dir=Path("data/chroma_exemplars"),
        groq_api_key="test-key",
        account_email=ACCOUNT_EMAIL,
    )


@pytest.fixture
def db(settings: Settings) -> Settings:
    init_db(settings)
    return settings


@pytest.fixture
def tickets_repo(db: Settings) -> TicketsRepository:
    return TicketsRepository(db)


@pytest.fixture
def notes_repo(db: Settings) -> NotesRepository:
    return NotesRepository(db)


@pytest.fixture
def messages_repo(db: Settings) -> MessagesRepository:
    return MessagesRepository(db)


@pytest.fixture
def drafts_repo(db: Settings) -> DraftsRepository:
    return DraftsRepository(db)


@pytest.fixture
def usage_repo(db: Settings) -> UsageEventsRepository:
    return UsageEventsRepository(db)


@pytest.fixture
def knowledge_repo(db: Settings) -> KnowledgeRepository:
    return KnowledgeRepository(db)


@pytest.fixture
def guardrails_repo(db: Settings) -> GuardrailsRepository:
    return GuardrailsRepository(db)


@pytest.fixture
def exemplars_repo(db: Settings) -> ExemplarsRepository:
    return ExemplarsRepository(db)


@pytest.fixture
def embedding_function() -> HashingEmbeddingFunction:
    return HashingEmbeddingFunction()


@pytest.fixture
def embedder(settings: Settings, embedding_function: HashingEmbeddingFunction) -> Embedder:
    return Embedder(settings, embedding_function=embedding_function)


@pytest.fixture
def exemplar_index(settings: Settings, exemplars_repo: ExemplarsRepository, tmp_path: Path) -> StyleExemplarIndex:
    client = chromadb.PersistentClient(path=str(tmp_path / "chroma_test"))
    return StyleExemplarIndex(settings, exemplars_repo, client=client)


@pytest.fixture
def make_generator(
    settings: Settings,
    embedder: Embedder,
    exemplar_index: StyleExemplarIndex,
    knowledge_repo: KnowledgeRepository,
) -> Callable[[RecordingChatModel], DraftGenerator]:
    def build(model: RecordingChatModel) -> DraftGenerator:
        client = CompletionClient(settings, chat_models=[("recording", model)])
        return DraftGenerator(
            settings=settings,
            embedder=embedder,
            exemplar_index=exemplar_index,
            knowledge_retriever=KnowledgeRetriever(settings, knowledge_repo),
            enforcer=GuardrailEnforcer(),
            completion_factory=lambda: client,
        )

    return build


@pytest.fixture
def chat_model() -> FakeListChatModel:
    return FakeListChatModel(responses=["Thanks for reaching out! We are looking into your order now."])


@pytest.fixture
def make_client(
    settings: Settings,
    embedder: Embedder,
    exemplar_index: StyleExemplarIndex,
) -> Iterator[Callable[[Any], TestClient]]:
    opened: list[TestClient] = []

    def build(model: Any) -> TestClient:
        completion = CompletionClient(settings, chat_models=[("fake", model)])
        app = create_app(
            settings=settings,
            embedder=embedder,
            exemplar_index=exemplar_index,
            completion_factory=lambda: completion,
        )
        test_client = TestClient(app)
        test_client.__enter__()
        opened.append(test_client)
        return test_client

    yield build
    for test_client in opened:
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(make_client: Callable[[Any], TestClient], chat_model: FakeListChatModel) -> TestClient:
    return make_client(chat_model)
