from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import chromadb

from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.repositories.sqlite.exemplars import ExemplarsRepository
from helpdesk_copilot.schemas.domain import MailMessage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExemplarMatch:
    exemplar: dict[str, Any]
    similarity: float | None = None

    @property
    def is_fallback(self) -> bool:
        return self.similarity is None


class StyleExemplarIndex:
    """Historical sent messages ranked by cosine similarity to a query vector.

    Exemplar records live in SQLite; vectors live in a Chroma collection keyed
    by exemplar id. Exemplars without a vector are only ever returned as an
    unranked fallback when nothing can be ranked.
    """

    def __init__(
        self,
        settings: Settings,
        exemplars_repo: ExemplarsRepository,
        client: Any | None = None,
    ):
        self._settings = settings
        self._exemplars = exemplars_repo
        self._client = client or chromadb.PersistentClient(path=str(settings.chroma_path))
        self._collection = self._client.get_or_create_collection(
            name=settings.exemplar_collection,
            embedding_function=None,
            metadata={"hnsw:space": "cosine"},
        )

    def index(self, message: MailMessage, vector: list[float] | None, is_reply: bool = False) -> dict[str, Any]:
        exemplar, created = self._exemplars.insert_if_absent(
            message_id=message.id,
            body=message.body,
            subject=message.subject,
            thread_id=message.thread_id,
            from_address=message.from_address,
            to_address=message.to_address,
            is_reply=is_reply,
        )
        if not created:
            logger.debug("Exemplar for message %s already indexed", message.id)

        if vector and not exemplar["has_embedding"]:
            self._collection.upsert(
                ids=[str(exemplar["id"])],
                embeddings=[vector],
                metadatas=[{"message_id": message.id, "is_reply": bool(exemplar["is_reply"])}],
            )
            self._exemplars.mark_embedded(exemplar["id"])
            exemplar["has_embedding"] = True
        return exemplar

    def vector_count(self) -> int:
        return self._collection.count()

    def query_nearest(self, vector: list[float] | None, k: int) -> list[ExemplarMatch]:
        if k <= 0:
            return []

        available = self.vector_count() if vector else 0
        if available:
            try:
                results = self._collection.query(
                    query_embeddings=[vector],
                    n_results=min(k, available),
                    include=["distances"],
                )
            except Exception:
                logger.exception("Exemplar similarity query failed; using unranked exemplars")
            else:
                return self._ranked(results)

        return [ExemplarMatch(exemplar=item) for item in self._exemplars.list_recent(limit=k)]

    def _ranked(self, results: dict[str, Any]) -> list[ExemplarMatch]:
        ids = (results.get("ids") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]
        exemplar_ids = [int(item) for item in ids]
        by_id = {item["id"]: item for item in self._exemplars.get_many(exemplar_ids)}

        ranked: list[ExemplarMatch] = []
        for index, exemplar_id in enumerate(exemplar_ids):
            exemplar = by_id.get(exemplar_id)
            if exemplar is None:
                continue
            distance = distances[index] if index < len(distances) else None
            similarity = 1.0 - float(distance) if distance is not None else 0.0
            ranked.append(ExemplarMatch(exemplar=exemplar, similarity=similarity))
        ranked.sort(key=lambda match: match.similarity or 0.0, reverse=True)
        return ranked
