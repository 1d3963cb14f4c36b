from __future__ import annotations

import hashlib
import logging
import os
from collections import OrderedDict
from collections.abc import Callable, Sequence
from threading import Lock
from typing import Any

from chromadb.utils import embedding_functions

from helpdesk_copilot.core.settings import Settings

logger = logging.getLogger(__name__)

EmbeddingFunction = Callable[[list[str]], Sequence[Sequence[float]]]


class EmbeddingError(RuntimeError):
    """Raised when no vector could be produced for a text."""


def build_embedding_function(settings: Settings) -> Any:
    if settings.embedding_provider == "google":
        # Chroma's GoogleGenaiEmbeddingFunction reads GOOGLE_API_KEY from env.
        os.environ.setdefault("GOOGLE_API_KEY", settings.google_api_key)
        try:
            return embedding_functions.GoogleGenaiEmbeddingFunction(
                model_name=settings.google_embedding_model,
            )
        except Exception as exc:
            raise EmbeddingError(
                "Gemini embedding initialization failed. Install `google-genai` and verify GOOGLE_API_KEY."
            ) from exc

    return embedding_functions.DefaultEmbeddingFunction()


class Embedder:
    """Computes message vectors, reusing cached ones for repeated texts."""

    def __init__(self, settings: Settings, embedding_function: EmbeddingFunction | None = None):
        self._settings = settings
        self._embedding_function = embedding_function
        self._cache: OrderedDict[str, list[float]] = OrderedDict()
        self._lock = Lock()

    def _function(self) -> EmbeddingFunction:
        if self._embedding_function is None:
            self._embedding_function = build_embedding_function(self._settings)
        return self._embedding_function

    @staticmethod
    def cache_key(text: str) -> str:
        return hashlib.sha1(text.encode("utf-8")).hexdigest()

    def embed(self, text: str) -> list[float]:
        key = self.cache_key(text)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached

        try:
            vectors = self._function()([text])
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Embedding failed: {exc}") from exc

        if not vectors or len(vectors[0]) == 0:
            raise EmbeddingError("Embedding function returned no vector")
        vector = [float(value) for value in vectors[0]]

        with self._lock:
            self._cache[key] = vector
            while len(self._cache) > max(1, self._settings.embedding_cache_size):
                self._cache.popitem(last=False)
        return vector

    def try_embed(self, text: str) -> list[float] | None:
        """Embed ``text``, returning ``None`` instead of raising."""
        if not text.strip():
            return None
        try:
            return self.embed(text)
        except EmbeddingError:
            logger.warning("Embedding unavailable; continuing without a vector", exc_info=True)
            return None


def message_context(subject: str, body: str) -> str:
    return f"{subject}\n\n{body}".strip()
