from __future__ import annotations

import logging
from typing import Any

from helpdesk_copilot.core.errors import Forbidden
from helpdesk_copilot.integrations.embeddings import Embedder, StyleExemplarIndex, message_context
from helpdesk_copilot.schemas.domain import Actor, MailMessage

logger = logging.getLogger(__name__)


class ExemplarService:
    """Imports historical sent messages into the style exemplar index."""

    def __init__(self, embedder: Embedder, exemplar_index: StyleExemplarIndex):
        self._embedder = embedder
        self._index = exemplar_index

    def import_message(self, actor: Actor, message: MailMessage, is_reply: bool = False) -> dict[str, Any]:
        if not actor.is_privileged:
            raise Forbidden("Only admins and managers can import style exemplars")

        vector = self._embedder.try_embed(message_context(message.subject, message.body))
        exemplar = self._index.index(message, vector, is_reply=is_reply)
        if vector is None:
            logger.info("Exemplar %s stored without a vector", message.id)
        return exemplar
