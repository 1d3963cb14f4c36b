from helpdesk_copilot.integrations.embeddings.embedder import Embedder, EmbeddingError, message_context
from helpdesk_copilot.integrations.embeddings.exemplar_index import ExemplarMatch, StyleExemplarIndex

__all__ = ["Embedder", "EmbeddingError", "message_context", "ExemplarMatch", "StyleExemplarIndex"]
