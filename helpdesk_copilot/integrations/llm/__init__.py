from helpdesk_copilot.integrations.llm.groq_client import CompletionClient, CompletionRequest, ThreadTurn

__all__ = ["CompletionClient", "CompletionRequest", "ThreadTurn"]
