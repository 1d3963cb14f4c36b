"""Completion service client backed by Groq chat models."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from groq import APITimeoutError, AuthenticationError, PermissionDeniedError, RateLimitError
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_groq import ChatGroq

from helpdesk_copilot.core.errors import GenerationFailed, NotConfigured
from helpdesk_copilot.core.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ThreadTurn:
    author: str  # "customer" or "agent"
    text: str


@dataclass(slots=True)
class CompletionRequest:
    system_directives: str
    incoming_message: str
    few_shot_examples: list[str] = field(default_factory=list)
    thread_history: list[ThreadTurn] = field(default_factory=list)


class CompletionClient:
    """Sends one drafting request, walking an ordered list of models.

    Authentication, rate-limit and timeout failures stop immediately; any
    other provider error moves on to the next model.
    """

    def __init__(self, settings: Settings, chat_models: Sequence[tuple[str, Any]] | None = None):
        if chat_models is None:
            if not settings.groq_api_key:
                raise NotConfigured("GROQ_API_KEY is missing. Add it in .env before generating drafts.")
            chat_models = [
                (
                    model,
                    ChatGroq(
                        model=model,
                        groq_api_key=settings.groq_api_key,
                        temperature=settings.llm_temperature,
                        max_tokens=settings.llm_max_tokens,
                        timeout=settings.llm_timeout_seconds,
                        max_retries=0,
                    ),
                )
                for model in settings.completion_models
            ]
        if not chat_models:
            raise NotConfigured("No completion model configured.")
        self._models = list(chat_models)

    @staticmethod
    def build_messages(request: CompletionRequest) -> list[BaseMessage]:
        system = request.system_directives
        if request.few_shot_examples:
            examples = "\n\n---\n\n".join(request.few_shot_examples)
            system += (
                "\n\nUSER'S PAST EMAIL STYLE EXAMPLES (use these to match tone and style):\n"
                f"{examples}"
            )
        else:
            system += "\n\nNo past examples available. Use a professional, friendly tone."

        messages: list[BaseMessage] = [SystemMessage(content=system)]
        for turn in request.thread_history:
            if turn.author == "agent":
                messages.append(AIMessage(content=turn.text))
            else:
                messages.append(HumanMessage(content=turn.text))
        messages.append(HumanMessage(content=request.incoming_message))
        return messages

    @staticmethod
    def _extract_content(response: Any) -> str:
        content = getattr(response, "content", response)
        if isinstance(content, list):
            return "\n".join(str(item) for item in content)
        if not isinstance(content, str):
            raise GenerationFailed("Completion service returned a malformed response")
        return content

    def complete(self, request: CompletionRequest) -> str:
        messages = self.build_messages(request)
        last_error: Exception | None = None

        for model_name, model in self._models:
            try:
                response = model.invoke(messages)
            except APITimeoutError as exc:
                raise GenerationFailed("Request timeout: completion service took too long to respond") from exc
            except (AuthenticationError, PermissionDeniedError) as exc:
                raise GenerationFailed(f"Completion service rejected credentials ({model_name})") from exc
            except RateLimitError as exc:
                raise GenerationFailed(f"Completion service rate limit exceeded ({model_name})") from exc
            except Exception as exc:
                logger.warning("Completion model %s failed: %s; trying next model", model_name, exc)
                last_error = exc
                continue

            text = self._extract_content(response).strip()
            if not text:
                raise GenerationFailed(f"No draft content in completion response ({model_name})")
            logger.info("Generated completion using model %s", model_name)
            return text

        raise GenerationFailed(f"All completion models failed: {last_error}") from last_error


__all__ = ["CompletionClient", "CompletionRequest", "ThreadTurn"]
