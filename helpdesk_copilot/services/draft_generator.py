from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from helpdesk_copilot.core.errors import GuardrailBlocked
from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.integrations.embeddings import Embedder, ExemplarMatch, StyleExemplarIndex, message_context
from helpdesk_copilot.integrations.llm import CompletionClient, CompletionRequest, ThreadTurn
from helpdesk_copilot.schemas.domain import GuardrailConfig, MailMessage
from helpdesk_copilot.services.guardrail_service import GuardrailEnforcer
from helpdesk_copilot.services.knowledge_service import KnowledgeRetriever

logger = logging.getLogger(__name__)

REGENERATION_DIRECTIVE = (
    "IMPORTANT: This is a regeneration request. Create a DIFFERENT variation of the reply "
    "with different wording and phrasing while keeping the same meaning and tone."
)

REPLY_INSTRUCTIONS = """INSTRUCTIONS:
1. Write a reply to the latest customer email, taking the whole conversation into account.
2. Match the tone and style of the past emails provided.
3. Use the knowledge snippets when they are relevant.
4. Output ONLY the email body text (no subject line, no metadata).
5. Do not include placeholders like [Your Name].
6. Respect all guardrails and avoid banned words/phrases.
7. Apply topic-specific rules when relevant to the email content or tags."""


@dataclass(slots=True)
class GenerationResult:
    draft_text: str
    used_knowledge_ids: list[int] = field(default_factory=list)
    used_exemplar_ids: list[int] = field(default_factory=list)
    fallback_used: bool = False
    latency_ms: int = 0
    guardrail_applied: bool = False
    guardrail_blocked: bool = False
    directives: str = ""


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def format_exemplar(exemplar: dict[str, Any]) -> str:
    subject = exemplar.get("subject") or ""
    body = exemplar.get("body") or ""
    return f"Subject: {subject}\n\n{body}".strip() if subject else body.strip()


def knowledge_section(items: list[dict[str, Any]]) -> str:
    if not items:
        return ""
    lines = ["RELEVANT KNOWLEDGE SNIPPETS:"]
    for position, item in enumerate(items, start=1):
        usage = "may be paraphrased" if item["can_paraphrase"] else "quote verbatim, do not reword"
        lines.append(f"[{position}] {item['title']} ({usage}): {item['body']}")
    return "\n".join(lines)


class DraftGenerator:
    """Produces one reply draft for an incoming customer message.

    The generator is stateless: guardrail configuration and ticket tags are
    passed in with every call, and persistence is left to the caller.
    """

    def __init__(
        self,
        settings: Settings,
        embedder: Embedder,
        exemplar_index: StyleExemplarIndex,
        knowledge_retriever: KnowledgeRetriever,
        enforcer: GuardrailEnforcer,
        completion_factory: Callable[[], CompletionClient],
    ):
        self._settings = settings
        self._embedder = embedder
        self._index = exemplar_index
        self._knowledge = knowledge_retriever
        self._enforcer = enforcer
        self._completion_factory = completion_factory

    def generate(
        self,
        incoming: MailMessage,
        ticket_tags: list[str],
        config: GuardrailConfig | None,
        *,
        thread: list[ThreadTurn] | None = None,
        regenerating: bool = False,
    ) -> GenerationResult:
        started = time.perf_counter()
        client = self._completion_factory()

        text = message_context(incoming.subject, incoming.body)
        vector = self._embedder.try_embed(text)
        exemplars = self.select_exemplars(self._index.query_nearest(vector, self._settings.style_top_k))
        if not exemplars:
            logger.info("No style exemplars indexed; returning fallback draft for %s", incoming.id)
            return GenerationResult(
                draft_text=self._settings.fallback_draft_text,
                fallback_used=True,
                latency_ms=_elapsed_ms(started),
            )

        knowledge = self._knowledge.retrieve(text, ticket_tags)
        topic_context = set(ticket_tags)
        for item in knowledge:
            topic_context.update(item["matched_tags"])

        directives = self._enforcer.build_directives(config, topic_context)
        sections = [
            "You are an AI assistant helping a support team reply to customer emails. "
            "Follow the guardrails and knowledge below.",
            directives.render(),
        ]
        if knowledge:
            sections.append(knowledge_section(knowledge))
        sections.append(REPLY_INSTRUCTIONS)
        if regenerating:
            sections.append(REGENERATION_DIRECTIVE)
        system_directives = "\n\n".join(sections)

        request = CompletionRequest(
            system_directives=system_directives,
            incoming_message=incoming.body,
            few_shot_examples=[format_exemplar(match.exemplar) for match in exemplars],
            thread_history=list(thread or []),
        )
        draft_text = client.complete(request)

        blocked = False
        verdict = self._enforcer.validate(draft_text, topic_context, config)
        if not verdict.accepted:
            blocked = True
            logger.warning("Retrying draft for %s without banned phrases %s", incoming.id, verdict.reasons)
            request.system_directives = (
                f"{system_directives}\n\nYour previous draft used these banned words/phrases: "
                f"{', '.join(verdict.reasons)}. Rewrite the reply without using any of them."
            )
            draft_text = client.complete(request)
            verdict = self._enforcer.validate(draft_text, topic_context, config)
            if not verdict.accepted:
                raise GuardrailBlocked(verdict.reasons, draft_text=draft_text)

        latency_ms = _elapsed_ms(started)
        logger.info(
            "Generated draft for %s in %sms (exemplars=%s, knowledge=%s)",
            incoming.id,
            latency_ms,
            len(exemplars),
            len(knowledge),
        )
        return GenerationResult(
            draft_text=draft_text,
            used_knowledge_ids=[item["id"] for item in knowledge],
            used_exemplar_ids=[match.exemplar["id"] for match in exemplars],
            latency_ms=latency_ms,
            guardrail_applied=bool(directives.topic_instructions or directives.banned_words),
            guardrail_blocked=blocked,
            directives=system_directives,
        )

    def select_exemplars(self, matches: list[ExemplarMatch]) -> list[ExemplarMatch]:
        """Keep ranked matches above the similarity floor.

        When none clears the floor the top ranked ones are used anyway, and
        unranked fallback matches are passed through unchanged.
        """
        ranked = [match for match in matches if not match.is_fallback]
        if not ranked:
            return matches
        above = [match for match in ranked if (match.similarity or 0.0) >= self._settings.style_min_similarity]
        return above or ranked
