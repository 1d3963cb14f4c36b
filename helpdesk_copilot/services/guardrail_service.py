from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from helpdesk_copilot.core.errors import Forbidden
from helpdesk_copilot.repositories.sqlite.guardrails import GuardrailsRepository
from helpdesk_copilot.schemas.domain import Actor, GuardrailConfig, GuardrailRules

logger = logging.getLogger(__name__)

DEFAULT_TONE = "Friendly, concise, professional."
DEFAULT_RULES = "Keep responses accurate, polite, and helpful."
REMOVED_MARKER = "[removed]"


@dataclass(slots=True)
class GuardrailDirectives:
    tone_style: str
    rules: str
    topic_instructions: list[str] = field(default_factory=list)
    banned_words: list[str] = field(default_factory=list)

    def render(self) -> str:
        sections = [f"TONE & STYLE:\n{self.tone_style}", f"GENERAL RULES:\n{self.rules}"]
        if self.topic_instructions:
            sections.append(
                "TOPIC-SPECIFIC RULES:\n" + "\n".join(f"- {item}" for item in self.topic_instructions)
            )
        if self.banned_words:
            sections.append("Banned words/phrases: " + ", ".join(self.banned_words))
        return "\n\n".join(sections)


@dataclass(slots=True)
class GuardrailVerdict:
    accepted: bool
    reasons: list[str] = field(default_factory=list)
    sanitized_text: str | None = None


def _clean_phrases(values: Iterable[str]) -> list[str]:
    return [value.strip() for value in values if value and value.strip()]


def normalize_topic_context(tags: Iterable[str]) -> set[str]:
    return {tag.strip().lower() for tag in tags if tag and tag.strip()}


class GuardrailEnforcer:
    """Steers generation with directives and rejects drafts with banned phrases.

    Matching is literal and case-insensitive; a rephrasing that avoids the
    banned string is accepted.
    """

    def build_directives(self, config: GuardrailConfig | None, topic_context: Iterable[str]) -> GuardrailDirectives:
        rules = config.active if config else GuardrailRules()
        context = normalize_topic_context(topic_context)
        topic_instructions = [
            rule.instruction.strip()
            for rule in rules.topic_rules
            if rule.tag.strip().lower() in context and rule.instruction.strip()
        ]
        return GuardrailDirectives(
            tone_style=rules.tone_style.strip() or DEFAULT_TONE,
            rules=rules.rules.strip() or DEFAULT_RULES,
            topic_instructions=topic_instructions,
            banned_words=_clean_phrases(rules.banned_words),
        )

    def validate(
        self,
        draft_text: str,
        topic_context: Iterable[str],
        config: GuardrailConfig | None,
    ) -> GuardrailVerdict:
        del topic_context  # topic rules steer generation only
        if config is None:
            return GuardrailVerdict(accepted=True, sanitized_text=draft_text)

        reasons: list[str] = []
        sanitized = draft_text
        lowered = draft_text.lower()
        for phrase in _clean_phrases(config.active.banned_words):
            if phrase.lower() not in lowered:
                continue
            reasons.append(phrase)
            sanitized = re.sub(re.escape(phrase), REMOVED_MARKER, sanitized, flags=re.IGNORECASE)

        if reasons:
            logger.warning("Draft rejected by guardrails; banned phrases: %s", reasons)
        return GuardrailVerdict(accepted=not reasons, reasons=reasons, sanitized_text=sanitized)


class GuardrailService:
    """Loads and edits the guardrail configuration record."""

    def __init__(self, guardrails_repo: GuardrailsRepository):
        self._repo = guardrails_repo

    def get_config(self) -> GuardrailConfig:
        stored = self._repo.get()
        if not stored:
            return GuardrailConfig()
        return GuardrailConfig.model_validate(stored)

    def save(self, rules: GuardrailRules, actor: Actor) -> GuardrailConfig:
        """Admins edit the live rules; managers stage an edit for publishing."""
        if not actor.is_privileged:
            raise Forbidden("Only admins and managers can edit guardrails")

        cleaned = GuardrailRules(
            tone_style=rules.tone_style.strip(),
            rules=rules.rules.strip(),
            banned_words=list(dict.fromkeys(_clean_phrases(rules.banned_words))),
            topic_rules=[rule for rule in rules.topic_rules if rule.tag.strip() and rule.instruction.strip()],
        )
        current = self.get_config()
        if actor.is_admin:
            stored = self._repo.save(active=cleaned.model_dump(), draft=None)
            logger.info("Guardrails updated by admin %s", actor.user_id)
        else:
            stored = self._repo.save(active=current.active.model_dump(), draft=cleaned.model_dump())
            logger.info("Guardrail edit staged by %s", actor.user_id)
        return GuardrailConfig.model_validate(stored)

    def publish(self, actor: Actor) -> GuardrailConfig:
        if not actor.is_admin:
            raise Forbidden("Only admins can publish guardrails")

        current = self.get_config()
        if current.draft is None:
            return current
        stored = self._repo.save(active=current.draft.model_dump(), draft=None)
        logger.info("Guardrail draft published by %s", actor.user_id)
        return GuardrailConfig.model_validate(stored)
