from __future__ import annotations

import pytest

from helpdesk_copilot.core.errors import Forbidden
from helpdesk_copilot.repositories.sqlite import GuardrailsRepository
from helpdesk_copilot.schemas.domain import GuardrailConfig, GuardrailRules, TopicRule
from helpdesk_copilot.services.guardrail_service import (
    DEFAULT_RULES,
    DEFAULT_TONE,
    GuardrailEnforcer,
    GuardrailService,
)

from conftest import ADMIN, AGENT, MANAGER


def _config(**rules) -> GuardrailConfig:
    return GuardrailConfig(active=GuardrailRules(**rules))


def test_banned_phrase_is_rejected_case_insensitively() -> None:
    config = _config(banned_words=["guaranteed refund", "lawsuit"])

    verdict = GuardrailEnforcer().validate("You will get a Guaranteed Refund today.", ["billing"], config)

    assert verdict.accepted is False
    assert verdict.reasons == ["guaranteed refund"]
    assert verdict.sanitized_text == "You will get a [removed] today."


def test_paraphrase_of_banned_phrase_is_accepted() -> None:
    config = _config(banned_words=["guaranteed refund"])

    verdict = GuardrailEnforcer().validate("A refund is guaranteed once we receive the item.", [], config)

    assert verdict.accepted is True
    assert verdict.reasons == []


def test_no_configuration_accepts_everything() -> None:
    verdict = GuardrailEnforcer().validate("anything", [], None)
    assert verdict.accepted is True


def test_directives_include_defaults_matching_topic_rules_and_banned_list() -> None:
    config = _config(
        banned_words=["asap", " "],
        topic_rules=[
            TopicRule(tag="Refund", instruction="Mention the 30 day refund window."),
            TopicRule(tag="shipping", instruction="Link the tracking page."),
        ],
    )

    directives = GuardrailEnforcer().build_directives(config, ["refund", "vip"])
    rendered = directives.render()

    assert directives.tone_style == DEFAULT_TONE
    assert directives.rules == DEFAULT_RULES
    assert directives.topic_instructions == ["Mention the 30 day refund window."]
    assert directives.banned_words == ["asap"]
    assert "TONE & STYLE:" in rendered
    assert "Banned words/phrases: asap" in rendered
    assert "tracking page" not in rendered


def test_admin_save_goes_live_and_manager_save_is_staged(guardrails_repo: GuardrailsRepository) -> None:
    service = GuardrailService(guardrails_repo)

    live = service.save(GuardrailRules(tone_style="Warm", banned_words=["asap", "asap"]), ADMIN)
    assert live.active.tone_style == "Warm"
    assert live.active.banned_words == ["asap"]
    assert live.pending is False

    staged = service.save(GuardrailRules(tone_style="Formal"), MANAGER)
    assert staged.active.tone_style == "Warm"
    assert staged.draft is not None and staged.draft.tone_style == "Formal"
    assert staged.pending is True

    with pytest.raises(Forbidden):
        service.publish(MANAGER)

    published = service.publish(ADMIN)
    assert published.active.tone_style == "Formal"
    assert published.pending is False
    assert service.get_config().active.tone_style == "Formal"


def test_agents_cannot_edit_guardrails(guardrails_repo: GuardrailsRepository) -> None:
    with pytest.raises(Forbidden):
        GuardrailService(guardrails_repo).save(GuardrailRules(), AGENT)


def test_empty_store_yields_default_configuration(guardrails_repo: GuardrailsRepository) -> None:
    config = GuardrailService(guardrails_repo).get_config()

    assert config.active == GuardrailRules()
    assert config.pending is False
