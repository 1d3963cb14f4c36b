"""End-to-end tests for the HTTP surface."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fastapi.testclient import TestClient

from conftest import ADMIN, AGENT, MANAGER, OTHER_AGENT, RecordingChatModel, headers


def _inbound(client: TestClient, message_id: str = "msg-1", thread_id: str = "thread-1", body: str | None = None):
    return client.post(
        "/api/inbound",
        json={
            "message_id": message_id,
            "thread_id": thread_id,
            "subject": "Order refund",
            "from_address": "alice@customer.io",
            "to_address": "support@acme.io",
            "customer_name": "Alice",
            "body": body or "Hello, I would like a refund for my order please.",
        },
    )


def _seed_exemplar(client: TestClient) -> None:
    response = client.post(
        "/api/exemplars",
        headers=headers(ADMIN),
        json={
            "message_id": "hist-1",
            "subject": "Re: refund",
            "body": "Hi! Your refund for the order is approved. Cheers, Sam",
            "is_reply": True,
        },
    )
    assert response.status_code == 201
    assert response.json()["has_embedding"] is True


def test_requests_without_identity_are_unauthorized(client: TestClient) -> None:
    response = client.get("/api/tickets")

    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


def test_assignment_requires_priority_over_http(client: TestClient) -> None:
    ticket = _inbound(client).json()
    assert ticket["status"] == "open"

    failed = client.patch(
        f"/api/tickets/{ticket['id']}/assign",
        headers=headers(AGENT),
        json={"assignee_id": AGENT.user_id},
    )
    assert failed.status_code == 400
    assert failed.json()["detail"]["message"] == "priority required."

    assigned = client.patch(
        f"/api/tickets/{ticket['id']}/assign",
        headers=headers(AGENT),
        json={"assignee_id": AGENT.user_id, "priority": "high"},
    )
    assert assigned.status_code == 200
    assert assigned.json()["priority"] == "high"
    assert assigned.json()["status"] == "open"


def test_draft_generate_edit_and_send_flow(client: TestClient) -> None:
    ticket = _inbound(client).json()
    _seed_exemplar(client)

    generated = client.post("/api/emails/msg-1/draft", headers=headers(AGENT))
    assert generated.status_code == 200
    body = generated.json()
    assert body["regenerated"] is False
    assert body["fallback_used"] is False
    assert body["draft"]["ticket_id"] == ticket["id"]
    draft_id = body["draft"]["id"]

    regenerated = client.post("/api/emails/msg-1/draft", headers=headers(AGENT)).json()
    assert regenerated["regenerated"] is True
    assert regenerated["draft"]["id"] == draft_id

    edited = client.patch(
        f"/api/drafts/{draft_id}",
        headers=headers(AGENT),
        json={"draft_text": "Thanks! I'll respond by Friday."},
    )
    assert edited.status_code == 200

    sent = client.post(
        "/api/emails/msg-1/reply",
        headers=headers(AGENT),
        json={"draft_text": "Thanks! I'll respond by Friday.", "draft_id": draft_id},
    )
    assert sent.status_code == 200
    assert sent.json()["was_edited"] is True
    assert client.get("/api/emails/msg-1/draft", headers=headers(AGENT)).status_code == 404

    thread = client.get(f"/api/tickets/{ticket['id']}/thread", headers=headers(AGENT)).json()
    assert [item["direction"] for item in thread] == ["inbound", "outbound"]
    assert thread[1]["subject"] == "Re: Order refund"

    refreshed = client.get(f"/api/tickets/{ticket['id']}", headers=headers(AGENT)).json()
    assert refreshed["status"] == "pending"
    assert refreshed["last_agent_reply_at"] is not None

    assert client.get("/api/usage-events", headers=headers(AGENT)).status_code == 403
    events = client.get("/api/usage-events", headers=headers(MANAGER), params={"draft_id": draft_id}).json()
    assert [event["action"] for event in events] == [
        "draft_generated",
        "draft_regenerated",
        "draft_edited",
        "draft_sent",
    ]
    assert events[-1]["was_edited"] is True


def test_empty_exemplar_corpus_yields_fallback_draft(client: TestClient) -> None:
    _inbound(client)

    response = client.post("/api/emails/msg-1/draft", headers=headers(AGENT))

    assert response.status_code == 200
    assert response.json()["fallback_used"] is True
    assert response.json()["draft"]["draft_text"] == "I received your email and will get back to you soon."


def test_unknown_email_returns_not_found(client: TestClient) -> None:
    response = client.post("/api/emails/missing/draft", headers=headers(AGENT))
    assert response.status_code == 404


def test_knowledge_publish_flow_over_http(client: TestClient) -> None:
    created = client.post(
        "/api/knowledge",
        headers=headers(MANAGER),
        json={"title": "Refunds", "body": "Refunds take 5 days.", "tags": ["refund"], "can_paraphrase": True},
    )
    assert created.status_code == 201
    item = created.json()
    assert item["status"] == "pending"

    assert client.get("/api/knowledge", headers=headers(AGENT)).json() == []
    assert client.post(f"/api/knowledge/{item['id']}/publish", headers=headers(MANAGER)).status_code == 403

    published = client.post(f"/api/knowledge/{item['id']}/publish", headers=headers(ADMIN))
    assert published.status_code == 200
    assert [entry["id"] for entry in client.get("/api/knowledge", headers=headers(AGENT)).json()] == [item["id"]]


def test_guardrails_staging_over_http(client: TestClient) -> None:
    staged = client.post(
        "/api/guardrails",
        headers=headers(MANAGER),
        json={"tone_style": "Formal", "banned_words": ["guaranteed refund"]},
    )
    assert staged.status_code == 200
    assert staged.json()["pending"] is True

    assert client.post("/api/guardrails", headers=headers(AGENT), json={}).status_code == 403

    published = client.post("/api/guardrails/publish", headers=headers(ADMIN)).json()
    assert published["pending"] is False
    assert published["active"]["banned_words"] == ["guaranteed refund"]


def test_typing_and_notes_endpoints(client: TestClient) -> None:
    ticket = _inbound(client).json()

    client.post(f"/api/tickets/{ticket['id']}/typing", headers=headers(MANAGER), json={"typing": True})
    typing = client.get(f"/api/tickets/{ticket['id']}/typing", headers=headers(AGENT)).json()
    assert typing == {"typing_users": [MANAGER.user_id]}

    note = client.post(f"/api/tickets/{ticket['id']}/notes", headers=headers(AGENT), json={"content": "VIP"})
    assert note.status_code == 201
    notes = client.get(f"/api/tickets/{ticket['id']}/notes", headers=headers(AGENT)).json()
    assert [entry["content"] for entry in notes] == ["VIP"]

    deleted = client.delete(f"/api/tickets/{ticket['id']}/notes/{note.json()['id']}", headers=headers(AGENT))
    assert deleted.status_code == 204


def _assign(client: TestClient, ticket_id: int, assignee_id: str) -> None:
    response = client.patch(
        f"/api/tickets/{ticket_id}/assign",
        headers=headers(MANAGER),
        json={"assignee_id": assignee_id, "priority": "medium"},
    )
    assert response.status_code == 200


def test_agent_updates_status_and_tags_on_colleagues_ticket(client: TestClient) -> None:
    ticket = _inbound(client).json()
    _assign(client, ticket["id"], OTHER_AGENT.user_id)

    assert client.get(f"/api/tickets/{ticket['id']}", headers=headers(AGENT)).status_code == 404

    status = client.patch(f"/api/tickets/{ticket['id']}/status", headers=headers(AGENT), json={"status": "on_hold"})
    assert status.status_code == 200
    assert status.json()["status"] == "on_hold"

    tags = client.patch(f"/api/tickets/{ticket['id']}/tags", headers=headers(AGENT), json={"tags": ["vip"]})
    assert tags.status_code == 200
    assert tags.json()["tags"] == ["vip"]

    added = client.post(f"/api/tickets/{ticket['id']}/tags/refund", headers=headers(AGENT))
    assert added.json()["tags"] == ["vip", "refund"]
    removed = client.delete(f"/api/tickets/{ticket['id']}/tags/VIP", headers=headers(AGENT))
    assert removed.json()["tags"] == ["refund"]


def test_typing_status_respects_ticket_visibility(client: TestClient) -> None:
    ticket = _inbound(client).json()
    _assign(client, ticket["id"], OTHER_AGENT.user_id)
    client.post(f"/api/tickets/{ticket['id']}/typing", headers=headers(OTHER_AGENT), json={"typing": True})

    assert client.get(f"/api/tickets/{ticket['id']}/typing", headers=headers(AGENT)).status_code == 404
    assert client.get("/api/tickets/9999/typing", headers=headers(MANAGER)).status_code == 404
    typing = client.get(f"/api/tickets/{ticket['id']}/typing", headers=headers(MANAGER)).json()
    assert typing == {"typing_users": [OTHER_AGENT.user_id]}


def test_agent_cannot_edit_draft_on_colleagues_ticket(client: TestClient) -> None:
    ticket = _inbound(client).json()
    _assign(client, ticket["id"], OTHER_AGENT.user_id)
    draft = client.post("/api/emails/msg-1/draft", headers=headers(OTHER_AGENT)).json()["draft"]

    denied = client.patch(f"/api/drafts/{draft['id']}", headers=headers(AGENT), json={"draft_text": "Hijacked"})
    assert denied.status_code == 404
    assert client.patch("/api/drafts/9999", headers=headers(MANAGER), json={"draft_text": "x"}).status_code == 404

    allowed = client.patch(f"/api/drafts/{draft['id']}", headers=headers(OTHER_AGENT), json={"draft_text": "Hello"})
    assert allowed.status_code == 200
    assert allowed.json()["draft_text"] == "Hello"


def test_blocked_draft_leaves_no_record(make_client: Callable[[Any], TestClient]) -> None:
    banned = "Your refund is guaranteed refund territory."
    model = RecordingChatModel([banned, banned])
    client = make_client(model)
    _inbound(client)
    _seed_exemplar(client)
    saved = client.post("/api/guardrails", headers=headers(ADMIN), json={"banned_words": ["guaranteed refund"]})
    assert saved.status_code == 200

    response = client.post("/api/emails/msg-1/draft", headers=headers(AGENT))

    assert response.status_code == 422
    assert response.json()["error"] == "GuardrailBlocked"
    assert response.json()["detail"]["phrases"] == ["guaranteed refund"]
    assert len(model.calls) == 2
    assert client.get("/api/emails/msg-1/draft", headers=headers(AGENT)).status_code == 404
    assert client.get("/api/usage-events", headers=headers(ADMIN)).json() == []


def test_failed_completion_leaves_no_record(make_client: Callable[[Any], TestClient]) -> None:
    client = make_client(RecordingChatModel([RuntimeError("upstream exploded")]))
    _inbound(client)
    _seed_exemplar(client)

    response = client.post("/api/emails/msg-1/draft", headers=headers(AGENT))

    assert response.status_code == 502
    assert response.json()["error"] == "GenerationFailed"
    assert client.get("/api/emails/msg-1/draft", headers=headers(AGENT)).status_code == 404
    assert client.get("/api/usage-events", headers=headers(ADMIN)).json() == []
