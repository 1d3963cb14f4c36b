from __future__ import annotations

import uuid
from typing import Any, Protocol

from helpdesk_copilot.repositories.sqlite.messages import MessagesRepository
from helpdesk_copilot.schemas.domain import MailMessage, OutgoingReply


class MailTransport(Protocol):
    """Narrow contract the drafting engine needs from the mail provider."""

    def get_message(self, message_id: str) -> MailMessage | None:
        ...

    def fetch_thread(self, thread_id: str) -> list[MailMessage]:
        ...

    def send(self, reply: OutgoingReply) -> MailMessage:
        ...

    def get_profile(self) -> dict[str, str]:
        ...


def _to_message(row: dict[str, Any]) -> MailMessage:
    return MailMessage(
        id=row["id"],
        thread_id=row["thread_id"],
        subject=row["subject"],
        from_address=row["from_address"],
        to_address=row["to_address"],
        body=row["body"],
        sent_at=row["sent_at"],
    )


class StoredMailTransport:
    """Mail transport over the local message store.

    Outbound replies are recorded in the thread; handing them to an actual
    provider happens outside this process.
    """

    def __init__(self, messages_repo: MessagesRepository, account_email: str):
        self._messages = messages_repo
        self._account_email = account_email

    def record_inbound(self, message: MailMessage) -> MailMessage:
        row = self._messages.save(
            message_id=message.id,
            thread_id=message.thread_id,
            subject=message.subject,
            from_address=message.from_address,
            to_address=message.to_address,
            body=message.body,
            direction="inbound",
            sent_at=message.sent_at,
        )
        return _to_message(row)

    def get_message(self, message_id: str) -> MailMessage | None:
        row = self._messages.get_by_id(message_id)
        return _to_message(row) if row else None

    def thread_rows(self, thread_id: str) -> list[dict[str, Any]]:
        """Stored thread messages including their direction, oldest first."""
        return self._messages.list_thread(thread_id)

    def fetch_thread(self, thread_id: str) -> list[MailMessage]:
        return [_to_message(row) for row in self._messages.list_thread(thread_id)]

    def send(self, reply: OutgoingReply) -> MailMessage:
        row = self._messages.save(
            message_id=f"out-{uuid.uuid4().hex}",
            thread_id=reply.thread_id,
            subject=reply.subject,
            from_address=reply.from_address or self._account_email,
            to_address=reply.to_address,
            body=reply.body,
            direction="outbound",
        )
        return _to_message(row)

    def get_profile(self) -> dict[str, str]:
        return {"email_address": self._account_email}
