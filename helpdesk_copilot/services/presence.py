from __future__ import annotations

import time
from collections.abc import Callable
from threading import Lock


class TypingPresence:
    """Who is currently typing a reply on which ticket.

    Entries expire lazily on every read or write; there is no background timer.
    """

    def __init__(self, expiry_seconds: float, clock: Callable[[], float] = time.monotonic):
        self._expiry = expiry_seconds
        self._clock = clock
        self._seen: dict[int, dict[str, float]] = {}
        self._lock = Lock()

    def _prune(self, now: float) -> None:
        for ticket_id, users in list(self._seen.items()):
            for user_id, last_seen in list(users.items()):
                if now - last_seen > self._expiry:
                    del users[user_id]
            if not users:
                del self._seen[ticket_id]

    def mark(self, ticket_id: int, user_id: str, typing: bool = True) -> None:
        now = self._clock()
        with self._lock:
            self._prune(now)
            users = self._seen.setdefault(ticket_id, {})
            if typing:
                users[user_id] = now
            else:
                users.pop(user_id, None)
            if not users:
                self._seen.pop(ticket_id, None)

    def typing_users(self, ticket_id: int, viewer_id: str | None = None) -> list[str]:
        """Users typing on ``ticket_id``, excluding the viewer."""
        now = self._clock()
        with self._lock:
            self._prune(now)
            users = self._seen.get(ticket_id, {})
            return sorted(user_id for user_id in users if user_id != viewer_id)
