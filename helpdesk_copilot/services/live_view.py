from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from helpdesk_copilot.core.settings import Settings
from helpdesk_copilot.integrations.mail import MailTransport
from helpdesk_copilot.schemas.domain import Actor, MailMessage
from helpdesk_copilot.services.presence import TypingPresence
from helpdesk_copilot.services.ticket_service import TicketStateMachine

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None] | None]


class PeriodicTask:
    """Runs a callback every ``interval`` seconds between ``start`` and ``stop``."""

    def __init__(self, name: str, interval: float, callback: Callback):
        self.name = name
        self._interval = interval
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            try:
                result = self._callback()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Periodic task %s failed; retrying next interval", self.name)
            await asyncio.sleep(self._interval)


class TicketLiveView:
    """Keeps an open ticket's thread and typing indicators fresh.

    Polling runs only between ``start()`` and ``stop()``; closing the view
    must call ``stop()`` (or leave the ``async with`` block).
    """

    def __init__(
        self,
        settings: Settings,
        ticket_id: int,
        viewer: Actor,
        state_machine: TicketStateMachine,
        transport: MailTransport,
        presence: TypingPresence,
        on_update: Callable[[TicketLiveView], Any] | None = None,
    ):
        self.ticket_id = ticket_id
        self.viewer = viewer
        self.ticket: dict[str, Any] | None = None
        self.messages: list[MailMessage] = []
        self.typing_users: list[str] = []
        self._state_machine = state_machine
        self._transport = transport
        self._presence = presence
        self._on_update = on_update
        self._tasks = [
            PeriodicTask(f"ticket-{ticket_id}-thread", settings.thread_poll_interval_seconds, self.refresh_thread),
            PeriodicTask(f"ticket-{ticket_id}-typing", settings.typing_poll_interval_seconds, self.refresh_typing),
        ]

    @property
    def running(self) -> bool:
        return any(task.running for task in self._tasks)

    def start(self) -> None:
        for task in self._tasks:
            task.start()

    async def stop(self) -> None:
        for task in self._tasks:
            await task.stop()

    async def __aenter__(self) -> TicketLiveView:
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def refresh_thread(self) -> None:
        ticket = await asyncio.to_thread(self._state_machine.get_ticket, self.viewer, self.ticket_id)
        messages = await asyncio.to_thread(self._transport.fetch_thread, ticket["thread_id"])
        self.ticket = ticket
        self.messages = messages
        self._notify()

    async def refresh_typing(self) -> None:
        self.typing_users = self._presence.typing_users(self.ticket_id, viewer_id=self.viewer.user_id)
        self._notify()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self)
