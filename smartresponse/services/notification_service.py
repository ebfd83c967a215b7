"""Fire-and-forget notifications.

notify() hands an event to a bounded in-process queue and returns at once.
A single consumer task delivers events to handlers; handler failures are
logged on the notifications logger and never reach the caller. The
consumer holds no database session.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from html import escape
from dataclasses import dataclass
from typing import Awaitable, Callable

import anyio
import resend

from smartresponse.core.config import settings
from smartresponse.core.structured_logging import mask_email

logger = logging.getLogger("smartresponse.notifications")


@dataclass(frozen=True)
class LeadCreatedEvent:
    """A lead was stored for a form."""

    form_id: uuid.UUID
    form_name: str
    lead_id: uuid.UUID
    owner_email: str | None
    respondent_email: str
    url: str | None = None
    result_text: str | None = None
    result_image_url: str | None = None
    notify_owner: bool = True
    send_to_respondent: bool = True


NotificationEvent = LeadCreatedEvent
NotificationHandler = Callable[[NotificationEvent], Awaitable[None]]

_STOP = object()


class NotificationDispatcher:
    """Bounded queue plus one consumer task, started with the application."""

    def __init__(
        self,
        handlers: list[NotificationHandler] | None = None,
        maxsize: int | None = None,
    ) -> None:
        self._handlers: tuple[NotificationHandler, ...] = tuple(handlers or ())
        self._maxsize = maxsize if maxsize is not None else settings.NOTIFICATION_QUEUE_SIZE
        self._queue: asyncio.Queue | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
        self._queue = queue
        self._task = asyncio.create_task(self._consume(queue), name="notification-dispatcher")
        logger.info("Notification dispatcher started (queue size %s)", self._maxsize)

    async def stop(self, timeout: float = 5.0) -> None:
        """Deliver what is queued (up to `timeout` seconds), then stop."""
        if not self.running or self._queue is None:
            return
        try:
            self._queue.put_nowait(_STOP)
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except (asyncio.QueueFull, asyncio.TimeoutError):
            logger.warning("Notification dispatcher stopped with undelivered events")
            self._task.cancel()
        self._task = None
        self._queue = None

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        if self._queue is not None:
            await self._queue.join()

    def notify(self, event: NotificationEvent) -> None:
        """Queue an event for delivery. Never raises, never waits."""
        try:
            loop = self._loop
            if not self.running or loop is None:
                logger.warning("Notification dispatcher not running; dropped %s", type(event).__name__)
                return
            try:
                same_loop = asyncio.get_running_loop() is loop
            except RuntimeError:
                same_loop = False
            if same_loop:
                self._enqueue(event)
            else:
                loop.call_soon_threadsafe(self._enqueue, event)
        except Exception:
            logger.exception("Failed to queue notification")

    def _enqueue(self, event: NotificationEvent) -> None:
        if self._queue is None:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Notification queue full; dropped %s", type(event).__name__)

    async def _consume(self, queue: asyncio.Queue) -> None:
        while True:
            event = await queue.get()
            try:
                if event is _STOP:
                    return
                await self._deliver(event)
            finally:
                queue.task_done()

    async def _deliver(self, event: NotificationEvent) -> None:
        for handler in self._handlers:
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "Notification handler %s failed for %s",
                    getattr(handler, "__name__", type(handler).__name__),
                    type(event).__name__,
                )


# =============================================================================
# Email handler
# =============================================================================


class ResendEmailHandler:
    """
    Email the form owner and the respondent about a new lead via Resend.

    If RESEND_API_KEY is not set, logs the email instead of sending.
    """

    def __init__(self, api_key: str | None = None, from_email: str | None = None):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.from_email = from_email or settings.EMAIL_FROM

    async def __call__(self, event: NotificationEvent) -> None:
        if event.notify_owner and event.owner_email:
            await self._send(
                event.owner_email,
                f"New lead for {event.form_name}",
                f"<p>New lead: {escape(event.respondent_email)}</p>"
                f"<p>URL: {escape(event.url or '-')}</p>",
            )
        if event.send_to_respondent and event.respondent_email:
            body = f"<p>{escape(event.result_text or '')}</p>"
            if event.result_image_url and not event.result_image_url.startswith("data:"):
                body += f'<p><img src="{escape(event.result_image_url)}" alt="Result" /></p>'
            await self._send(event.respondent_email, "Your personalized recommendations", body)

    async def _send(self, to_email: str, subject: str, body: str) -> None:
        if not self.api_key:
            logger.info("[DRY RUN] Email send skipped for %s", mask_email(to_email))
            return

        resend.api_key = self.api_key
        params = {"from": self.from_email, "to": [to_email], "subject": subject, "html": body}
        result = await anyio.to_thread.run_sync(resend.Emails.send, params)
        logger.info(
            "Email sent recipient=%s message_id=%s", mask_email(to_email), result.get("id")
        )


dispatcher = NotificationDispatcher(handlers=[ResendEmailHandler()])


def get_dispatcher() -> NotificationDispatcher:
    return dispatcher
