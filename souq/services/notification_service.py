"""
Notification dispatcher

Fire-and-forget hand-off for emails and in-app notifications. Callers put a
message on a bounded queue and return immediately; a background worker
started with the application delivers it. Delivery failures are logged and
never reach the request that produced the message. When the queue is full
the message is dropped with a warning so checkout and redemption never wait
on notification backpressure.
"""

import asyncio
import logging
from dataclasses import dataclass, field

import httpx

from souq.core.config import (
    NOTIFICATION_QUEUE_SIZE,
    NOTIFICATION_SHUTDOWN_TIMEOUT_SECONDS,
    EMAIL_API_URL,
    EMAIL_API_KEY,
    EMAIL_FROM,
    EMAIL_TIMEOUT_SECONDS,
)
from souq.core.db import AsyncSessionLocal
from souq.models.activity_models import Notification

logger = logging.getLogger(__name__)


@dataclass
class NotificationMessage:
    kind: str
    recipient: str | None
    payload: dict = field(default_factory=dict)


# kind -> (email subject, email body, in-app title, in-app message)
TEMPLATES = {
    "ORDER_PLACED": (
        "تم استلام طلبك #{order_ref}",
        "<p>شكراً لطلبك. المجموع: {total}</p>{items_html}",
        "تم استلام طلبك",
        "طلبك رقم #{order_ref} بانتظار تأكيد البائع",
    ),
    "NEW_ORDER": (
        "طلب جديد #{order_ref}",
        "<p>لديك طلب جديد من {customer_name}. المجموع: {total}</p>",
        "طلب جديد!",
        "لديك طلب جديد #{order_ref} من {customer_name}",
    ),
    "ORDER_STATUS_UPDATED": (
        "تحديث حالة الطلب #{order_ref}",
        "<p>تم تحديث حالة طلبك إلى: {status_label}</p>",
        "تحديث حالة الطلب",
        "طلبك رقم #{order_ref} أصبح: {status_label}",
    ),
    "WALLET_CREDITED": (
        None,
        None,
        "تم شحن المحفظة",
        "تمت إضافة {amount} {currency} إلى محفظتك",
    ),
}


class EmailSender:
    async def send(self, to: str, subject: str, html: str) -> None:
        raise NotImplementedError


class LoggingEmailSender(EmailSender):
    """Used when no email API is configured (development, tests)."""

    async def send(self, to: str, subject: str, html: str) -> None:
        logger.info("Email to %s: %s", to, subject)


class HttpEmailSender(EmailSender):
    def __init__(self, api_url: str, api_key: str, sender: str = EMAIL_FROM, timeout: float = EMAIL_TIMEOUT_SECONDS):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    async def send(self, to: str, subject: str, html: str) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"from": self.sender, "to": [to], "subject": subject, "html": html},
            )
            response.raise_for_status()


def default_email_sender() -> EmailSender:
    if EMAIL_API_URL and EMAIL_API_KEY:
        return HttpEmailSender(EMAIL_API_URL, EMAIL_API_KEY)
    return LoggingEmailSender()


class NotificationDispatcher:
    def __init__(self, sender: EmailSender | None = None, session_factory=AsyncSessionLocal,
                 maxsize: int = NOTIFICATION_QUEUE_SIZE):
        self.sender = sender or default_email_sender()
        self.session_factory = session_factory
        self._queue: asyncio.Queue[NotificationMessage] = asyncio.Queue(maxsize=maxsize)
        self._worker: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def dispatch(self, kind: str, recipient: str | None, payload: dict | None = None) -> bool:
        message = NotificationMessage(kind=kind, recipient=recipient, payload=payload or {})
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Notification queue full, dropping %s for %s", kind, recipient)
            return False
        return True

    async def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="notification-worker")
            logger.info("Notification worker started")

    async def stop(self, timeout: float = NOTIFICATION_SHUTDOWN_TIMEOUT_SECONDS) -> None:
        """Let the worker finish what is queued, then cancel it."""
        if self._worker is None:
            return
        if not self._worker.done():
            try:
                await asyncio.wait_for(self._queue.join(), timeout)
            except asyncio.TimeoutError:
                logger.warning("Notification worker stopped with %s messages still queued", self.pending)
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Notification worker stopped")

    async def drain(self) -> int:
        """Deliver everything currently queued in the calling task."""
        delivered = 0
        while not self._queue.empty():
            message = self._queue.get_nowait()
            try:
                await self.deliver(message)
                delivered += 1
            finally:
                self._queue.task_done()
        return delivered

    def clear(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self.deliver(message)
            finally:
                self._queue.task_done()

    async def deliver(self, message: NotificationMessage) -> None:
        template = TEMPLATES.get(message.kind)
        if template is None:
            logger.error("Unknown notification kind %s", message.kind)
            return
        subject, body, title, text = template
        values = _TemplateValues(message.payload)

        if subject and message.recipient:
            try:
                await self.sender.send(message.recipient, subject.format_map(values), body.format_map(values))
            except Exception:
                logger.exception("Failed to send %s email to %s", message.kind, message.recipient)

        user_id = message.payload.get("user_id")
        if user_id is not None:
            try:
                async with self.session_factory() as session:
                    session.add(Notification(
                        user_id=user_id,
                        type=message.kind,
                        title=title.format_map(values),
                        message=text.format_map(values),
                        link=message.payload.get("link"),
                    ))
                    await session.commit()
            except Exception:
                logger.exception("Failed to store %s notification for user %s", message.kind, user_id)


class _TemplateValues(dict):
    def __missing__(self, key):
        return ""


notification_dispatcher = NotificationDispatcher()


def dispatch_notification(kind: str, recipient: str | None, payload: dict | None = None) -> bool:
    return notification_dispatcher.dispatch(kind, recipient, payload)
