"""
Alert email notifications.

Dispatch is best-effort: nothing in here raises into the stock movement
that produced the alert. Every attempt ends up as a DispatchResult in the
dispatcher's result channel and in the log.
"""

import logging
import queue
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)

SMTP_BACKEND = "django.core.mail.backends.smtp.EmailBackend"
ALERT_TEMPLATE = "inventory/emails/stock_alert.html"


class DispatchStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class DispatchResult:
    status: DispatchStatus
    alert_id: Optional[int] = None
    recipients: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == DispatchStatus.OK

    @property
    def skipped(self) -> bool:
        return self.status == DispatchStatus.SKIPPED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "alert_id": self.alert_id,
            "recipients": self.recipients,
            "error": self.error,
        }


@dataclass
class AlertNotice:
    """Snapshot of an alert, safe to hand to another thread."""

    alert_type: str
    priority: str
    message: str
    item_name: str
    barcode: str
    warehouse: str
    created_at: datetime
    alert_id: Optional[int] = None

    @classmethod
    def from_alert(cls, alert) -> "AlertNotice":
        record = alert.inventory
        return cls(
            alert_type=alert.alert_type,
            priority=alert.priority_level,
            message=alert.message,
            item_name=record.item_name,
            barcode=record.barcode,
            warehouse=record.warehouse_name,
            created_at=alert.created_at or timezone.now(),
            alert_id=alert.pk,
        )

    @property
    def title(self) -> str:
        title = self.alert_type.replace("_", " ")
        return title[:1].upper() + title[1:]

    @property
    def subject(self) -> str:
        return f"[{self.title}] {self.item_name} ({self.barcode})"


def render_alert_email(notice: AlertNotice) -> str:
    return render_to_string(ALERT_TEMPLATE, {
        "title": notice.title,
        "priority": notice.priority.upper(),
        "item_name": notice.item_name,
        "barcode": notice.barcode,
        "warehouse": notice.warehouse,
        "message": notice.message,
        "timestamp": timezone.localtime(notice.created_at).strftime("%Y-%m-%d %H:%M:%S %Z"),
    })


class MailTransport:
    """Django mail backend wrapper. Counts as configured only with SMTP credentials."""

    def is_configured(self) -> bool:
        if settings.EMAIL_BACKEND != SMTP_BACKEND:
            return True
        return bool(settings.EMAIL_HOST and settings.EMAIL_HOST_USER and settings.EMAIL_HOST_PASSWORD)

    def send(self, recipients: List[str], subject: str, html: str) -> None:
        message = EmailMultiAlternatives(
            subject=subject,
            body=strip_tags(html),
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=recipients,
            connection=get_connection(fail_silently=False),
        )
        message.attach_alternative(html, "text/html")
        message.send()


class NotificationDispatcher:

    def __init__(self,
                 settings_store=None,
                 transport: Optional[MailTransport] = None,
                 run_async: Optional[bool] = None,
                 result_buffer: Optional[int] = None):
        if settings_store is None:
            from inventory.services.settings_service import AppSettingService
            settings_store = AppSettingService

        self.settings_store = settings_store
        self.transport = transport or MailTransport()
        self.run_async = settings.ALERT_NOTIFICATION_ASYNC if run_async is None else run_async
        self.results = deque(maxlen=result_buffer or settings.ALERT_RESULT_BUFFER)

        self._queue: "queue.Queue[Tuple[AlertNotice, List[str]]]" = queue.Queue()
        self._lock = threading.Lock()
        self._running = False
        self._thread = None

    def send(self, recipients: List[str], subject: str, html: str, alert_id: int = None) -> DispatchResult:
        if not recipients:
            return DispatchResult(DispatchStatus.SKIPPED, alert_id=alert_id)

        if not self.transport.is_configured():
            logger.debug("Mail transport not configured, skipping alert email")
            return DispatchResult(DispatchStatus.SKIPPED, alert_id=alert_id, recipients=len(recipients))

        try:
            self.transport.send(recipients, subject, html)
        except Exception as e:
            logger.warning(f"Alert email failed for alert {alert_id}: {e}")
            return DispatchResult(
                DispatchStatus.ERROR, alert_id=alert_id, recipients=len(recipients), error=str(e)
            )

        logger.info(f"Alert email sent for alert {alert_id} to {len(recipients)} recipient(s)")
        return DispatchResult(DispatchStatus.OK, alert_id=alert_id, recipients=len(recipients))

    def notify(self, notice: AlertNotice, recipients: List[str] = None) -> DispatchResult:
        if recipients is None:
            recipients = self.settings_store.alert_recipients()
        if not recipients:
            return DispatchResult(DispatchStatus.SKIPPED, alert_id=notice.alert_id)

        try:
            html = render_alert_email(notice)
        except Exception as e:
            logger.exception(f"Could not render alert email for alert {notice.alert_id}")
            return DispatchResult(DispatchStatus.ERROR, alert_id=notice.alert_id, error=str(e))

        return self.send(recipients, notice.subject, html, alert_id=notice.alert_id)

    def notify_alert(self, alert, recipients: List[str] = None) -> DispatchResult:
        return self.notify(AlertNotice.from_alert(alert), recipients)

    def submit(self, alert) -> None:
        """Fire-and-forget notification for a freshly created alert."""
        try:
            notice = AlertNotice.from_alert(alert)
            recipients = self.settings_store.alert_recipients()
        except Exception as e:
            logger.exception("Could not prepare alert notification")
            self._record(DispatchResult(DispatchStatus.ERROR, alert_id=getattr(alert, "pk", None), error=str(e)))
            return

        if not recipients:
            self._record(DispatchResult(DispatchStatus.SKIPPED, alert_id=notice.alert_id))
            return

        if self.run_async:
            self.start()
            self._queue.put((notice, recipients))
        else:
            self._record(self.notify(notice, recipients))

    def _record(self, result: DispatchResult) -> None:
        self.results.append(result)
        if result.status == DispatchStatus.ERROR:
            logger.error(f"Alert notification failed: {result.to_dict()}")

    # Background worker

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._thread = threading.Thread(
                target=self._run_loop, name="alert-dispatcher", daemon=True
            )
            self._thread.start()
        logger.info("Alert dispatcher started")

    def stop(self, timeout: float = 5) -> None:
        with self._lock:
            self._running = False
            thread = self._thread
            self._thread = None
        if thread:
            thread.join(timeout=timeout)
        logger.info("Alert dispatcher stopped")

    def drain(self) -> int:
        """Send everything still queued on the calling thread."""
        sent = 0
        while True:
            try:
                notice, recipients = self._queue.get_nowait()
            except queue.Empty:
                return sent
            self._record(self.notify(notice, recipients))
            self._queue.task_done()
            sent += 1

    def pending(self) -> int:
        return self._queue.qsize()

    def _run_loop(self) -> None:
        while self._running:
            try:
                notice, recipients = self._queue.get(timeout=1)
            except queue.Empty:
                continue
            try:
                self._record(self.notify(notice, recipients))
            except Exception as e:
                logger.exception("Error in alert dispatcher loop")
                self._record(DispatchResult(DispatchStatus.ERROR, alert_id=notice.alert_id, error=str(e)))
            finally:
                self._queue.task_done()


_dispatcher_instance: Optional[NotificationDispatcher] = None
_dispatcher_lock = threading.Lock()


def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher_instance
    with _dispatcher_lock:
        if _dispatcher_instance is None:
            _dispatcher_instance = NotificationDispatcher()
        return _dispatcher_instance
