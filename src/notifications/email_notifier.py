# src/notifications/email_notifier.py

"""SMTP delivery of price alerts."""

import logging
import smtplib
import ssl
from email.message import EmailMessage

from src.config.settings import Settings
from src.models.notification import Notification

logger = logging.getLogger("price_watch.notify.email")


class EmailNotifier:
    """Send each alert as a plain-text email.

    The recipient is the item's ``notification_target``; items without
    one fall back to ``EMAIL_FROM``.  Supports SSL (465) or STARTTLS.
    """

    name = "email"

    def __init__(self) -> None:
        self.settings = Settings()

    @property
    def enabled(self) -> bool:
        return self.settings.EMAIL_ENABLED

    def _recipient(self, notification: Notification) -> str:
        return (
            notification.item.notification_target.strip()
            or self.settings.EMAIL_FROM
        )

    def build_message(
        self, notification: Notification, recipient: str,
    ) -> EmailMessage:
        """Assemble the outgoing message for one alert."""
        msg = EmailMessage()
        msg["Subject"] = (
            f"{self.settings.EMAIL_SUBJECT_PREFIX} {notification.subject}"
        )
        msg["From"] = self.settings.EMAIL_FROM or self.settings.SMTP_USERNAME
        msg["To"] = recipient
        msg.set_content(notification.render())
        return msg

    def _send(self, msg: EmailMessage) -> None:
        host = self.settings.SMTP_HOST
        port = self.settings.SMTP_PORT
        context = ssl.create_default_context()
        if self.settings.SMTP_USE_SSL:
            with smtplib.SMTP_SSL(
                host, port, context=context, timeout=30,
            ) as smtp:
                self._login(smtp)
                smtp.send_message(msg)
        else:
            with smtplib.SMTP(host, port, timeout=30) as smtp:
                smtp.starttls(context=context)
                self._login(smtp)
                smtp.send_message(msg)

    def _login(self, smtp: smtplib.SMTP) -> None:
        if self.settings.SMTP_USERNAME and self.settings.SMTP_PASSWORD:
            smtp.login(
                self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD,
            )

    def send(self, notification: Notification) -> bool:
        """Deliver *notification*; returns False when skipped.

        SMTP errors propagate to the dispatcher.
        """
        if not self.enabled:
            logger.debug("Email alerts disabled, skipping")
            return False

        recipient = self._recipient(notification)
        if not recipient:
            logger.warning(
                "No email address for %s; set a notification target "
                "or EMAIL_FROM",
                notification.item.label,
            )
            return False

        self._send(self.build_message(notification, recipient))
        logger.info(
            "Sent %s email to %s for %s",
            notification.kind,
            recipient,
            notification.item.label,
        )
        return True
