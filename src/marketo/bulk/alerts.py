"""
Out-of-band operator alerts.

Raised when a partial-failure sub-error cannot be attributed to specific
records and needs manual triage.
"""

import logging
from typing import Any, Protocol

import aiohttp

from core.logging.utilities import log_exception

logger = logging.getLogger(__name__)


class Alerter(Protocol):
    async def send(self, subject: str, details: dict[str, Any]) -> None:
        """Deliver one alert. Implementations must not raise."""
        ...


class LoggingAlerter:
    """Alerts as error-level structured log records."""

    def __init__(self, log: logging.Logger | None = None):
        self._logger = log or logger

    async def send(self, subject: str, details: dict[str, Any]) -> None:
        self._logger.error(
            "Operator alert: %s",
            subject,
            extra={"alert_subject": subject, "sub_error": details},
        )


class WebhookAlerter:
    """Posts alerts as JSON to an operations webhook.

    Delivery failures are logged and swallowed; an alert that cannot be
    delivered must never fail the batch that raised it.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout_seconds: int = 10,
        session: aiohttp.ClientSession | None = None,
    ):
        if not webhook_url:
            raise ValueError("WebhookAlerter requires 'webhook_url'")
        self.webhook_url = webhook_url
        self.timeout_seconds = timeout_seconds
        self._session = session

    async def send(self, subject: str, details: dict[str, Any]) -> None:
        payload = {"subject": subject, "details": details}
        owns_session = self._session is None
        session = self._session or aiohttp.ClientSession()
        try:
            async with session.post(
                self.webhook_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if response.status >= 300:
                    logger.warning(
                        "Alert webhook rejected alert",
                        extra={
                            "alert_subject": subject,
                            "http_status": response.status,
                        },
                    )
        except (TimeoutError, aiohttp.ClientError) as e:
            log_exception(
                logger,
                e,
                "Alert webhook unreachable",
                level=logging.WARNING,
                alert_subject=subject,
            )
        finally:
            if owns_session:
                await session.close()

        # Keep a local trace whatever happened to the webhook
        logger.error(
            "Operator alert: %s",
            subject,
            extra={"alert_subject": subject, "sub_error": details},
        )


def build_alerter(webhook_url: str = "") -> Alerter:
    """Webhook alerts when a URL is configured, structured logs otherwise."""
    if webhook_url:
        return WebhookAlerter(webhook_url)
    return LoggingAlerter()


__all__ = ["Alerter", "LoggingAlerter", "WebhookAlerter", "build_alerter"]
