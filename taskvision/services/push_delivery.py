"""
Web-Push-Zustellung an einen einzelnen Browser-Endpoint (pywebpush + VAPID).

Der Sender kennt die Datenbank nicht: er verschlüsselt, sendet und
klassifiziert Fehler. Was mit abgelaufenen Endpoints passiert, entscheidet
der PushService.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from pywebpush import webpush, WebPushException

if TYPE_CHECKING:
    from taskvision.core.config import Settings

logger = logging.getLogger(__name__)


class DeliveryFailure(str, enum.Enum):
    GONE = "gone"              # 404/410 – Endpoint existiert nicht mehr
    TRANSIENT = "transient"    # 429/5xx – einmal erneut versuchen
    PERMANENT = "permanent"    # alles andere


class DeliveryError(Exception):
    def __init__(self, kind: DeliveryFailure, detail: str, status_code: int | None = None):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail
        self.status_code = status_code


def classify_status(status_code: int | None) -> DeliveryFailure:
    """Ordnet den HTTP-Status der Push-Vendor-Antwort einer Fehlerklasse zu."""
    if status_code in (404, 410):
        return DeliveryFailure.GONE
    if status_code is not None and (status_code == 429 or 500 <= status_code < 600):
        return DeliveryFailure.TRANSIENT
    return DeliveryFailure.PERMANENT


@dataclass(frozen=True)
class VapidConfig:
    public_key: str
    private_key: str
    subject: str

    @classmethod
    def from_settings(cls, settings: "Settings") -> "VapidConfig":
        return cls(
            public_key=settings.VAPID_PUBLIC_KEY,
            private_key=settings.VAPID_PRIVATE_KEY,
            subject=settings.VAPID_SUBJECT,
        )

    @property
    def configured(self) -> bool:
        return bool(self.private_key)


class PushSender(Protocol):
    async def deliver(self, subscription: Any, payload: str) -> None: ...


class WebPushSender:
    """Sendet einen fertigen Payload an endpoint/p256dh/auth einer Subscription."""

    def __init__(self, vapid: VapidConfig, ttl: int = 86400, timeout: float | None = 10.0):
        self.vapid = vapid
        self.ttl = ttl
        self.timeout = timeout

    async def deliver(self, subscription: Any, payload: str) -> None:
        if not self.vapid.configured:
            raise DeliveryError(DeliveryFailure.PERMANENT, "VAPID_PRIVATE_KEY not configured")

        subscription_info = {
            "endpoint": subscription.endpoint,
            "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
        }
        try:
            await asyncio.to_thread(
                webpush,
                subscription_info=subscription_info,
                data=payload,
                vapid_private_key=self.vapid.private_key,
                # pywebpush ergänzt aud/exp im Dict – pro Aufruf eine frische Kopie
                vapid_claims={"sub": self.vapid.subject},
                ttl=self.ttl,
                timeout=self.timeout,
            )
        except WebPushException as e:
            status = e.response.status_code if e.response is not None else None
            raise DeliveryError(classify_status(status), str(e)[:200], status) from e
        except Exception as e:
            # z.B. kaputte Schlüssel oder Netzwerkfehler
            raise DeliveryError(DeliveryFailure.PERMANENT, str(e)[:200]) from e
        logger.debug("Push delivered to %s", subscription.endpoint)
