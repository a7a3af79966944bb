"""
Push Service – Fan-out eines Sendeauftrags an viele Browser-Subscriptions.

Ablauf: Subscriptions laden (gezielt oder Broadcast) → nach Endpoint
deduplizieren → Payload einmal bauen → in Fenstern zu je `window_size`
parallel zustellen → 429/5xx einmal wiederholen → 404/410-Endpoints löschen
→ Report zurückgeben.

Teilweise fehlgeschlagene Zustellungen sind ein normales Ergebnis und
landen im Report. Nur ein ungültiger Auftrag (InvalidDeliveryRequest) oder
ein Lesefehler der Subscription-Tabelle (SubscriptionStoreError) brechen ab.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Sequence

from taskvision.services.push_delivery import DeliveryError, DeliveryFailure, PushSender
from taskvision.services.push_payload import (
    DEFAULT_BADGE,
    DEFAULT_BODY,
    DEFAULT_ICON,
    DEFAULT_TITLE,
    encode_payload,
)
from taskvision.services.subscription_store import SubscriptionStore

logger = logging.getLogger(__name__)

NO_SUBSCRIPTIONS_MESSAGE = "No subscriptions found. Employees need to enable notifications first."


class InvalidDeliveryRequest(ValueError):
    """Weder employee_ids noch broadcast=True angegeben."""


@dataclass
class DeliveryRequest:
    employee_ids: list[uuid.UUID] | None = None
    broadcast: bool = False
    title: str | None = None
    body: str | None = None
    data: dict[str, Any] | None = None
    actions: list[dict[str, str]] | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-taugliche Form im Wire-Format (für Celery)."""
        return {
            "employeeIds": [str(i) for i in self.employee_ids] if self.employee_ids else None,
            "broadcast": self.broadcast,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "actions": self.actions,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "DeliveryRequest":
        ids = raw.get("employeeIds")
        return cls(
            employee_ids=[uuid.UUID(str(i)) for i in ids] if ids else None,
            broadcast=raw.get("broadcast") is True,
            title=raw.get("title"),
            body=raw.get("body"),
            data=raw.get("data"),
            actions=raw.get("actions"),
        )


@dataclass
class DeliveryResult:
    employee_id: uuid.UUID
    success: bool
    error: str | None = None
    failure: DeliveryFailure | None = None


@dataclass
class DeliveryReport:
    message: str
    sent: int = 0
    total: int = 0
    results: list[DeliveryResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        results = []
        for r in self.results:
            item: dict[str, Any] = {"success": r.success, "employeeId": str(r.employee_id)}
            if r.error is not None:
                item["error"] = r.error
            results.append(item)
        return {"message": self.message, "sent": self.sent, "total": self.total, "results": results}


def dedupe_by_endpoint(subscriptions: Sequence[Any]) -> list[Any]:
    """Behält pro Endpoint die zuerst gefundene Subscription."""
    unique: dict[str, Any] = {}
    for sub in subscriptions:
        unique.setdefault(sub.endpoint, sub)
    return list(unique.values())


class PushService:

    def __init__(
        self,
        store: SubscriptionStore,
        sender: PushSender,
        window_size: int = 25,
        retry_delay: float = 0.5,
        transient_retries: int = 1,
        icon: str = DEFAULT_ICON,
        badge: str = DEFAULT_BADGE,
        default_title: str = DEFAULT_TITLE,
        default_body: str = DEFAULT_BODY,
    ):
        if window_size < 1:
            raise ValueError("window_size must be >= 1")
        self.store = store
        self.sender = sender
        self.window_size = window_size
        self.retry_delay = retry_delay
        self.transient_retries = transient_retries
        self.icon = icon
        self.badge = badge
        self.default_title = default_title
        self.default_body = default_body

    @classmethod
    def from_settings(cls, store: SubscriptionStore, sender: PushSender, settings) -> "PushService":
        return cls(
            store,
            sender,
            window_size=settings.PUSH_WINDOW_SIZE,
            retry_delay=settings.PUSH_RETRY_DELAY_SECONDS,
            transient_retries=settings.PUSH_TRANSIENT_RETRIES,
            icon=settings.PUSH_ICON,
            badge=settings.PUSH_BADGE,
            default_title=settings.PUSH_DEFAULT_TITLE,
            default_body=settings.PUSH_DEFAULT_BODY,
        )

    async def send(self, request: DeliveryRequest) -> DeliveryReport:
        subscriptions = await self._resolve(request)
        if not subscriptions:
            logger.info("No push subscriptions for %s", request.employee_ids or "broadcast")
            return DeliveryReport(message=NO_SUBSCRIPTIONS_MESSAGE)

        unique = dedupe_by_endpoint(subscriptions)
        if len(unique) < len(subscriptions):
            logger.info("Dropped %d duplicate endpoint(s)", len(subscriptions) - len(unique))

        payload = encode_payload(
            title=request.title,
            body=request.body,
            data=request.data,
            icon=self.icon,
            badge=self.badge,
            actions=request.actions,
            default_title=self.default_title,
            default_body=self.default_body,
        )

        results: list[DeliveryResult] = []
        for start in range(0, len(unique), self.window_size):
            window = unique[start:start + self.window_size]
            results.extend(
                await asyncio.gather(*(self._deliver(sub, payload) for sub in window))
            )

        sent = sum(1 for r in results if r.success)
        logger.info("Push results: %d/%d notifications sent", sent, len(results))
        return DeliveryReport(
            message=f"Sent {sent} of {len(results)} notifications",
            sent=sent,
            total=len(results),
            results=results,
        )

    async def _resolve(self, request: DeliveryRequest) -> Sequence[Any]:
        if request.broadcast:
            return await self.store.list_all()
        if not request.employee_ids:
            raise InvalidDeliveryRequest(
                "employeeIds must be a non-empty array (or set broadcast=true)"
            )
        return await self.store.list_by_owners(request.employee_ids)

    async def _deliver(self, sub: Any, payload: str) -> DeliveryResult:
        attempts_left = self.transient_retries
        while True:
            try:
                await self.sender.deliver(sub, payload)
                return DeliveryResult(employee_id=sub.employee_id, success=True)
            except DeliveryError as e:
                if e.kind is DeliveryFailure.TRANSIENT and attempts_left > 0:
                    attempts_left -= 1
                    logger.debug("Transient push failure for %s, retrying: %s", sub.endpoint, e.detail)
                    await asyncio.sleep(self.retry_delay)
                    continue
                logger.warning(
                    "Push to employee %s failed (%s): %s", sub.employee_id, e.kind.value, e.detail
                )
                if e.kind is DeliveryFailure.GONE:
                    await self._evict(sub)
                return DeliveryResult(
                    employee_id=sub.employee_id,
                    success=False,
                    error=e.detail,
                    failure=e.kind,
                )
            except Exception as e:
                # Unklassifizierter Fehler des Senders zählt als dauerhafter Fehlschlag
                logger.exception("Push to employee %s failed unexpectedly", sub.employee_id)
                return DeliveryResult(
                    employee_id=sub.employee_id,
                    success=False,
                    error=str(e)[:200],
                    failure=DeliveryFailure.PERMANENT,
                )

    async def _evict(self, sub: Any) -> None:
        logger.info("Removing invalid subscription %s for employee %s", sub.id, sub.employee_id)
        try:
            await self.store.delete_by_id(sub.id)
        except Exception:
            logger.exception("Could not remove subscription %s", sub.id)
