import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from taskvision.services.push_service import DeliveryReport, DeliveryRequest


# ── Subscriptions ────────────────────────────────────────────────────────────

class PushSubscriptionCreate(BaseModel):
    employee_id: uuid.UUID
    endpoint: str = Field(min_length=1)
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)
    old_endpoint: str | None = None  # gesetzt wenn der Browser den Endpoint rotiert hat


class PushUnsubscribeRequest(BaseModel):
    endpoint: str
    employee_id: uuid.UUID | None = None


class PushSubscriptionOut(BaseModel):
    """Ohne Schlüsselmaterial."""
    id: uuid.UUID
    employee_id: uuid.UUID
    endpoint: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ── Versand (Wire-Format camelCase) ──────────────────────────────────────────

class PushSendRequest(BaseModel):
    employee_ids: list[uuid.UUID] | None = Field(default=None, alias="employeeIds")
    broadcast: bool = False
    title: str | None = None
    body: str | None = None
    data: dict[str, Any] | None = None
    actions: list[dict[str, str]] | None = None

    model_config = ConfigDict(populate_by_name=True)

    def to_delivery_request(self) -> DeliveryRequest:
        return DeliveryRequest(
            employee_ids=self.employee_ids,
            broadcast=self.broadcast,
            title=self.title,
            body=self.body,
            data=self.data,
            actions=self.actions,
        )


class PushResultOut(BaseModel):
    success: bool
    employee_id: str = Field(alias="employeeId")
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class PushSendResponse(BaseModel):
    message: str
    sent: int
    total: int
    results: list[PushResultOut] = []

    @classmethod
    def from_report(cls, report: DeliveryReport) -> "PushSendResponse":
        return cls(
            message=report.message,
            sent=report.sent,
            total=report.total,
            results=[
                PushResultOut(
                    success=r.success,
                    employee_id=str(r.employee_id),
                    error=r.error,
                )
                for r in report.results
            ],
        )
