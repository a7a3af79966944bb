"""
Push API – VAPID-Key, Browser-Subscriptions und Versand.

Keine Authentifizierung: die App identifiziert Mitarbeiter clientseitig,
employee_id kommt daher im Request-Body mit.
"""
import uuid

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from taskvision.api.deps import DB, Pusher, Store
from taskvision.core.config import settings
from taskvision.models.employee import Employee
from taskvision.schemas.push import (
    PushSendRequest,
    PushSendResponse,
    PushSubscriptionCreate,
    PushSubscriptionOut,
    PushUnsubscribeRequest,
)
from taskvision.services.push_service import InvalidDeliveryRequest
from taskvision.services.subscription_store import SubscriptionStoreError

router = APIRouter(prefix="/push", tags=["push"])


@router.get("/vapid-key")
async def get_vapid_public_key():
    """Gibt den VAPID Public Key für pushManager.subscribe() zurück."""
    return {"public_key": settings.VAPID_PUBLIC_KEY}


@router.get("/subscriptions", response_model=list[PushSubscriptionOut])
async def list_subscriptions(employee_id: uuid.UUID, store: Store):
    try:
        return await store.list_for_owner(employee_id)
    except SubscriptionStoreError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.post("/subscriptions", response_model=PushSubscriptionOut, status_code=201)
async def subscribe_push(payload: PushSubscriptionCreate, db: DB, store: Store):
    """Speichert eine Browser-Push-Subscription; gleiches Gerät → Update statt Duplikat."""
    emp_result = await db.execute(
        select(Employee.id).where(Employee.id == payload.employee_id)
    )
    if emp_result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Employee not found")

    return await store.upsert(
        owner_id=payload.employee_id,
        endpoint=payload.endpoint,
        p256dh=payload.p256dh,
        auth=payload.auth,
        replaces_endpoint=payload.old_endpoint,
    )


@router.delete("/subscriptions", status_code=200)
async def unsubscribe_push(payload: PushUnsubscribeRequest, store: Store):
    deleted = await store.delete_by_endpoint(payload.endpoint, owner_id=payload.employee_id)
    return {"ok": True, "deleted": deleted}


@router.post("/send", response_model=PushSendResponse, response_model_exclude_none=True)
async def send_push(payload: PushSendRequest, service: Pusher):
    """
    Sendet eine Benachrichtigung an die Geräte der angegebenen Mitarbeiter
    oder (broadcast=true) an alle Subscriptions.
    """
    try:
        report = await service.send(payload.to_delivery_request())
    except InvalidDeliveryRequest as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SubscriptionStoreError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return PushSendResponse.from_report(report)
