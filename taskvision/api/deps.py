from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskvision.core.config import settings
from taskvision.core.database import get_db, get_session_factory
from taskvision.services.push_delivery import PushSender, VapidConfig, WebPushSender
from taskvision.services.push_service import PushService
from taskvision.services.subscription_store import SqlSubscriptionStore


@lru_cache
def get_push_sender() -> PushSender:
    """VAPID-Schlüssel werden einmal pro Prozess geladen."""
    return WebPushSender(
        VapidConfig.from_settings(settings),
        ttl=settings.PUSH_TTL_SECONDS,
        timeout=settings.PUSH_TIMEOUT_SECONDS,
    )


def get_subscription_store(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> SqlSubscriptionStore:
    return SqlSubscriptionStore(session_factory)


def get_push_service(
    store: Annotated[SqlSubscriptionStore, Depends(get_subscription_store)],
    sender: Annotated[PushSender, Depends(get_push_sender)],
) -> PushService:
    return PushService.from_settings(store, sender, settings)


DB = Annotated[AsyncSession, Depends(get_db)]
Store = Annotated[SqlSubscriptionStore, Depends(get_subscription_store)]
Pusher = Annotated[PushService, Depends(get_push_service)]
