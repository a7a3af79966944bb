"""
Celery-Task für Push-Versand außerhalb des Request-Zyklus.
"""
from taskvision.tasks.celery_app import celery_app


@celery_app.task(name="taskvision.tasks.push_tasks.send_push_notification")
def send_push_notification(request: dict) -> dict:
    """Stellt einen DeliveryRequest (Wire-Format) zu und gibt den Report zurück."""
    import asyncio
    return asyncio.run(_send(request))


async def _send(request: dict) -> dict:
    from taskvision.api.deps import get_push_sender
    from taskvision.core.config import settings
    from taskvision.core.database import AsyncSessionLocal
    from taskvision.services.push_service import DeliveryRequest, PushService
    from taskvision.services.subscription_store import SqlSubscriptionStore

    service = PushService.from_settings(
        SqlSubscriptionStore(AsyncSessionLocal), get_push_sender(), settings
    )
    report = await service.send(DeliveryRequest.from_dict(request))
    return report.to_dict()
