from taskvision.schemas.push import (
    PushSubscriptionCreate,
    PushUnsubscribeRequest,
    PushSubscriptionOut,
    PushSendRequest,
    PushSendResponse,
)

__all__ = [
    "PushSubscriptionCreate", "PushUnsubscribeRequest", "PushSubscriptionOut",
    "PushSendRequest", "PushSendResponse",
]
