from taskvision.models.employee import Employee
from taskvision.models.push_subscription import PushSubscription

__all__ = [
    "Employee",
    "PushSubscription",
]
