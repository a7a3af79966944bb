"""
Notification-Vorlagen für Aufgaben-Ereignisse + Versand über den PushService.

Jede notify_*-Funktion baut nur den DeliveryRequest; notify() verschickt ihn.
Ein Fehler beim Versand darf nie den auslösenden Workflow (Zuweisung,
Freigabe, ...) abbrechen und wird deshalb nur geloggt.
"""
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, Iterable

from taskvision.core.config import settings
from taskvision.services.push_service import DeliveryReport, DeliveryRequest

if TYPE_CHECKING:
    from taskvision.services.push_service import PushService

logger = logging.getLogger(__name__)

EVENT_TASK_ASSIGNED          = "task_assigned"
EVENT_BULK_TASKS_ASSIGNED    = "bulk_tasks_assigned"
EVENT_TASK_STARTED           = "task_started"
EVENT_TASK_COMPLETED         = "task_completed"
EVENT_TASK_APPROVED          = "task_approved"
EVENT_TASK_REJECTED          = "task_rejected"
EVENT_VERIFICATION_REQUEST   = "verification_request"
EVENT_VERIFICATION_APPROVED  = "verification_approved"
EVENT_VERIFICATION_REJECTED  = "verification_rejected"
EVENT_TASK_UPDATED           = "task_updated"
EVENT_TASK_REASSIGNED        = "task_reassigned"
EVENT_TASK_REASSIGNED_FROM   = "task_reassigned_from"
EVENT_DEADLINE_APPROACHING   = "deadline_approaching"
EVENT_TASK_OVERDUE           = "task_overdue"
EVENT_EMPLOYEE_ADDED         = "employee_added"
EVENT_ROLE_CHANGED           = "role_changed"
EVENT_DEPARTMENT_CHANGED     = "department_changed"
EVENT_DEPT_HEAD_ASSIGNED     = "dept_head_assigned"
EVENT_NEW_TEAM_MEMBER        = "new_team_member"
EVENT_REPORT_GENERATED       = "report_generated"
EVENT_EMERGENCY_ALERT        = "emergency_alert"
EVENT_SYSTEM_MAINTENANCE     = "system_maintenance"

URL_EMPLOYEE   = "/employee"
URL_DEPARTMENT = "/department"
URL_ADMIN      = "/admin"


def _request(
    title: str,
    body: str,
    employee_ids: Iterable[uuid.UUID] | None,
    action: str,
    url: str | None = None,
    actions: list[dict[str, str]] | None = None,
    broadcast: bool = False,
) -> DeliveryRequest:
    data: dict[str, Any] = {"action": action}
    if url:
        data["url"] = url
    return DeliveryRequest(
        employee_ids=list(dict.fromkeys(employee_ids)) if employee_ids else None,
        broadcast=broadcast,
        title=title,
        body=body,
        data=data,
        actions=actions,
    )


# ── Aufgaben ──────────────────────────────────────────────────────────────────

def notify_task_assigned(task_title: str, assigned_to_id: uuid.UUID, assigned_by_name: str) -> DeliveryRequest:
    return _request(
        "📋 New Task Assigned",
        f'{assigned_by_name} assigned you: "{task_title}"',
        [assigned_to_id],
        EVENT_TASK_ASSIGNED,
        URL_EMPLOYEE,
        actions=[{"action": "view", "title": "View Task"}, {"action": "dismiss", "title": "Later"}],
    )


def notify_bulk_tasks_assigned(
    task_count: int, assigned_to_ids: list[uuid.UUID], assigned_by_name: str
) -> DeliveryRequest:
    return _request(
        "📋 Multiple Tasks Assigned",
        f"{assigned_by_name} assigned you {task_count} new tasks",
        assigned_to_ids,
        EVENT_BULK_TASKS_ASSIGNED,
        URL_EMPLOYEE,
    )


def notify_task_started(task_title: str, employee_name: str, supervisor_id: uuid.UUID) -> DeliveryRequest:
    return _request(
        "▶️ Task Started",
        f'{employee_name} started: "{task_title}"',
        [supervisor_id],
        EVENT_TASK_STARTED,
        URL_DEPARTMENT,
    )


def notify_task_completed(
    task_title: str, employee_name: str, approver_ids: list[uuid.UUID]
) -> DeliveryRequest:
    return _request(
        "✅ Task Completed",
        f'{employee_name} completed: "{task_title}" - Pending approval',
        approver_ids,
        EVENT_TASK_COMPLETED,
        URL_DEPARTMENT,
        actions=[{"action": "approve", "title": "Review"}, {"action": "dismiss", "title": "Later"}],
    )


def notify_task_approved(task_title: str, approver_name: str, employee_id: uuid.UUID) -> DeliveryRequest:
    return _request(
        "🎉 Task Approved",
        f'{approver_name} approved: "{task_title}"',
        [employee_id],
        EVENT_TASK_APPROVED,
        URL_EMPLOYEE,
    )


def notify_task_rejected(
    task_title: str, approver_name: str, employee_id: uuid.UUID, reason: str | None = None
) -> DeliveryRequest:
    body = f'{approver_name} rejected: "{task_title}"'
    if reason:
        body += f" - {reason}"
    return _request("❌ Task Rejected", body, [employee_id], EVENT_TASK_REJECTED, URL_EMPLOYEE)


def notify_task_updated(
    task_title: str, employee_id: uuid.UUID, updated_by_name: str, changes: str
) -> DeliveryRequest:
    return _request(
        "📝 Task Updated",
        f'{updated_by_name} updated "{task_title}": {changes}',
        [employee_id],
        EVENT_TASK_UPDATED,
        URL_EMPLOYEE,
    )


def notify_task_reassigned(
    task_title: str,
    previous_employee_id: uuid.UUID,
    new_employee_id: uuid.UUID,
    reassigned_by_name: str,
) -> list[DeliveryRequest]:
    """Zwei Nachrichten: an den neuen und an den bisherigen Bearbeiter."""
    return [
        _request(
            "🔄 Task Reassigned to You",
            f'{reassigned_by_name} reassigned "{task_title}" to you',
            [new_employee_id],
            EVENT_TASK_REASSIGNED,
            URL_EMPLOYEE,
        ),
        _request(
            "📋 Task Reassigned",
            f'Task "{task_title}" has been reassigned to another employee',
            [previous_employee_id],
            EVENT_TASK_REASSIGNED_FROM,
            URL_EMPLOYEE,
        ),
    ]


def notify_deadline_approaching(
    task_title: str, employee_id: uuid.UUID, hours_remaining: int
) -> DeliveryRequest:
    return _request(
        "⏰ Deadline Approaching",
        f'"{task_title}" is due in {hours_remaining} hours',
        [employee_id],
        EVENT_DEADLINE_APPROACHING,
        URL_EMPLOYEE,
        actions=[{"action": "view", "title": "View Task"}, {"action": "dismiss", "title": "OK"}],
    )


def notify_task_overdue(task_title: str, employee_id: uuid.UUID) -> DeliveryRequest:
    return _request(
        "🚨 Task Overdue",
        f'"{task_title}" is now overdue!',
        [employee_id],
        EVENT_TASK_OVERDUE,
        URL_EMPLOYEE,
    )


# ── Verifizierung durch Admins ────────────────────────────────────────────────

def notify_verification_request(
    task_title: str, department_head_name: str, admin_ids: list[uuid.UUID]
) -> DeliveryRequest:
    return _request(
        "🔍 Verification Request",
        f'{department_head_name} requests verification for: "{task_title}"',
        admin_ids,
        EVENT_VERIFICATION_REQUEST,
        URL_ADMIN,
        actions=[{"action": "verify", "title": "Review"}, {"action": "dismiss", "title": "Later"}],
    )


def notify_verification_approved(
    task_title: str, employee_id: uuid.UUID, department_head_id: uuid.UUID
) -> DeliveryRequest:
    return _request(
        "✨ Task Verified",
        f'Admin verified: "{task_title}"',
        [employee_id, department_head_id],
        EVENT_VERIFICATION_APPROVED,
        URL_EMPLOYEE,
    )


def notify_verification_rejected(
    task_title: str, department_head_id: uuid.UUID, admin_name: str
) -> DeliveryRequest:
    return _request(
        "⚠️ Verification Rejected",
        f'{admin_name} rejected verification for: "{task_title}"',
        [department_head_id],
        EVENT_VERIFICATION_REJECTED,
        URL_DEPARTMENT,
    )


# ── Mitarbeiter & Abteilungen ─────────────────────────────────────────────────

def notify_employee_added(employee_name: str, department_name: str, employee_id: uuid.UUID) -> DeliveryRequest:
    return _request(
        f"👋 Welcome to {settings.PUSH_DEFAULT_TITLE}",
        f"Welcome {employee_name}! You've been added to {department_name}",
        [employee_id],
        EVENT_EMPLOYEE_ADDED,
        "/",
    )


def notify_role_changed(new_role: str, employee_id: uuid.UUID) -> DeliveryRequest:
    return _request(
        "🔄 Role Updated",
        f"Your role has been changed to {new_role}",
        [employee_id],
        EVENT_ROLE_CHANGED,
        "/",
    )


def notify_department_changed(new_department_name: str, employee_id: uuid.UUID) -> DeliveryRequest:
    return _request(
        "🏢 Department Changed",
        f"You've been moved to {new_department_name}",
        [employee_id],
        EVENT_DEPARTMENT_CHANGED,
        "/",
    )


def notify_department_head_assigned(department_name: str, employee_id: uuid.UUID) -> DeliveryRequest:
    return _request(
        "👑 Department Head Assigned",
        f"You are now the head of {department_name}",
        [employee_id],
        EVENT_DEPT_HEAD_ASSIGNED,
        URL_DEPARTMENT,
    )


def notify_new_team_member(new_employee_name: str, department_head_id: uuid.UUID) -> DeliveryRequest:
    return _request(
        "👥 New Team Member",
        f"{new_employee_name} joined your department",
        [department_head_id],
        EVENT_NEW_TEAM_MEMBER,
        URL_DEPARTMENT,
    )


def notify_report_generated(report_type: str, employee_ids: list[uuid.UUID]) -> DeliveryRequest:
    return _request(
        "📊 Report Ready",
        f"Your {report_type} report is ready to view",
        employee_ids,
        EVENT_REPORT_GENERATED,
        URL_DEPARTMENT,
    )


# ── Broadcasts ────────────────────────────────────────────────────────────────

def notify_emergency_alert(message: str) -> DeliveryRequest:
    return _request(
        "🚨 EMERGENCY ALERT",
        message,
        None,
        EVENT_EMERGENCY_ALERT,
        "/",
        actions=[{"action": "acknowledge", "title": "Acknowledge"}],
        broadcast=True,
    )


def notify_system_maintenance(scheduled_time: str) -> DeliveryRequest:
    return _request(
        "🔧 System Maintenance",
        f"Scheduled maintenance at {scheduled_time}",
        None,
        EVENT_SYSTEM_MAINTENANCE,
        broadcast=True,
    )


# ── Versand ───────────────────────────────────────────────────────────────────

async def notify(service: "PushService", request: DeliveryRequest) -> DeliveryReport | None:
    """
    Verschickt einen Request. Mit USE_CELERY wird er an den Worker übergeben
    (Rückgabe None), sonst direkt zugestellt. Fehler werden nur geloggt.
    """
    try:
        if settings.USE_CELERY:
            from taskvision.tasks.push_tasks import send_push_notification
            send_push_notification.delay(request.to_dict())
            return None
        return await service.send(request)
    except Exception:
        logger.exception("Push notification '%s' could not be sent", request.title)
        return None
