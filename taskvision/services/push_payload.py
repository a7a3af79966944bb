"""
Baut den Web-Push-Payload, den der Service Worker (sw.js) anzeigt.

Wird einmal pro Sendeauftrag erzeugt und für alle Subscriptions
wiederverwendet.
"""
import json
from typing import Any

DEFAULT_TITLE = "Task Vision"
DEFAULT_BODY = "You have a new notification"
DEFAULT_ICON = "/icons/android-launchericon-192-192.png"
DEFAULT_BADGE = "/icons/android-launchericon-96-96.png"


def encode_payload(
    title: str | None = None,
    body: str | None = None,
    data: dict[str, Any] | None = None,
    icon: str = DEFAULT_ICON,
    badge: str = DEFAULT_BADGE,
    actions: list[dict[str, str]] | None = None,
    default_title: str = DEFAULT_TITLE,
    default_body: str = DEFAULT_BODY,
) -> str:
    # Aufgaben-Benachrichtigungen sollen nicht von selbst verschwinden
    payload: dict[str, Any] = {
        "title": title or default_title,
        "body": body or default_body,
        "icon": icon,
        "badge": badge,
        "data": data or {},
        "requireInteraction": True,
    }
    if actions:
        payload["actions"] = actions
    return json.dumps(payload, ensure_ascii=False)
