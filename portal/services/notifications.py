# portal/services/notifications.py
from __future__ import annotations

from dataclasses import dataclass

import requests
from flask import current_app, render_template

from portal.extensions import db
from portal.models import User


# =========================================================
# Catalog
# =========================================================
NOTIFICATION_TYPES = {
    "contract_sent": "Your Contract is Ready - Keyline Studios",
    "invoice_created": "New Invoice - Keyline Studios",
    "deliverable_sent": "New Deliverable Ready - Keyline Studios",
    "client_approved": "You're Approved! - Keyline Studios",
    "message_received": "New Message - Keyline Studios",
    "project_updated": "Project Update - Keyline Studios",
    "project_completed": "Your Project is Complete! \U0001F389 - Keyline Studios",
}


class NotificationError(Exception):
    """Raised by send_notification; status_code maps straight onto the HTTP reply."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class RenderedEmail:
    to: str
    subject: str
    html: str


# =========================================================
# Rendering
# =========================================================
def render_notification(notification_type: str, client: User, data: dict | None = None) -> RenderedEmail:
    if notification_type not in NOTIFICATION_TYPES:
        raise NotificationError("Unknown notification type", 400)

    html = render_template(
        f"emails/{notification_type}.html",
        client_name=client.full_name or "Valued Client",
        data=data or {},
    )
    return RenderedEmail(
        to=client.email,
        subject=NOTIFICATION_TYPES[notification_type],
        html=html,
    )


# =========================================================
# Transport (Resend)
# =========================================================
def send_email(email: RenderedEmail) -> dict:
    cfg = current_app.config
    api_key = cfg.get("RESEND_API_KEY")
    if not api_key:
        current_app.logger.warning("RESEND_API_KEY is not set; email provider will reject the request")

    try:
        resp = requests.post(
            cfg.get("RESEND_API_URL") or "https://api.resend.com/emails",
            headers={
                "Authorization": f"Bearer {api_key or ''}",
                "Content-Type": "application/json",
            },
            json={
                "from": cfg.get("NOTIFICATION_FROM"),
                "to": [email.to],
                "subject": email.subject,
                "html": email.html,
            },
            timeout=cfg.get("NOTIFICATION_TIMEOUT_SECONDS", 10),
        )
    except requests.RequestException as exc:
        raise NotificationError(f"Email provider unreachable: {exc}", 500) from exc

    try:
        body = resp.json()
    except ValueError:
        body = {"raw": resp.text}

    if not resp.ok:
        raise NotificationError(f"Email provider returned {resp.status_code}", 500)

    return body


# =========================================================
# Dispatch
# =========================================================
def send_notification(notification_type: str, client_id, data: dict | None = None) -> dict:
    """
    Look up the client, render the email for the type and hand it to the provider.

    Raises NotificationError: 400 unknown type, 404 missing client, 500 send failure.
    Returns the provider's response body.
    """
    if notification_type not in NOTIFICATION_TYPES:
        raise NotificationError("Unknown notification type", 400)

    try:
        client = db.session.get(User, int(client_id))
    except (TypeError, ValueError):
        client = None
    if not client:
        raise NotificationError("Client profile not found", 404)

    email = render_notification(notification_type, client, data)
    current_app.logger.info("Sending %s notification to client %s", notification_type, client.id)
    return send_email(email)


def notify_client(notification_type: str, client_id, data: dict | None = None) -> bool:
    """
    Best-effort wrapper used after a commit: one attempt, failures logged only.
    """
    try:
        send_notification(notification_type, client_id, data)
        return True
    except Exception:
        current_app.logger.exception(
            "Notification %s for client %s failed", notification_type, client_id
        )
        return False
