# portal/config/studio.py
from __future__ import annotations

"""
Single source of truth for the studio's identity.

Used by the email templates, the invoice PDF and the launch summary so the
name and contact details never drift between outputs.
"""

# -----------------------------
# Canonical fields
# -----------------------------
STUDIO_NAME = "Keyline Studios"
STUDIO_TEAM_SIGNATURE = "The Keyline Studios Team"

STUDIO_EMAIL = "hello@keylinestudios.com"
STUDIO_WEBSITE = "www.keylinestudios.com"

# Post-delivery service tiers shown on the launch summary
SUPPORT_PLAN_DETAILS = {
    "none": {
        "name": "No Support Plan",
        "description": "No ongoing support included.",
    },
    "basic": {
        "name": "Basic Support",
        "description": "Bug fixes and minor updates for 30 days.",
    },
    "priority": {
        "name": "Priority Support",
        "description": "Priority bug fixes, updates, and feature requests for 90 days.",
    },
}


def studio_context() -> dict:
    """Template context injection (emails and any HTML rendering)."""
    return {
        "STUDIO_NAME": STUDIO_NAME,
        "STUDIO_TEAM_SIGNATURE": STUDIO_TEAM_SIGNATURE,
        "STUDIO_EMAIL": STUDIO_EMAIL,
        "STUDIO_WEBSITE": STUDIO_WEBSITE,
    }
