# portal/utils/db.py
from __future__ import annotations

import uuid

from flask import current_app, jsonify

from portal.extensions import db


def commit_or_rollback(action: str) -> bool:
    """Commit session; rollback + log on failure. Returns True on success."""
    try:
        db.session.commit()
        return True
    except Exception:
        db.session.rollback()
        current_app.logger.exception("%s failed", action)
        return False


def failed(action: str):
    return jsonify({"error": f"{action} failed. Please try again."}), 500


def parse_uuid(value):
    """uuid.UUID or None; route converters already hand over UUIDs for path params."""
    if value is None or value == "":
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        return None
