# portal/utils/guards.py

from __future__ import annotations

from functools import wraps
from typing import Callable, Any

from flask import jsonify
from flask_login import login_required, current_user

from portal.models import Role
from portal.services.access import load_session


def _forbidden(message: str, **extra):
    return jsonify({"error": message, **extra}), 403


def admin_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """Studio admins only; 403 JSON for every other logged-in user."""
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if getattr(current_user, "role", None) is not Role.ADMIN:
            return _forbidden("Admin access required")
        return view(*args, **kwargs)

    return wrapped


def client_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """Any client account, whatever its approval state (onboarding, contract signing)."""
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if getattr(current_user, "role", None) is not Role.CLIENT:
            return _forbidden("Client access required")
        return view(*args, **kwargs)

    return wrapped


def active_client_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """
    Dashboard gate: approved onboarding AND at least one signed contract.
    The 403 body carries the screen the client should see instead.
    """
    @wraps(view)
    @client_required
    def wrapped(*args, **kwargs):
        session = load_session(current_user)
        if not session.is_admitted:
            return _forbidden("Dashboard not available yet", screen=session.access.screen)
        return view(*args, **kwargs)

    return wrapped
