# portal/auth.py
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy.exc import IntegrityError

from .extensions import db, limiter, login_manager
from .models import ApprovalStatus, ClientOnboarding, Role, User, utcnow_naive
from .services.access import load_session
from .utils.db import commit_or_rollback, failed
from .utils.passwords import hash_password, validate_password, verify_password
from .utils.serialize import user_to_dict

auth = Blueprint("auth", __name__, url_prefix="/auth")


# =========================================================
# Flask-Login loaders
# =========================================================
@login_manager.user_loader
def load_user(user_id: str):
    try:
        user = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None
    if user is None or not user.is_active:
        return None
    return user


@login_manager.request_loader
def load_user_from_bearer(req):
    """Authorization: Bearer <api token> (issued by POST /auth/token)."""
    header = (req.headers.get("Authorization") or "").strip()
    if not header.lower().startswith("bearer "):
        return None

    token = header[7:].strip()
    if not token:
        return None

    user = User.query.filter(User.api_token == token).first()
    if not user or not user.is_active or not user.is_api_token_valid():
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401


# =========================================================
# Helpers
# =========================================================
def _payload() -> dict:
    """JSON body, falling back to form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _clean_str(value) -> str:
    return str(value or "").strip()


def _session_payload(user: User, *, refresh: bool = False) -> dict:
    return {
        "user": user_to_dict(user),
        "session": load_session(user, refresh=refresh).to_dict(),
    }


# =========================================================
# Signup (clients only)
# =========================================================
@auth.route("/signup", methods=["POST"])
@limiter.limit("5 per minute")
def signup():
    data = _payload()
    email = _clean_str(data.get("email")).lower()
    password = data.get("password") or ""
    full_name = _clean_str(data.get("full_name") or data.get("fullName")) or None

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400
    if "@" not in email:
        return jsonify({"error": "Enter a valid email address"}), 400

    ok, msg = validate_password(password)
    if not ok:
        return jsonify({"error": msg}), 400

    if User.query.filter(db.func.lower(User.email) == email).first():
        return jsonify({"error": "An account with that email already exists"}), 409

    user = User(
        email=email,
        full_name=full_name,
        role=Role.CLIENT,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.flush()

    db.session.add(
        ClientOnboarding(
            user_id=user.id,
            approval_status=ApprovalStatus.PENDING,
        )
    )

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "An account with that email already exists"}), 409
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Signup failed")
        return failed("Signup")

    login_user(user)
    return jsonify(_session_payload(user, refresh=True)), 201


# =========================================================
# Login / Logout
# =========================================================
@auth.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    data = _payload()
    email = _clean_str(data.get("email")).lower()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    user = User.query.filter(db.func.lower(User.email) == email).first()

    if user and user.is_active is False:
        return jsonify({"error": "This account is inactive. Contact the studio."}), 403

    if not user or not verify_password(user.password_hash, password):
        return jsonify({"error": "Invalid email or password"}), 401

    login_user(user, remember=bool(data.get("remember")))

    # Stamp last_login_at; failure here must not block the login
    user.last_login_at = utcnow_naive()
    commit_or_rollback("Stamp last login")

    return jsonify(_session_payload(user, refresh=True)), 200


@auth.route("/logout", methods=["POST"])
def logout():
    logout_user()
    return jsonify({"message": "Logged out"}), 200


# =========================================================
# Session (approval gate)
# =========================================================
@auth.route("/session", methods=["GET"])
@login_required
def current_session():
    return jsonify(_session_payload(current_user, refresh=True)), 200


# =========================================================
# Bearer token (upload function)
# =========================================================
@auth.route("/token", methods=["POST"])
@login_required
@limiter.limit("5 per minute")
def issue_token():
    hours = current_app.config.get("API_TOKEN_HOURS", 24)
    token = current_user.new_api_token(hours=hours)

    if not commit_or_rollback("Issue API token"):
        return failed("Issue API token")

    return (
        jsonify(
            {
                "token": token,
                "token_type": "Bearer",
                "expires_at": current_user.api_token_expires_at.isoformat(),
            }
        ),
        201,
    )


# =========================================================
# Change Password (any logged-in user)
# =========================================================
@auth.route("/change-password", methods=["POST"])
@login_required
def change_password():
    data = _payload()
    current_pw = data.get("current_password") or ""
    new_pw = data.get("new_password") or ""
    confirm_pw = data.get("confirm_password") or ""

    if not current_pw or not new_pw or not confirm_pw:
        return jsonify({"error": "All fields are required"}), 400

    if not verify_password(current_user.password_hash, current_pw):
        return jsonify({"error": "Current password is incorrect"}), 400

    if new_pw != confirm_pw:
        return jsonify({"error": "Passwords do not match"}), 400

    if verify_password(current_user.password_hash, new_pw):
        return jsonify({"error": "New password must be different from the current password"}), 400

    ok, msg = validate_password(new_pw)
    if not ok:
        return jsonify({"error": msg}), 400

    current_user.password_hash = hash_password(new_pw)
    # Existing bearer tokens stop working with the old password
    current_user.api_token = None
    current_user.api_token_expires_at = None

    if not commit_or_rollback("Change password"):
        return failed("Change password")

    return jsonify({"message": "Password updated"}), 200
