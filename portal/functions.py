# portal/functions.py
from __future__ import annotations

from flask import Blueprint, jsonify, request, send_file

from .auth import load_user_from_bearer
from .services.notifications import NotificationError, send_notification
from .services.storage import StorageError, resolve_stored_path, store_upload
from .utils.guards import admin_required

functions = Blueprint("functions", __name__)


# =========================================================
# Notification dispatch
# =========================================================
@functions.route("/functions/send-notification", methods=["POST"])
@admin_required
def send_notification_endpoint():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    notification_type = data.get("type")
    client_id = data.get("clientId") or data.get("client_id")
    extra = data.get("data") or {}

    if notification_type is not None and not isinstance(notification_type, str):
        return jsonify({"error": "type must be a string"}), 400
    notification_type = (notification_type or "").strip()

    if not notification_type or not client_id:
        return jsonify({"error": "type and clientId are required"}), 400
    if not isinstance(extra, dict):
        return jsonify({"error": "data must be an object"}), 400

    try:
        email_response = send_notification(notification_type, client_id, extra)
    except NotificationError as exc:
        return jsonify({"error": exc.message}), exc.status_code

    return jsonify({"success": True, "emailResponse": email_response}), 200


# =========================================================
# Upload proxy (bearer token only)
# =========================================================
@functions.route("/functions/upload-file", methods=["POST"])
def upload_file():
    user = load_user_from_bearer(request)
    if user is None:
        return jsonify({"error": "Unauthorized"}), 401

    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"error": "No file provided"}), 400

    try:
        stored = store_upload(upload, folder=request.form.get("folder"), owner_id=user.id)
    except StorageError as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify({"path": stored.path, "publicUrl": stored.public_url}), 200


# =========================================================
# Public reads from the files bucket
# =========================================================
@functions.route("/files/<path:path>", methods=["GET"])
def serve_file(path: str):
    try:
        abs_path = resolve_stored_path(path)
    except StorageError:
        return jsonify({"error": "File not found"}), 404
    return send_file(abs_path, conditional=True)
