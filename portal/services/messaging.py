# portal/services/messaging.py
from __future__ import annotations

import redis
from flask import Response, current_app, jsonify

from portal.extensions import broker, db
from portal.models import Message, Project, User
from portal.services.realtime import event_stream
from portal.utils.db import commit_or_rollback
from portal.utils.serialize import message_to_dict


def project_messages(project_id) -> list[Message]:
    return (
        Message.query.filter(Message.project_id == project_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )


def post_message(project: Project, sender: User, content: str) -> Message | None:
    """Append one message; publish it to live listeners after the commit. None on failure."""
    msg = Message(project_id=project.id, sender_id=sender.id, content=content)
    db.session.add(msg)

    if not commit_or_rollback("Send message"):
        return None

    # Row is already committed; a failed push is logged only
    try:
        broker.publish(project.id, message_to_dict(msg))
    except redis.RedisError:
        current_app.logger.exception("Realtime publish for project %s failed", project.id)

    return msg


def message_stream_response(project_id):
    # Subscribe before reading the log so nothing committed in between is lost
    try:
        subscription = broker.subscribe(project_id)
    except redis.RedisError:
        current_app.logger.exception("Realtime subscribe for project %s failed", project_id)
        return jsonify({"error": "Live updates are unavailable"}), 503

    backlog = [message_to_dict(m) for m in project_messages(project_id)]

    keepalive = current_app.config.get("MESSAGE_STREAM_KEEPALIVE_SECONDS", 15)
    return Response(
        event_stream(subscription, backlog, keepalive_seconds=keepalive),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
