import json
import logging
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.smartvocab.models import AuditEvent, User

logger = logging.getLogger(__name__)


def _request_fields() -> tuple[str | None, str | None]:
    if not has_request_context():
        return None, None
    return getattr(g, "request_id", None), request.remote_addr


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Add an append-only audit event to the session (the caller commits).

    Outside a request (seed scripts) request_id and client_ip stay empty.
    Metadata is stored as a sorted JSON string; dates and other odd values are stringified.
    """
    rid, client_ip = _request_fields()
    ev = AuditEvent(
        request_id=request_id or rid,
        client_ip=client_ip,
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
    )
    s.add(ev)
    logger.debug("audit %s %s:%s actor=%s", action, entity_type, entity_id, ev.actor_user_email)
    return ev
