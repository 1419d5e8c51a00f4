from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from sqlalchemy import desc

from beanbase.models.AuditLog import AuditLog
from beanbase.utils.logging_utils import get_logger, log_context

from .base import _sanitize_payload, _serialize_value

logger = get_logger("audit")


def record_event(
    session,
    *,
    event: str,
    bean_type: Optional[str] = None,
    bean_id: Optional[int] = None,
    actor_id: Optional[str] = None,
    detail: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an audit row to ``session`` without committing, so the entry lands in
    the same transaction as the change it describes.
    """

    payload = _sanitize_payload(detail or {})
    with log_context(module="audit_log_utils", action="record_event", bean_type=bean_type):
        logger.info("record_event event=%s bean_id=%s", event, _serialize_value(bean_id))
    entry = AuditLog(
        event=event,
        actor_id=str(actor_id) if actor_id is not None else None,
        bean_type=bean_type,
        bean_id=bean_id,
        detail=AuditLog.validate_detail_format(payload),
    )
    session.add(entry)
    return entry


def list_events(
    session,
    *,
    bean_type: Optional[str] = None,
    bean_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> Sequence[AuditLog]:
    query = session.query(AuditLog)
    if bean_type is not None:
        query = query.filter(AuditLog.bean_type == bean_type)
    if bean_id is not None:
        query = query.filter(AuditLog.bean_id == bean_id)
    query = query.order_by(desc(AuditLog.id))
    if limit is not None:
        query = query.limit(limit)
    events = list(query)
    logger.info("list_events bean_type=%s bean_id=%s count=%s", bean_type, bean_id, len(events))
    return events
