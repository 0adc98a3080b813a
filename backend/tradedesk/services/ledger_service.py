# Overview: Append-only audit trail of business events.

"""
Audit ledger.

Rows are only ever inserted. Each event is added to the caller's session
and flushed, never committed here, so it lands or vanishes together with
the change it describes.

occurred_at is when the business event happened (defaults to insert time);
created_at is always the insert time.
"""

import json
from datetime import datetime
from typing import Any

from ..extensions import db
from ..models import LedgerEvent


def _encode_payload(payload: Any) -> str | None:
    if payload is None or isinstance(payload, str):
        return payload
    # Decimal and datetime values fall back to str()
    return json.dumps(payload, sort_keys=True, default=str)


def append_ledger_event(
    *,
    org_id: int,
    event_type: str,
    event_category: str,
    entity_type: str,
    entity_id: int,
    actor_user_id: int | None = None,
    actor_member_id: int | None = None,
    order_id: int | None = None,
    occurred_at: datetime | None = None,
    note: str | None = None,
    payload: Any = None,
) -> LedgerEvent:
    event = LedgerEvent(
        org_id=org_id,
        event_type=event_type,
        event_category=event_category,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        actor_member_id=actor_member_id,
        order_id=order_id,
        occurred_at=occurred_at,
        note=note,
        payload=_encode_payload(payload),
    )
    db.session.add(event)
    db.session.flush()
    return event


def list_ledger_events(org_id: int, *, limit: int = 100, **filters) -> list[LedgerEvent]:
    """
    Newest first. Supported filters: entity_type, entity_id, order_id.
    A filter passed as None is ignored.
    """
    query = db.session.query(LedgerEvent).filter(LedgerEvent.org_id == org_id)
    for name in ("entity_type", "entity_id", "order_id"):
        value = filters.pop(name, None)
        if value is not None:
            query = query.filter(getattr(LedgerEvent, name) == value)
    if filters:
        raise TypeError(f"Unknown ledger filter(s): {', '.join(sorted(filters))}")
    return query.order_by(LedgerEvent.id.desc()).limit(limit).all()
