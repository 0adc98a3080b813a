# Overview: Service-layer operations for document numbering; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..constants import ORDER_DOCUMENT_TYPE
from ..extensions import db
from ..models import DocumentSequence
from ..time_utils import period_key
from .concurrency import SequenceConflict


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def reserve_sequence_number(*, org_id: int, document_type: str, period: str) -> int:
    """
    Atomically allocate the next number for (org, type, period).

    The UPDATE takes a row lock (a write lock on SQLite) that is held until
    the caller's transaction ends, so everything the caller does afterwards
    is serialized against other allocations for the same organization.

    Does not commit. If the counter row is created concurrently by another
    transaction, SequenceConflict is raised and the caller's run_with_retry
    starts over on a fresh transaction.
    """
    if not org_id:
        raise DocumentSequenceError("org_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.org_id == org_id,
            DocumentSequence.document_type == document_type,
            DocumentSequence.period == period,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(org_id=org_id, document_type=document_type, period=period)
            .scalar()
        )
        return current - 1

    seq = DocumentSequence(
        org_id=org_id,
        document_type=document_type,
        period=period,
        next_number=2,
    )
    db.session.add(seq)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise SequenceConflict(
            f"Sequence row for org {org_id} {document_type} {period} created concurrently"
        ) from exc
    return 1


def format_document_number(prefix: str, period: str, number: int, pad: int = 4) -> str:
    """ORD, 202403, 7 -> ORD-202403-0007"""
    return f"{prefix}-{period}-{number:0{pad}d}"


def next_order_number(org_id: int, *, now: datetime | None = None) -> str:
    """
    Allocate the next ORD-YYYYMM-NNNN number for an organization.

    Must run inside the order transaction: a rolled-back order also rolls
    back its number, so committed numbers stay gap-free.
    """
    period = period_key(now)
    number = reserve_sequence_number(
        org_id=org_id,
        document_type=ORDER_DOCUMENT_TYPE,
        period=period,
    )
    return format_document_number(
        current_app.config.get("ORDER_NUMBER_PREFIX", "ORD"),
        period,
        number,
        current_app.config.get("ORDER_NUMBER_PAD", 4),
    )
