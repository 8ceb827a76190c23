# app/ticket/services.py
import re
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import structlog
from fastapi import BackgroundTasks
from sqlalchemy.orm import Query, Session, selectinload

from app.core.config import Settings
from app.core.errors import AuthError, NotFoundError, ValidationError
from app.core.images import ImageUpload, process_uploads
from app.core.mailer import Mailer, TicketSnapshot
from app.core.security import hash_secret, verify_secret
from app.core.storage import AttachmentStore, delete_best_effort, store_all
from app.ticket.models import Comment, Ticket, TicketStatus, utcnow
from app.ticket.schemas import TicketCreate, TicketSelfUpdate

log = structlog.get_logger(__name__)

SORT_COLUMNS = {
    "id": Ticket.id,
    "created_at": Ticket.created_at,
    "customer_name": Ticket.customer_name,
    "user_name": Ticket.user_name,
    "status": Ticket.status,
}
DEFAULT_SORT = "created_at"
DEFAULT_ORDER = "desc"

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def month_bounds(month: str, tz_name: str = "UTC") -> tuple[datetime, datetime]:
    """UTC half-open range [start, end) of a YYYY-MM month in `tz_name`."""
    match = _MONTH_RE.match(month)
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise ValidationError(f"Month must look like YYYY-MM, got {month!r}")
    year, mon = int(match.group(1)), int(match.group(2))
    tz = ZoneInfo(tz_name)
    start = datetime(year, mon, 1, tzinfo=tz)
    end = datetime(year + 1, 1, 1, tzinfo=tz) if mon == 12 else datetime(year, mon + 1, 1, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def filtered_query(
    db: Session,
    *,
    customer_name: str | None = None,
    month: str | None = None,
    status: str | None = None,
    tz_name: str = "UTC",
) -> Query:
    query = db.query(Ticket)
    if customer_name:
        query = query.filter(Ticket.customer_name == customer_name)
    if month:
        start, end = month_bounds(month, tz_name)
        query = query.filter(Ticket.created_at >= start, Ticket.created_at < end)
    if status:
        query = query.filter(Ticket.status == status)
    return query


def _with_comments(query: Query) -> Query:
    return query.options(selectinload(Ticket.comments))


def get_ticket(db: Session, ticket_id: int) -> Ticket:
    ticket = _with_comments(db.query(Ticket)).filter(Ticket.id == ticket_id).first()
    if not ticket:
        raise NotFoundError("Request not found")
    return ticket


def submit(
    db: Session,
    payload: TicketCreate,
    uploads: list[ImageUpload],
    *,
    store: AttachmentStore,
    mailer: Mailer,
    tasks: BackgroundTasks,
    settings: Settings,
) -> Ticket:
    images = process_uploads(uploads, settings)
    names = store_all(store, images)
    ticket = Ticket(
        customer_name=payload.customer_name,
        user_name=payload.user_name,
        password_hash=hash_secret(payload.password, settings.BCRYPT_ROUNDS),
        email=payload.email,
        content=payload.content,
        images=names,
        status=TicketStatus.OPEN.value,
    )
    try:
        db.add(ticket)
        db.commit()
    except Exception:
        db.rollback()
        delete_best_effort(store, names)
        raise
    db.refresh(ticket)
    log.info("ticket.submitted", ticket_id=ticket.id, images=len(names))

    snapshot = TicketSnapshot.from_ticket(ticket)
    if ticket.email:
        tasks.add_task(mailer.send_submission_confirmation, ticket.email, snapshot)
    tasks.add_task(mailer.send_admin_notification, snapshot)
    return get_ticket(db, ticket.id)


def authenticate(db: Session, user_name: str, password: str, *, strict: bool = True) -> list[Ticket]:
    """
    Tickets a submitter may see after proving a secret.

    Every candidate with `user_name` is checked independently. With `strict`
    only the tickets whose own secret matches are returned; otherwise one
    match unlocks every ticket filed under that name.
    """
    tickets = (
        _with_comments(db.query(Ticket))
        .filter(Ticket.user_name == user_name)
        .order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .all()
    )
    if not tickets:
        raise NotFoundError("No requests were found for this name")
    matched = [ticket for ticket in tickets if verify_secret(password, ticket.password_hash)]
    if not matched:
        log.info("ticket.owner_auth_failed", user_name=user_name)
        raise AuthError("Password does not match")
    return matched if strict else tickets


def self_update(
    db: Session,
    ticket_id: int,
    payload: TicketSelfUpdate,
    uploads: list[ImageUpload],
    *,
    store: AttachmentStore,
    tasks: BackgroundTasks,
    settings: Settings,
) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    images = process_uploads(uploads, settings)

    current = list(ticket.images)
    kept = [name for name in dict.fromkeys(payload.existing_images) if name in current]
    dropped = [name for name in current if name not in kept]
    added = store_all(store, images)

    ticket.customer_name = payload.customer_name
    ticket.user_name = payload.user_name
    ticket.email = payload.email
    ticket.content = payload.content
    ticket.images = kept + added
    ticket.updated_at = utcnow()
    try:
        db.commit()
    except Exception:
        db.rollback()
        delete_best_effort(store, added)
        raise
    log.info("ticket.self_updated", ticket_id=ticket_id, added=len(added), dropped=len(dropped))

    if dropped:
        tasks.add_task(delete_best_effort, store, dropped)
    return get_ticket(db, ticket_id)


def _delete(db: Session, ticket: Ticket, *, store: AttachmentStore, tasks: BackgroundTasks) -> None:
    names = list(ticket.images)
    db.delete(ticket)
    db.commit()
    if names:
        tasks.add_task(delete_best_effort, store, names)


def self_delete(
    db: Session,
    ticket_id: int,
    password: str,
    *,
    store: AttachmentStore,
    tasks: BackgroundTasks,
) -> None:
    ticket = get_ticket(db, ticket_id)
    if not verify_secret(password, ticket.password_hash):
        log.info("ticket.self_delete_denied", ticket_id=ticket_id)
        raise AuthError("Password does not match")
    _delete(db, ticket, store=store, tasks=tasks)
    log.info("ticket.self_deleted", ticket_id=ticket_id)


def admin_list(
    db: Session,
    *,
    sort: str | None = None,
    order: str | None = None,
    customer_name: str | None = None,
    month: str | None = None,
    tz_name: str = "UTC",
) -> list[Ticket]:
    column = SORT_COLUMNS.get(sort or "", SORT_COLUMNS[DEFAULT_SORT])
    direction = (order or "").lower()
    if direction not in ("asc", "desc"):
        direction = DEFAULT_ORDER
    # same direction on the tie-breaker keeps asc/desc exact mirrors
    if direction == "asc":
        ordering = (column.asc(), Ticket.id.asc())
    else:
        ordering = (column.desc(), Ticket.id.desc())
    query = filtered_query(db, customer_name=customer_name, month=month, tz_name=tz_name)
    return _with_comments(query).order_by(*ordering).all()


def list_customers(db: Session) -> list[str]:
    rows = db.query(Ticket.customer_name).distinct().order_by(Ticket.customer_name.asc()).all()
    return [row[0] for row in rows]


def admin_update(
    db: Session,
    ticket_id: int,
    *,
    status: TicketStatus | None = None,
    comment: str | None = None,
    mailer: Mailer,
    tasks: BackgroundTasks,
) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    previous_status = ticket.status
    changed = False

    if status is not None:
        ticket.status = TicketStatus(status).value
        ticket.updated_at = utcnow()
        changed = True
    if comment and comment.strip():
        ticket.comments.append(Comment(comment=comment))
        changed = True
    if changed:
        db.commit()
        log.info("ticket.admin_updated", ticket_id=ticket_id, status=ticket.status)

    if status is not None and ticket.status != previous_status and ticket.email:
        snapshot = TicketSnapshot.from_ticket(ticket)
        tasks.add_task(mailer.send_status_update, ticket.email, snapshot, ticket.status)

    db.expire_all()
    return get_ticket(db, ticket_id)


def admin_delete(db: Session, ticket_id: int, *, store: AttachmentStore, tasks: BackgroundTasks) -> None:
    ticket = get_ticket(db, ticket_id)
    _delete(db, ticket, store=store, tasks=tasks)
    log.info("ticket.admin_deleted", ticket_id=ticket_id)
