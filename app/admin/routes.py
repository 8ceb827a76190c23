# app/admin/routes.py
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response
from sqlalchemy.orm import Session

from app.admin import services as admin_service
from app.admin.deps import require_admin
from app.admin.schemas import AdminTicketUpdate, LoginIn, TokenOut
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.mailer import Mailer, get_mailer
from app.core.storage import AttachmentStore, get_attachment_store
from app.ticket import services as ticket_service
from app.ticket.schemas import TicketOut

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, settings: Settings = Depends(get_settings)):
    return TokenOut(token=admin_service.login(payload.id, payload.password, settings))


@router.get("/requests", response_model=list[TicketOut], dependencies=[Depends(require_admin)])
def list_requests(
    sort: str | None = Query(default=None, alias="_sort"),
    order: str | None = Query(default=None, alias="_order"),
    customer_name: str | None = Query(default=None, alias="customerName"),
    month: str | None = Query(default=None, description="YYYY-MM"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return ticket_service.admin_list(
        db,
        sort=sort,
        order=order,
        customer_name=customer_name,
        month=month,
        tz_name=settings.REPORT_TIMEZONE,
    )


@router.get("/customers", response_model=list[str], dependencies=[Depends(require_admin)])
def customers(db: Session = Depends(get_db)):
    return ticket_service.list_customers(db)


@router.put("/requests/{ticket_id}", response_model=TicketOut, dependencies=[Depends(require_admin)])
def update_request(
    ticket_id: int,
    payload: AdminTicketUpdate,
    tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    return ticket_service.admin_update(
        db,
        ticket_id,
        status=payload.status,
        comment=payload.comment,
        mailer=mailer,
        tasks=tasks,
    )


@router.delete("/requests/{ticket_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_request(
    ticket_id: int,
    tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    store: AttachmentStore = Depends(get_attachment_store),
):
    ticket_service.admin_delete(db, ticket_id, store=store, tasks=tasks)
    return Response(status_code=204)
