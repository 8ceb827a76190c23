# app/ticket/routes.py
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Response, UploadFile
from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.errors import ValidationError
from app.core.images import read_uploads
from app.core.mailer import Mailer, get_mailer
from app.core.storage import AttachmentStore, get_attachment_store
from app.ticket import services as ticket_service
from app.ticket.schemas import OwnerAuth, SecretIn, TicketCreate, TicketOut, TicketSelfUpdate

router = APIRouter(prefix="/requests", tags=["Requests"])


def _first_error(exc: SchemaError) -> str:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ()))
    return f"{field}: {error.get('msg')}" if field else error.get("msg", "Invalid input")


@router.post("", response_model=TicketOut, status_code=201)
def create(
    tasks: BackgroundTasks,
    customer_name: str | None = Form(None),
    user_name: str | None = Form(None),
    password: str | None = Form(None),
    email: str | None = Form(None),
    content: str | None = Form(None),
    images: list[UploadFile] | None = File(None),
    db: Session = Depends(get_db),
    store: AttachmentStore = Depends(get_attachment_store),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    try:
        payload = TicketCreate(
            customer_name=customer_name,
            user_name=user_name,
            password=password,
            email=email,
            content=content,
        )
    except SchemaError as exc:
        raise ValidationError(_first_error(exc)) from exc
    return ticket_service.submit(
        db,
        payload,
        read_uploads(images, max_bytes=settings.MAX_UPLOAD_BYTES),
        store=store,
        mailer=mailer,
        tasks=tasks,
        settings=settings,
    )


@router.post("/auth", response_model=list[TicketOut])
def authenticate(
    payload: OwnerAuth,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return ticket_service.authenticate(
        db, payload.user_name, payload.password, strict=settings.STRICT_OWNER_AUTH
    )


@router.get("/{ticket_id}", response_model=TicketOut)
def get(ticket_id: int, db: Session = Depends(get_db)):
    return ticket_service.get_ticket(db, ticket_id)


@router.put("/{ticket_id}", response_model=TicketOut)
def update(
    ticket_id: int,
    tasks: BackgroundTasks,
    customer_name: str | None = Form(None),
    user_name: str | None = Form(None),
    email: str | None = Form(None),
    content: str | None = Form(None),
    existing_images: list[str] | None = Form(None, alias="existingImages"),
    images: list[UploadFile] | None = File(None),
    db: Session = Depends(get_db),
    store: AttachmentStore = Depends(get_attachment_store),
    settings: Settings = Depends(get_settings),
):
    try:
        payload = TicketSelfUpdate(
            customer_name=customer_name,
            user_name=user_name,
            email=email,
            content=content,
            existing_images=existing_images,
        )
    except SchemaError as exc:
        raise ValidationError(_first_error(exc)) from exc
    return ticket_service.self_update(
        db,
        ticket_id,
        payload,
        read_uploads(images, max_bytes=settings.MAX_UPLOAD_BYTES),
        store=store,
        tasks=tasks,
        settings=settings,
    )


@router.delete("/{ticket_id}", status_code=204)
def delete(
    ticket_id: int,
    payload: SecretIn,
    tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    store: AttachmentStore = Depends(get_attachment_store),
):
    ticket_service.self_delete(db, ticket_id, payload.password, store=store, tasks=tasks)
    return Response(status_code=204)
