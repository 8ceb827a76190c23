# app/ticket/schemas.py
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.ticket.models import TicketStatus, normalize_attachments


class TicketFields(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    user_name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    content: str = Field(..., min_length=1)

    @field_validator("customer_name", "user_name", "content", mode="before")
    @classmethod
    def strip_required(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class TicketCreate(TicketFields):
    password: str = Field(..., min_length=1)


class TicketSelfUpdate(TicketFields):
    existing_images: list[str] = Field(default_factory=list)

    @field_validator("existing_images", mode="before")
    @classmethod
    def split_existing(cls, value):
        # repeated form fields or one comma separated value
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        names = []
        for item in value:
            names.extend(part.strip() for part in str(item).split(",") if part.strip())
        return names


class OwnerAuth(BaseModel):
    user_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SecretIn(BaseModel):
    password: str = Field(..., min_length=1)


class CommentOut(BaseModel):
    id: int
    request_id: int
    comment: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TicketOut(BaseModel):
    id: int
    customer_name: str
    user_name: str
    email: str | None = None
    content: str
    images: list[str] = Field(default_factory=list)
    status: TicketStatus
    created_at: datetime
    updated_at: datetime
    comments: list[CommentOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @field_validator("images", mode="before")
    @classmethod
    def normalize_images(cls, value):
        return normalize_attachments(value)
