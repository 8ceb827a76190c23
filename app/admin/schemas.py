# app/admin/schemas.py
from pydantic import BaseModel, Field

from app.ticket.models import TicketStatus


class LoginIn(BaseModel):
    id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenOut(BaseModel):
    token: str


class AdminTicketUpdate(BaseModel):
    status: TicketStatus | None = None
    comment: str | None = None


class AdminPrincipal(BaseModel):
    id: str
    role: str
