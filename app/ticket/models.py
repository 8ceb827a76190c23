# app/ticket/models.py
import json
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from app.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"


def normalize_attachments(value) -> list[str]:
    """Coerce a stored attachment field into a list of names; never raises."""
    if value is None:
        return []
    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str) and item]


class AttachmentList(TypeDecorator):
    """Ordered attachment names, stored as a JSON array in a text column."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return json.dumps(normalize_attachments(value))

    def process_result_value(self, value, dialect):
        return normalize_attachments(value)


class Ticket(Base):
    __tablename__ = "requests"

    id = Column(Integer, primary_key=True, index=True)
    customer_name = Column(String(255), index=True, nullable=False)
    user_name = Column(String(255), index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    images = Column(AttachmentList, nullable=False, default=list)
    status = Column(String(32), default=TicketStatus.OPEN.value, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    comments = relationship(
        "Comment",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by=lambda: (Comment.created_at, Comment.id),
    )


class Comment(Base):
    """Administrator remark on a ticket."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(
        Integer, ForeignKey("requests.id", ondelete="CASCADE"), index=True, nullable=False
    )
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    ticket = relationship("Ticket", back_populates="comments")
