# app/report/services.py
import io
import re
from collections import Counter
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.ticket.models import Ticket
from app.ticket.services import filtered_query

ALL_PLACEHOLDER = "all"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

COLUMNS = [
    ("ID", 10),
    ("Created At", 20),
    ("Customer", 20),
    ("Submitter", 15),
    ("Status", 12),
    ("Content", 40),
    ("Remarks", 50),
]

_TAG_RE = re.compile(r"<[^>]*>?")
_SHEET_FORBIDDEN_RE = re.compile(r"[\[\]:*?/\\]")


def strip_html_tags(html: str | None) -> str:
    if not html:
        return ""
    return _TAG_RE.sub("", html)


def cell_text(value: str | None) -> str:
    """Drop control characters the xlsx format cannot hold."""
    if not value:
        return ""
    return ILLEGAL_CHARACTERS_RE.sub("", value)


def as_local(value: datetime, tz_name: str) -> datetime:
    # sqlite hands back naive values; they were written as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name))


def summary(
    db: Session,
    *,
    customer_name: str | None = None,
    month: str | None = None,
    tz_name: str = "UTC",
) -> dict:
    query = filtered_query(db, customer_name=customer_name, month=month, tz_name=tz_name)
    status_rows = (
        query.with_entities(Ticket.status, func.count(Ticket.id))
        .group_by(Ticket.status)
        .order_by(Ticket.status)
        .all()
    )
    monthly: list[dict] = []
    if not month:
        counts = Counter(
            as_local(created_at, tz_name).strftime("%Y-%m")
            for (created_at,) in query.with_entities(Ticket.created_at).all()
        )
        monthly = [{"month": key, "count": counts[key]} for key in sorted(counts)]
    return {
        "status": [{"status": status, "count": count} for status, count in status_rows],
        "monthly": monthly,
    }


def report_names(customer_name: str | None, month: str | None) -> tuple[str, str]:
    """Return (file name, sheet title) for the active filters."""
    customer_part = customer_name or ALL_PLACEHOLDER
    month_part = month or ALL_PLACEHOLDER
    filename = f"{customer_part}-{month_part}-report.xlsx"
    title = _SHEET_FORBIDDEN_RE.sub("_", f"{customer_part}-{month_part} support details")
    # Excel caps sheet titles at 31 characters
    return filename, title[:31]


def export_table(
    db: Session,
    *,
    customer_name: str | None = None,
    month: str | None = None,
    status: str | None = None,
    tz_name: str = "UTC",
) -> tuple[str, bytes]:
    tickets = (
        filtered_query(db, customer_name=customer_name, month=month, status=status, tz_name=tz_name)
        .options(selectinload(Ticket.comments))
        .order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .all()
    )
    filename, title = report_names(customer_name, month)

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title
    sheet.append([header for header, _ in COLUMNS])
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for index, (_, width) in enumerate(COLUMNS, start=1):
        sheet.column_dimensions[sheet.cell(row=1, column=index).column_letter].width = width

    for ticket in tickets:
        remarks = "\n".join(strip_html_tags(comment.comment) for comment in ticket.comments)
        sheet.append(
            [
                ticket.id,
                as_local(ticket.created_at, tz_name).strftime("%Y-%m-%d %H:%M:%S"),
                cell_text(ticket.customer_name),
                cell_text(ticket.user_name),
                ticket.status,
                cell_text(strip_html_tags(ticket.content)),
                cell_text(remarks),
            ]
        )
        # submitted text is data; a leading "=" must not turn into a formula
        for cell in sheet[sheet.max_row][2:]:
            cell.data_type = "s"

    buffer = io.BytesIO()
    workbook.save(buffer)
    return filename, buffer.getvalue()
