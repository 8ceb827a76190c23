# app/report/routes.py
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.admin.deps import require_admin
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.report import services as report_service

router = APIRouter(
    prefix="/admin/reports",
    tags=["Reports"],
    dependencies=[Depends(require_admin)],
)


@router.get("/summary")
def summary(
    customer_name: str | None = Query(default=None, alias="customerName"),
    month: str | None = Query(default=None, description="YYYY-MM"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return report_service.summary(
        db, customer_name=customer_name, month=month, tz_name=settings.REPORT_TIMEZONE
    )


@router.get("/excel")
def excel(
    customer_name: str | None = Query(default=None, alias="customerName"),
    month: str | None = Query(default=None, description="YYYY-MM"),
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    filename, data = report_service.export_table(
        db,
        customer_name=customer_name,
        month=month,
        status=status,
        tz_name=settings.REPORT_TIMEZONE,
    )
    quoted = quote(filename)
    return Response(
        content=data,
        media_type=report_service.XLSX_CONTENT_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=\"{quoted}\"; filename*=UTF-8''{quoted}"
        },
    )
