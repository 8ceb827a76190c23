# app/guide/services.py
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.guide.models import Guide
from app.guide.schemas import GuideIn


def get_all_guides(db: Session) -> list[Guide]:
    return db.query(Guide).order_by(Guide.created_at.desc(), Guide.id.desc()).all()


def get_guide(db: Session, guide_id: int) -> Guide:
    guide = db.query(Guide).filter(Guide.id == guide_id).first()
    if not guide:
        raise NotFoundError("Guide not found")
    return guide


def create_guide(db: Session, payload: GuideIn) -> Guide:
    db_guide = Guide(**payload.model_dump())
    db.add(db_guide)
    db.commit()
    db.refresh(db_guide)
    return db_guide


def update_guide(db: Session, guide_id: int, payload: GuideIn) -> Guide:
    db_guide = get_guide(db, guide_id)
    for field, value in payload.model_dump().items():
        setattr(db_guide, field, value)
    db.commit()
    db.refresh(db_guide)
    return db_guide


def delete_guide(db: Session, guide_id: int) -> None:
    db_guide = get_guide(db, guide_id)
    db.delete(db_guide)
    db.commit()
