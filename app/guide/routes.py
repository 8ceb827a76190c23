# app/guide/routes.py
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.admin.deps import require_admin
from app.core.database import get_db
from app.guide import services as guide_service
from app.guide.schemas import GuideIn, GuideOut

router = APIRouter(prefix="/guide", tags=["Guides"])


@router.get("", response_model=list[GuideOut])
def list_all(db: Session = Depends(get_db)):
    return guide_service.get_all_guides(db)


@router.get("/{guide_id}", response_model=GuideOut)
def get(guide_id: int, db: Session = Depends(get_db)):
    return guide_service.get_guide(db, guide_id)


@router.post("", response_model=GuideOut, status_code=201, dependencies=[Depends(require_admin)])
def create(guide: GuideIn, db: Session = Depends(get_db)):
    return guide_service.create_guide(db, guide)


@router.put("/{guide_id}", response_model=GuideOut, dependencies=[Depends(require_admin)])
def update(guide_id: int, guide: GuideIn, db: Session = Depends(get_db)):
    return guide_service.update_guide(db, guide_id, guide)


@router.delete("/{guide_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete(guide_id: int, db: Session = Depends(get_db)):
    guide_service.delete_guide(db, guide_id)
    return Response(status_code=204)
