# marketplace/api/routers/livreurs.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from marketplace.api.dependencies import get_notification_service, require_roles
from marketplace.data.database import get_db
from marketplace.domain.constants import Role
from marketplace.domain.exceptions import DomainError
from marketplace.domain.schemas import CurrentUser, LivreurCreate, LivreurOut, LivreurStatusIn
from marketplace.services.livreur_service import LivreurService

router = APIRouter(prefix="/livreurs", tags=["livreurs"])

admin_only = require_roles(Role.ADMIN)


def get_service(
    db: Session = Depends(get_db),
    notification_service=Depends(get_notification_service),
):
    return LivreurService(db, notification_service)


@router.post("/", response_model=LivreurOut, status_code=201)
def register_livreur(
    payload: LivreurCreate,
    user: CurrentUser = Depends(admin_only),
    svc: LivreurService = Depends(get_service),
):
    """Rejestracja kuriera - startuje w statusie pending."""
    try:
        return svc.register_livreur(payload)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{user_id}/status", response_model=LivreurOut)
def set_status(
    user_id: int,
    payload: LivreurStatusIn,
    user: CurrentUser = Depends(admin_only),
    svc: LivreurService = Depends(get_service),
):
    try:
        return svc.set_status(user_id, payload.status)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
