# marketplace/api/routers/assignment.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from marketplace.api.dependencies import get_lock_service, get_notification_service, require_roles
from marketplace.data.database import get_db
from marketplace.domain.constants import Role
from marketplace.domain.exceptions import DomainError
from marketplace.domain.schemas import (
    AssignIn,
    AssignmentResult,
    AvailableLivreurList,
    CurrentUser,
    UnassignIn,
    UnassignResult,
    VendorOrderPage,
)
from marketplace.services.assignment_service import AssignmentService

router = APIRouter(prefix="/assignment", tags=["assignment"])

dispatchers = require_roles(Role.ADMIN, Role.VENDOR, Role.MODERATOR)


def get_service(
    db: Session = Depends(get_db),
    lock_service=Depends(get_lock_service),
    notification_service=Depends(get_notification_service),
):
    return AssignmentService(db, lock_service, notification_service)


@router.get("/livreurs", response_model=AvailableLivreurList)
def list_available_livreurs(
    zone: str | None = Query(None),
    city: str | None = Query(None),
    user: CurrentUser = Depends(dispatchers),
    svc: AssignmentService = Depends(get_service),
):
    """Kurierzy, ktorzy moga przyjac zamowienie."""
    return svc.list_available_livreurs(zone=zone, city=city)


@router.get("/orders/ready", response_model=VendorOrderPage)
def list_ready_orders(
    city: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(dispatchers),
    svc: AssignmentService = Depends(get_service),
):
    return svc.list_ready_orders(user, city, page, limit)


@router.put("/orders/{order_id}/assign", response_model=AssignmentResult)
def assign_order(
    order_id: int,
    payload: AssignIn,
    user: CurrentUser = Depends(dispatchers),
    svc: AssignmentService = Depends(get_service),
):
    """
    Reczne przypisanie zamowienia ready_to_ship do kuriera.
    409 gdy inna operacja przypisuje to samo zamowienie.
    """
    try:
        return svc.assign_order_to_livreur(order_id, payload.livreur_id, user)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/orders/{order_id}/auto-assign", response_model=AssignmentResult)
def auto_assign_order(
    order_id: int,
    user: CurrentUser = Depends(dispatchers),
    svc: AssignmentService = Depends(get_service),
):
    try:
        return svc.auto_assign_order(order_id, user)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/orders/{order_id}/unassign", response_model=UnassignResult)
def unassign_order(
    order_id: int,
    payload: UnassignIn,
    user: CurrentUser = Depends(require_roles(Role.ADMIN)),
    svc: AssignmentService = Depends(get_service),
):
    try:
        return svc.unassign_order(order_id, payload.reason, user)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
