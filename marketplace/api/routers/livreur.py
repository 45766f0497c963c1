# marketplace/api/routers/livreur.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from marketplace.api.dependencies import get_notification_service, require_roles
from marketplace.data.database import get_db
from marketplace.domain.constants import OrderStatus, Role
from marketplace.domain.exceptions import DomainError
from marketplace.domain.schemas import (
    AvailabilityIn,
    CourierStatusUpdate,
    CurrentUser,
    DeliveryHistoryPage,
    LivreurDashboard,
    LivreurOut,
    OrderOut,
    OrderPage,
    ScannedOrderOut,
)
from marketplace.services.livreur_service import LivreurService

router = APIRouter(prefix="/livreur", tags=["livreur"])

courier = require_roles(Role.LIVREUR)
courier_or_admin = require_roles(Role.LIVREUR, Role.ADMIN)


def get_service(
    db: Session = Depends(get_db),
    notification_service=Depends(get_notification_service),
):
    return LivreurService(db, notification_service)


@router.put("/orders/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: CourierStatusUpdate,
    user: CurrentUser = Depends(courier),
    svc: LivreurService = Depends(get_service),
):
    """Kurier przesuwa zamowienie po tabeli przejsc (tylko swoje)."""
    try:
        return svc.update_order_status(user, order_id, payload)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/scan/{code}", response_model=ScannedOrderOut)
def scan(
    code: str,
    user: CurrentUser = Depends(courier_or_admin),
    svc: LivreurService = Depends(get_service),
):
    try:
        return svc.scan(user, code)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/dashboard", response_model=LivreurDashboard)
def dashboard(
    user: CurrentUser = Depends(courier_or_admin),
    svc: LivreurService = Depends(get_service),
):
    try:
        return svc.dashboard(user)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/orders", response_model=OrderPage)
def my_orders(
    status: OrderStatus | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(courier_or_admin),
    svc: LivreurService = Depends(get_service),
):
    return svc.my_orders(user, status, page, limit)


@router.get("/history", response_model=DeliveryHistoryPage)
def history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(courier_or_admin),
    svc: LivreurService = Depends(get_service),
):
    return svc.history(user, page, limit)


@router.put("/availability", response_model=LivreurOut)
def update_availability(
    payload: AvailabilityIn,
    user: CurrentUser = Depends(courier),
    svc: LivreurService = Depends(get_service),
):
    try:
        return svc.update_availability(user, payload.is_available)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
