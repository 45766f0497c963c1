# marketplace/api/routers/orders.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from marketplace.api.dependencies import (
    get_current_user,
    get_notification_service,
    get_product_client,
    require_roles,
)
from marketplace.data.database import get_db
from marketplace.domain.constants import Role
from marketplace.domain.exceptions import DomainError
from marketplace.domain.schemas import CancelIn, CurrentUser, OrderCreate, OrderOut, RefundIn
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    notification_service=Depends(get_notification_service),
    product_client=Depends(get_product_client),
):
    return OrderService(db, notification_service, product_client)


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user: CurrentUser = Depends(require_roles(Role.USER)),
    svc: OrderService = Depends(get_service),
):
    """
    Tworzy zamówienie (koniec checkoutu).
    Wysyła powiadomienie asynchronicznie.
    """
    try:
        return svc.create_order(user, payload)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(get_service),
):
    """
    Pobiera szczegóły zamówienia.
    """
    try:
        return svc.get_order(order_id, user)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    payload: CancelIn,
    user: CurrentUser = Depends(require_roles(Role.USER, Role.VENDOR, Role.ADMIN)),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.cancel_order(order_id, user, payload.reason)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{order_id}/refund", response_model=OrderOut)
def refund_order(
    order_id: int,
    payload: RefundIn,
    user: CurrentUser = Depends(require_roles(Role.ADMIN)),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.refund_order(order_id, user, payload.amount, payload.reason)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
