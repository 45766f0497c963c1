# marketplace/api/routers/vendor.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from marketplace.api.dependencies import get_notification_service, get_product_client, require_roles
from marketplace.data.database import get_db
from marketplace.domain.constants import Role
from marketplace.domain.exceptions import DomainError
from marketplace.domain.schemas import CurrentUser, ShipIn, VendorOrderOut, VendorOrderPage
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/vendor", tags=["vendor"])

vendor_only = require_roles(Role.VENDOR, Role.ADMIN)


def get_service(
    db: Session = Depends(get_db),
    notification_service=Depends(get_notification_service),
    product_client=Depends(get_product_client),
):
    return OrderService(db, notification_service, product_client)


@router.get("/orders", response_model=VendorOrderPage)
def list_orders(
    status: str | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(vendor_only),
    svc: OrderService = Depends(get_service),
):
    """Zamowienia sprzedawcy - klient widoczny tylko jako client_code."""
    return svc.list_vendor_orders(user, status, search, page, limit)


@router.get("/orders/{order_id}", response_model=VendorOrderOut)
def get_order(
    order_id: int,
    user: CurrentUser = Depends(vendor_only),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.get_vendor_order(order_id, user)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/orders/{order_id}/confirm", response_model=VendorOrderOut)
def confirm_order(
    order_id: int,
    user: CurrentUser = Depends(vendor_only),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.confirm_order(order_id, user)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/orders/{order_id}/process", response_model=VendorOrderOut)
def process_order(
    order_id: int,
    user: CurrentUser = Depends(vendor_only),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.process_order(order_id, user)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/orders/{order_id}/ship", response_model=VendorOrderOut)
def ship_order(
    order_id: int,
    payload: ShipIn,
    user: CurrentUser = Depends(vendor_only),
    svc: OrderService = Depends(get_service),
):
    """Zamowienie gotowe do wysylki - czeka na kuriera."""
    try:
        return svc.ship_order(order_id, user, payload.carrier, payload.tracking_number)
    except DomainError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
