# marketplace/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from marketplace.domain.constants import (
    LivreurStatus,
    OrderStatus,
    PaymentMethod,
    RefusalReason,
    Role,
    VehicleType,
)
from marketplace.domain.order_state import GeoPoint


class CamelInModel(BaseModel):
    """Body requestu - przyjmuje camelCase (frontend) i snake_case."""

    model_config = ConfigDict(populate_by_name=True)


# =====================================================
# USERS
# =====================================================
class UserCreate(BaseModel):
    """Schema dla tworzenia użytkownika."""

    id: int = Field(..., gt=0, description="ID użytkownika (musi być > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Imię i nazwisko")
    phone: Optional[str] = None
    email: Optional[str] = None
    role: Role = Role.USER


class UserRead(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    role: str

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# ORDERS
# =====================================================
class OrderItemIn(CamelInModel):
    product_id: int = Field(..., gt=0, alias="productId")
    title: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    discount: Decimal = Field(Decimal("0"), ge=0, le=100, description="Rabat w procentach")
    vendor_id: Optional[int] = Field(None, alias="vendorId")


class ShippingAddressIn(CamelInModel):
    recipient_name: Optional[str] = Field(None, alias="recipientName")
    phone: Optional[str] = None
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1, alias="postalCode")
    country: str = "Tunisie"
    instructions: Optional[str] = None


class OrderCreate(CamelInModel):
    """Schema dla tworzenia zamówienia (koniec checkoutu)."""

    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping_address: ShippingAddressIn = Field(..., alias="shippingAddress")
    vendor_id: Optional[int] = Field(None, alias="vendorId")
    shipping_cost: Decimal = Field(Decimal("0"), ge=0, alias="shippingCost")
    tax: Decimal = Field(Decimal("0"), ge=0)
    discount: Decimal = Field(Decimal("0"), ge=0)
    payment_method: PaymentMethod = Field(PaymentMethod.CASH_ON_DELIVERY, alias="paymentMethod")
    customer_notes: Optional[str] = Field(None, alias="customerNotes")


class OrderItemOut(BaseModel):
    product_id: int
    vendor_id: Optional[int] = None
    title: Optional[str] = None
    price: Decimal
    quantity: int
    discount: Decimal
    subtotal: Decimal

    model_config = ConfigDict(from_attributes=True)


class StatusHistoryOut(BaseModel):
    status: str
    date: datetime
    note: Optional[str] = None
    updated_by: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class ShippingAddressOut(BaseModel):
    recipient_name: Optional[str] = None
    phone: Optional[str] = None
    street: str
    city: str
    postal_code: str
    country: str
    instructions: Optional[str] = None


class OrderOut(BaseModel):
    """Pelny widok zamowienia (klient, admin)."""

    id: int
    order_number: str
    client_code: str
    delivery_code: str
    user_id: int
    vendor_id: Optional[int] = None
    livreur_id: Optional[int] = None
    status: str
    items: List[OrderItemOut]
    status_history: List[StatusHistoryOut]
    shipping_address: ShippingAddressOut
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal
    payment_method: str
    payment_status: str
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    delivery_attempts: int = 0
    assigned_to_livreur_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    delivery_proof: Optional[dict] = None
    refusal_info: Optional[dict] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    refund_status: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    customer_notes: Optional[str] = None
    created_at: datetime


class VendorShippingOut(BaseModel):
    # bez nazwiska i telefonu odbiorcy
    street: str
    city: str
    postal_code: str
    country: str
    instructions: Optional[str] = None


class VendorOrderOut(BaseModel):
    """Widok dla sprzedawcy - klient widoczny tylko jako client_code."""

    id: int
    order_number: str
    client_code: str
    delivery_code: str
    status: str
    items: List[OrderItemOut]
    shipping_address: VendorShippingOut
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal
    livreur_id: Optional[int] = None
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    created_at: datetime


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total: int


class OrderPage(BaseModel):
    orders: List[OrderOut]
    pagination: Pagination


class VendorOrderPage(BaseModel):
    orders: List[VendorOrderOut]
    pagination: Pagination


class CancelIn(CamelInModel):
    reason: Optional[str] = Field(None, max_length=500)


class RefundIn(CamelInModel):
    amount: Optional[Decimal] = Field(None, ge=0)
    reason: Optional[str] = Field(None, max_length=500)


class ShipIn(CamelInModel):
    carrier: Optional[str] = None
    tracking_number: Optional[str] = Field(None, alias="trackingNumber")


# =====================================================
# ASSIGNMENT
# =====================================================
class AssignIn(CamelInModel):
    livreur_id: int = Field(..., gt=0, alias="livreurId", description="ID uzytkownika-kuriera")


class UnassignIn(CamelInModel):
    reason: Optional[str] = Field(None, max_length=500)


class AssignedOrderSummary(BaseModel):
    id: int
    order_number: str
    status: str
    delivery_code: str


class LivreurContact(BaseModel):
    livreur_id: int
    name: str
    phone: Optional[str] = None
    vehicle_type: str


class AssignmentResult(BaseModel):
    order: AssignedOrderSummary
    livreur: LivreurContact


class UnassignResult(BaseModel):
    order: AssignedOrderSummary
    previous_livreur_id: int


class LivreurStatsOut(BaseModel):
    total_deliveries: int
    successful_deliveries: int
    failed_deliveries: int
    success_rate: int
    rating: float
    average_delivery_time: float


class AvailableLivreurOut(BaseModel):
    id: int
    user_id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    vehicle_type: str
    zone: str
    additional_zones: List[str]
    current_orders_count: int
    max_orders: int
    stats: LivreurStatsOut


class AvailableLivreurList(BaseModel):
    livreurs: List[AvailableLivreurOut]
    total: int


# =====================================================
# LIVREUR (kurier)
# =====================================================
class LivreurCreate(CamelInModel):
    user_id: int = Field(..., gt=0, alias="userId")
    zone: str = Field(..., min_length=1)
    additional_zones: List[str] = Field(default_factory=list, alias="additionalZones")
    vehicle_type: VehicleType = Field(VehicleType.MOTO, alias="vehicleType")
    max_orders_at_once: Optional[int] = Field(None, ge=1, alias="maxOrdersAtOnce")


class LivreurStatusIn(CamelInModel):
    status: LivreurStatus


class AvailabilityIn(CamelInModel):
    is_available: bool = Field(..., alias="isAvailable")


class LivreurOut(BaseModel):
    id: int
    user_id: int
    vehicle_type: str
    zone: str
    additional_zones: List[str]
    is_available: bool
    status: str
    max_orders_at_once: int
    current_order_ids: List[int]
    total_deliveries: int
    successful_deliveries: int
    failed_deliveries: int
    average_delivery_time: float
    rating: float
    success_rate: int

    model_config = ConfigDict(from_attributes=True)


class CourierStatusUpdate(CamelInModel):
    status: OrderStatus
    note: Optional[str] = Field(None, max_length=500)
    photo: Optional[str] = None
    signature: Optional[str] = None
    location: Optional[GeoPoint] = None
    refusal_reason: Optional[RefusalReason] = Field(None, alias="refusalReason")
    refusal_details: Optional[str] = Field(None, alias="refusalDetails")


class DeliveryCustomer(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None


class ScannedOrderOut(BaseModel):
    id: int
    order_number: str
    delivery_code: str
    status: str
    total_amount: Decimal
    payment_method: str
    payment_status: str
    items: List[OrderItemOut]
    shipping_address: ShippingAddressOut
    customer: DeliveryCustomer
    vendor_id: Optional[int] = None
    customer_notes: Optional[str] = None
    created_at: datetime


class TodayStats(BaseModel):
    delivered: int
    pending: int


class LivreurDashboard(BaseModel):
    livreur: LivreurOut
    today_stats: TodayStats


class DeliveryHistoryEntry(BaseModel):
    id: int
    order_number: str
    status: str
    total_amount: Decimal
    delivered_at: Optional[datetime] = None
    city: str

    model_config = ConfigDict(from_attributes=True)


class DeliveryHistoryPage(BaseModel):
    orders: List[DeliveryHistoryEntry]
    pagination: Pagination


# =====================================================
# IDENTITY
# =====================================================
class CurrentUser(BaseModel):
    """Tozsamosc z gatewaya: {id, role}."""

    id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN, Role.MODERATOR)
