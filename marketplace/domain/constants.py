# marketplace/domain/constants.py
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    READY_TO_SHIP = "ready_to_ship"
    ASSIGNED_TO_DELIVERY = "assigned_to_delivery"
    PICKED_UP = "picked_up"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    DELIVERY_ATTEMPTED = "delivery_attempted"
    REFUSED = "refused"
    RETURNED = "returned"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class LivreurStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class Role(str, Enum):
    USER = "user"
    VENDOR = "vendor"
    ADMIN = "admin"
    MODERATOR = "moderator"
    LIVREUR = "livreur"


class PaymentMethod(str, Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    USDT = "usdt"
    POSTE_TUNISIENNE = "poste_tunisienne"
    CASH_ON_DELIVERY = "cash_on_delivery"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class VehicleType(str, Enum):
    MOTO = "moto"
    VOITURE = "voiture"
    CAMIONNETTE = "camionnette"
    VELO = "velo"
    PIETON = "pieton"


class RefusalReason(str, Enum):
    NOT_HOME = "not_home"
    WRONG_ADDRESS = "wrong_address"
    DAMAGED = "damaged"
    REFUSED_PAYMENT = "refused_payment"
    OTHER = "other"


TERMINAL_STATUSES = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.RETURNED,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
})

CANCELLABLE_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
})

REFUNDABLE_STATUSES = CANCELLABLE_STATUSES | {OrderStatus.CANCELLED}

# zamowienia "w drodze" u kuriera
ACTIVE_DELIVERY_STATUSES = (
    OrderStatus.ASSIGNED_TO_DELIVERY,
    OrderStatus.PICKED_UP,
    OrderStatus.OUT_FOR_DELIVERY,
)

FINISHED_DELIVERY_STATUSES = (
    OrderStatus.DELIVERED,
    OrderStatus.REFUSED,
    OrderStatus.RETURNED,
)
