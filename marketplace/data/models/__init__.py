#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from marketplace.data.models.user import UserModel
from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.data.models.order_status_history import OrderStatusHistoryModel
from marketplace.data.models.livreur import LivreurModel, LivreurCurrentOrderModel
from marketplace.data import events  # noqa: F401  (rejestracja before_flush)

__all__ = [
    "UserModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatusHistoryModel",
    "LivreurModel",
    "LivreurCurrentOrderModel",
]
