# marketplace/data/events.py
from sqlalchemy import event
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.domain.codes import assign_missing_codes
from marketplace.domain.pricing import recalculate_totals


@event.listens_for(Session, "before_flush")
def _order_before_flush(session, flush_context, instances):
    """Odpowiednik pre-save: kody przy insercie, kwoty przy kazdym zapisie."""
    orders = set()
    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, OrderModel):
            orders.add(obj)
        elif isinstance(obj, OrderItemModel) and obj.order is not None:
            orders.add(obj.order)

    for order in orders:
        if order in session.deleted:
            continue
        assign_missing_codes(order)
        recalculate_totals(order)
