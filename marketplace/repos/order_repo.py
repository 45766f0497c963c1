# marketplace/repos/order_repo.py
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_by_delivery_code(self, code: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.delivery_code == code)
        ).scalar_one_or_none()

    def update_order_version(
        self,
        order_id: int,
        old_version: int,
        new_data: dict[str, Any],
        expected_status: str | None = None,
    ) -> int:
        """
        Optimistic locking: UPDATE ... WHERE id = ? AND version = ? [AND status = ?].
        Zwraca rowcount - 0 oznacza, ze ktos nas wyprzedzil.
        """
        query = self.db.query(OrderModel).filter(
            OrderModel.id == order_id,
            OrderModel.version == old_version,
        )
        if expected_status is not None:
            query = query.filter(OrderModel.status == expected_status)
        return query.update(new_data, synchronize_session="evaluate")

    def _paginate(self, stmt, page: int, limit: int, order_by):
        total = self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()
        rows = self.db.execute(
            stmt.order_by(*order_by).offset((page - 1) * limit).limit(limit)
        ).scalars().all()
        return rows, total

    def list_ready_to_ship(self, city: str | None, vendor_id: int | None, page: int, limit: int):
        stmt = select(OrderModel).where(OrderModel.status == "ready_to_ship")
        if vendor_id is not None:
            stmt = stmt.where(OrderModel.vendor_id == vendor_id)
        if city:
            stmt = stmt.where(OrderModel.city.ilike(f"%{city}%"))
        return self._paginate(stmt, page, limit, (OrderModel.created_at.desc(), OrderModel.id.desc()))

    def list_for_vendor(self, vendor_id: int, status: str | None, search: str | None, page: int, limit: int):
        stmt = select(OrderModel).where(OrderModel.vendor_id == vendor_id)
        if status and status != "all":
            stmt = stmt.where(OrderModel.status == status)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    OrderModel.order_number.ilike(pattern),
                    OrderModel.client_code.ilike(pattern),
                    OrderModel.delivery_code.ilike(pattern),
                )
            )
        return self._paginate(stmt, page, limit, (OrderModel.created_at.desc(), OrderModel.id.desc()))

    def list_for_livreur(self, livreur_user_id: int, statuses, page: int, limit: int, order_by):
        stmt = select(OrderModel).where(
            OrderModel.livreur_id == livreur_user_id,
            OrderModel.status.in_(statuses),
        )
        return self._paginate(stmt, page, limit, order_by)

    def count_for_livreur(self, livreur_user_id: int, statuses, delivered_since: datetime | None = None) -> int:
        stmt = select(func.count(OrderModel.id)).where(
            OrderModel.livreur_id == livreur_user_id,
            OrderModel.status.in_(statuses),
        )
        if delivered_since is not None:
            stmt = stmt.where(OrderModel.delivered_at >= delivered_since)
        return self.db.execute(stmt).scalar_one()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
