# storefront/repos/order_repo.py
from datetime import datetime
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.order import OrderStatus


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        # bez commita, o zatwierdzeniu decyduje UnitOfWork
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .options(selectinload(OrderModel.items).selectinload(OrderItemModel.product))
        ).scalar_one_or_none()

    def claim_status(self, order_id: int, from_status: str, to_status: str) -> bool:
        # warunkowa zmiana statusu, dwa rownolegle pay_order nie przejda oba
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == from_status)
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_orders(
        self,
        user_id: int | None = None,
        status: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[OrderModel]:
        stmt = select(OrderModel).options(
            selectinload(OrderModel.items).selectinload(OrderItemModel.product)
        )
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        if status is not None:
            stmt = stmt.where(OrderModel.status == status)

        stmt = stmt.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        return list(self.db.execute(stmt.limit(limit).offset(offset)).scalars().all())

    def expire_pending(self, created_before: datetime) -> int:
        result = self.db.execute(
            update(OrderModel)
            .where(
                OrderModel.status == OrderStatus.PENDING.value,
                OrderModel.created_at < created_before,
            )
            .values(status=OrderStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
