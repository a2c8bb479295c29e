# storefront/services/order_service.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.errors import (
    AlreadyPaidError,
    InsufficientStockError,
    NotAuthorizedError,
    OrderNotFoundError,
    ValidationError,
)
from storefront.domain.order import (
    Caller,
    InvalidItemPolicy,
    OrderFlow,
    OrderLine,
    OrderStatus,
    build_order_lines,
    coerce_items,
    ensure_transition,
    merge_items,
)
from storefront.repos.order_repo import OrderRepo
from storefront.repos.unit_of_work import UnitOfWork
from storefront.services.notification_service import NotificationService
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień.

    Jedyny mechanizm poprawności przy współbieżności to warunkowe
    zmniejszenie stanu (InventoryRepo.try_reserve) w jednej transakcji
    (UnitOfWork) razem ze zmianą statusu zamówienia. Brak globalnych locków.
    """

    def __init__(
        self,
        db: Session,
        notification_service: NotificationService | None = None,
        flow: OrderFlow | str | None = None,
        invalid_item_policy: InvalidItemPolicy | str | None = None,
        advisory_stock_check: bool | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.notification_service = notification_service or NotificationService()
        self.flow = OrderFlow(flow or settings.ORDER_FLOW)
        self.invalid_item_policy = InvalidItemPolicy(invalid_item_policy or settings.INVALID_ITEM_POLICY)
        self.advisory_stock_check = (
            settings.ADVISORY_STOCK_CHECK if advisory_stock_check is None else advisory_stock_check
        )

    # =====================================================
    # COMMANDS
    # =====================================================
    def create_order(
        self,
        user_id: int,
        raw_items: Iterable[Mapping[str, Any]],
        invalid_item_policy: InvalidItemPolicy | str | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: Tworzenie zamówienia.

        1. Koercja i scalenie pozycji (bez dostępu do bazy)
        2. Pobranie produktów jednym zapytaniem, brak produktu -> ProductNotFoundError
        3. PAY_LATER: zamówienie PENDING, stan nietknięty
           RESERVE_AT_CREATION: rezerwacja wszystkich pozycji, zamówienie PURCHASED
        """
        policy = InvalidItemPolicy(invalid_item_policy or self.invalid_item_policy)
        merged = merge_items(coerce_items(raw_items, policy))

        with UnitOfWork(self.db) as uow:
            products = uow.inventory.get_products(merged)
            lines = build_order_lines(merged, products)

            if self.flow == OrderFlow.RESERVE_AT_CREATION:
                self._reserve_all(uow, lines, with_names=False)
                status = OrderStatus.PURCHASED
            else:
                if self.advisory_stock_check:
                    # tylko podpowiedz dla klienta, decyduje rezerwacja w pay_order
                    self._advisory_stock_check(lines, products)
                status = OrderStatus.PENDING

            order = uow.orders.create_order(self._build_order(user_id, status, lines))
            order_id = order.id

        logger.info(f"Order {order_id} created for user {user_id} with status {status.value} ({self.flow.value})")

        if status == OrderStatus.PURCHASED:
            self.notification_service.send_order_notification(user_id, order_id, status.value)

        return self._to_dict(self.repo.get_order(order_id))

    def pay_order(self, order_id: int, user_id: int) -> Dict[str, Any]:
        """
        Use Case: Opłacenie zamówienia (PENDING -> PURCHASED).

        W jednej transakcji: warunkowe przejęcie statusu, potem rezerwacja
        każdej pozycji. Brak stanu dla dowolnej pozycji -> rollback całości,
        zamówienie zostaje PENDING.
        """
        with UnitOfWork(self.db) as uow:
            order = uow.orders.get_order(order_id)

            if not order:
                raise OrderNotFoundError(order_id)

            if order.user_id != user_id:
                raise NotAuthorizedError()

            ensure_transition(order.id, order.status, OrderStatus.PURCHASED)

            if not uow.orders.claim_status(order.id, OrderStatus.PENDING.value, OrderStatus.PURCHASED.value):
                # ktoś inny zmienił status między odczytem a UPDATE
                self._raise_lost_claim(order, OrderStatus.PURCHASED)

            lines = [
                OrderLine(
                    product_id=item.product_id,
                    product_name=item.product.name,
                    quantity=item.quantity,
                    price=item.price,
                )
                for item in order.items
            ]
            self._reserve_all(uow, lines, with_names=True)
            owner_id = order.user_id

        logger.info(f"Order {order_id} paid by user {user_id}")
        self.notification_service.send_order_notification(owner_id, order_id, OrderStatus.PURCHASED.value)

        return self._to_dict(self.repo.get_order(order_id))

    def cancel_order(self, order_id: int, caller: Caller) -> Dict[str, Any]:
        """
        Use Case: Anulowanie niezapłaconego zamówienia.
        PENDING nie trzyma stanu magazynowego, więc nic nie zwalniamy.
        """
        with UnitOfWork(self.db) as uow:
            order = uow.orders.get_order(order_id)

            if not order:
                raise OrderNotFoundError(order_id)

            if not caller.can_access(order.user_id):
                raise NotAuthorizedError()

            ensure_transition(order.id, order.status, OrderStatus.CANCELLED)

            if not uow.orders.claim_status(order.id, OrderStatus.PENDING.value, OrderStatus.CANCELLED.value):
                self._raise_lost_claim(order, OrderStatus.CANCELLED)

        logger.info(f"Order {order_id} cancelled by user {caller.user_id}")
        return self._to_dict(self.repo.get_order(order_id))

    def expire_pending_orders(self, ttl_seconds: int | None = None, now: datetime | None = None) -> int:
        ttl = settings.PENDING_ORDER_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(seconds=ttl)

        with UnitOfWork(self.db) as uow:
            expired = uow.orders.expire_pending(cutoff)

        logger.info(f"Expired {expired} pending orders created before {cutoff.isoformat()}")
        return expired

    # =====================================================
    # QUERY
    # =====================================================
    def get_order(self, order_id: int, caller: Caller) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)

        if not order:
            raise OrderNotFoundError(order_id)

        if not caller.can_access(order.user_id):
            raise NotAuthorizedError()

        return self._to_dict(order)

    def get_all_orders(
        self,
        caller: Caller,
        status: str | None = None,
        limit: int | None = None,
        offset: int = 0,
        user_id: int | None = None,
    ) -> List[Dict[str, Any]]:
        """
        Admin widzi zamówienia wszystkich (opcjonalnie filtr user_id),
        pozostali tylko własne.
        """
        if not caller.is_admin:
            if user_id is not None and user_id != caller.user_id:
                raise NotAuthorizedError("Tylko administrator widzi zamówienia innych użytkowników")
            user_id = caller.user_id

        return self._list(user_id, status, limit, offset)

    def get_user_orders(
        self,
        caller: Caller,
        user_id: int,
        status: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        if not caller.can_access(user_id):
            raise NotAuthorizedError("Brak dostępu do zamówień tego użytkownika")

        return self._list(user_id, status, limit, offset)

    # =====================================================
    # HELPERS
    # =====================================================
    def _reserve_all(self, uow: UnitOfWork, lines: List[OrderLine], with_names: bool):
        # stała kolejność (po id produktu) -> stała kolejność locków wierszy
        for line in sorted(lines, key=lambda l: l.product_id):
            if not uow.inventory.try_reserve(line.product_id, line.quantity):
                logger.warning(f"Insufficient stock for product {line.product_id} (requested {line.quantity})")
                raise InsufficientStockError(
                    line.product_id,
                    line.product_name if with_names else None,
                )

    def _raise_lost_claim(self, order: OrderModel, target: OrderStatus):
        self.db.refresh(order, attribute_names=["status"])
        ensure_transition(order.id, order.status, target)
        raise AlreadyPaidError(order.id)

    @staticmethod
    def _advisory_stock_check(lines: List[OrderLine], products: Mapping[int, Any]):
        for line in lines:
            if products[line.product_id].stock < line.quantity:
                raise InsufficientStockError(line.product_id, line.product_name)

    @staticmethod
    def _build_order(user_id: int, status: OrderStatus, lines: List[OrderLine]) -> OrderModel:
        return OrderModel(
            user_id=user_id,
            status=status.value,
            created_at=datetime.now(timezone.utc),
            items=[
                OrderItemModel(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price=line.price,
                )
                for line in lines
            ],
        )

    def _list(self, user_id: int | None, status: str | None, limit: int | None, offset: int):
        if limit is None:
            limit = settings.DEFAULT_PAGE_SIZE
        if not 1 <= limit <= settings.MAX_PAGE_SIZE:
            raise ValidationError(f"limit musi byc w zakresie 1..{settings.MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValidationError("offset nie moze byc ujemny")

        if status is not None:
            try:
                status = OrderStatus(status).value
            except ValueError:
                raise ValidationError(f"Nieznany status: {status}")

        orders = self.repo.list_orders(user_id=user_id, status=status, limit=limit, offset=offset)
        return [self._to_dict(o) for o in orders]

    @staticmethod
    def _to_dict(order: OrderModel) -> Dict[str, Any]:
        items = [
            {
                "product_id": i.product_id,
                "product_name": i.product.name,
                "quantity": i.quantity,
                "price": i.price,
            }
            for i in order.items
        ]
        total = sum((i.price * i.quantity for i in order.items), Decimal("0.00"))

        return {
            "id": order.id,
            "user_id": order.user_id,
            "status": order.status,
            "items": items,
            "total": total,
            "created_at": order.created_at,
        }
