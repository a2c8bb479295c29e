# storefront/domain/order.py
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping

from storefront.domain.errors import (
    AlreadyPaidError,
    NoItemsError,
    OrderStateError,
    ProductNotFoundError,
    ValidationError,
)
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PURCHASED = "PURCHASED"
    CANCELLED = "CANCELLED"


class OrderFlow(str, Enum):
    """
    Kiedy zdejmowany jest stan magazynowy:
    - PAY_LATER: zamowienie PENDING, rezerwacja dopiero przy pay_order
    - RESERVE_AT_CREATION: rezerwacja przy tworzeniu, zamowienie od razu PURCHASED
      (platnosc potwierdzona wczesniej, np. webhook)
    """

    PAY_LATER = "pay_later"
    RESERVE_AT_CREATION = "reserve_at_creation"


class InvalidItemPolicy(str, Enum):
    DROP = "drop"
    REJECT = "reject"


# dozwolone przejscia, PURCHASED i CANCELLED sa koncowe
TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PURCHASED, OrderStatus.CANCELLED},
    OrderStatus.PURCHASED: set(),
    OrderStatus.CANCELLED: set(),
}


@dataclass(frozen=True)
class Caller:
    user_id: int
    is_admin: bool = False

    def can_access(self, owner_id: int) -> bool:
        return self.is_admin or self.user_id == owner_id


@dataclass(frozen=True)
class RequestItem:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class OrderLine:
    """Pozycja gotowa do zapisu: ilosc po scaleniu + snapshot ceny."""

    product_id: int
    product_name: str
    quantity: int
    price: Decimal


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _in_range(value: int | None) -> bool:
    return value is not None and 0 < value <= settings.MAX_DB_INT


def coerce_items(
    raw_items: Iterable[Mapping[str, Any]],
    policy: InvalidItemPolicy = InvalidItemPolicy.DROP,
) -> List[RequestItem]:
    items = []
    for position, entry in enumerate(raw_items):
        product_id = _to_int(entry.get("product_id", entry.get("productId")))
        quantity = _to_int(entry.get("quantity"))

        if not _in_range(product_id) or not _in_range(quantity):
            if policy == InvalidItemPolicy.REJECT:
                raise ValidationError(
                    f"Niepoprawna pozycja zamowienia na pozycji {position}",
                    position=position,
                )
            logger.debug(f"Pomijam niepoprawna pozycje {position}: {dict(entry)}")
            continue

        items.append(RequestItem(product_id=product_id, quantity=quantity))
    return items


def merge_items(items: Iterable[RequestItem]) -> Dict[int, int]:
    #duplikaty tego samego produktu sumujemy PRZED sprawdzeniem stanu
    merged: Dict[int, int] = {}
    for item in items:
        merged[item.product_id] = merged.get(item.product_id, 0) + item.quantity
    if not merged:
        raise NoItemsError()
    for product_id, quantity in merged.items():
        if quantity > settings.MAX_DB_INT:
            raise ValidationError(
                f"Laczna ilosc produktu {product_id} przekracza {settings.MAX_DB_INT}",
                product_id=product_id,
            )
    return merged


def build_order_lines(merged: Mapping[int, int], products: Mapping[int, Any]) -> List[OrderLine]:
    """
    Laczy scalone ilosci z produktami z jednego zapytania batch.
    Brak ktoregokolwiek produktu -> ProductNotFoundError, zanim cokolwiek
    zostanie zarezerwowane.
    """
    for product_id in merged:
        if product_id not in products:
            raise ProductNotFoundError(product_id)

    return [
        OrderLine(
            product_id=product_id,
            product_name=products[product_id].name,
            quantity=quantity,
            price=Decimal(products[product_id].price),
        )
        for product_id, quantity in merged.items()
    ]


def ensure_transition(order_id: int, current: str, target: OrderStatus) -> None:
    status = OrderStatus(current)
    if target in TRANSITIONS[status]:
        return
    if status == OrderStatus.PURCHASED:
        raise AlreadyPaidError(order_id)
    raise OrderStateError(order_id, status.value)
