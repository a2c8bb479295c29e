# storefront/domain/errors.py
from enum import Enum
from typing import Any, Dict


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    PRODUCT_NOT_FOUND = "product_not_found"
    INSUFFICIENT_STOCK = "insufficient_stock"
    ORDER_NOT_FOUND = "order_not_found"
    NOT_AUTHORIZED = "not_authorized"
    ALREADY_PAID = "already_paid"
    INVALID_STATE = "invalid_state"
    STORAGE = "storage"


class OrderError(Exception):
    """
    Bazowy blad domeny zamowien: rodzaj (kind) + komunikat + szczegoly.
    Mapowanie na status HTTP jest tylko w storefront.api.errors.
    """

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ValidationError(OrderError):
    kind = ErrorKind.VALIDATION


class NoItemsError(ValidationError):
    def __init__(self):
        super().__init__("Zamowienie musi zawierac co najmniej jedna poprawna pozycje")


class ProductNotFoundError(OrderError):
    kind = ErrorKind.PRODUCT_NOT_FOUND

    def __init__(self, product_id: int):
        super().__init__(f"Produkt {product_id} nie istnieje", product_id=product_id)
        self.product_id = product_id


class InsufficientStockError(OrderError):
    kind = ErrorKind.INSUFFICIENT_STOCK

    def __init__(self, product_id: int, product_name: str | None = None):
        label = product_name or f"produktu {product_id}"
        super().__init__(
            f"Niewystarczajacy stan magazynowy dla {label}",
            product_id=product_id,
            product_name=product_name,
        )
        self.product_id = product_id
        self.product_name = product_name


class OrderNotFoundError(OrderError):
    kind = ErrorKind.ORDER_NOT_FOUND

    def __init__(self, order_id: int):
        super().__init__(f"Zamowienie {order_id} nie istnieje", order_id=order_id)
        self.order_id = order_id


class NotAuthorizedError(OrderError):
    kind = ErrorKind.NOT_AUTHORIZED

    def __init__(self, message: str = "Brak dostepu do zamowienia"):
        super().__init__(message)


class AlreadyPaidError(OrderError):
    kind = ErrorKind.ALREADY_PAID

    def __init__(self, order_id: int):
        super().__init__(f"Zamowienie {order_id} jest juz oplacone", order_id=order_id)
        self.order_id = order_id


class OrderStateError(OrderError):
    kind = ErrorKind.INVALID_STATE

    def __init__(self, order_id: int, status: str):
        super().__init__(
            f"Zamowienie {order_id} ma status {status} i nie moze zostac zmienione",
            order_id=order_id,
            status=status,
        )
        self.order_id = order_id
        self.status = status


class StorageError(OrderError):
    kind = ErrorKind.STORAGE

    def __init__(self, message: str = "Blad bazy danych"):
        super().__init__(message)
