# storefront/repos/unit_of_work.py
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.domain.errors import StorageError
from storefront.repos.inventory_repo import InventoryRepo
from storefront.repos.order_repo import OrderRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class UnitOfWork:
    """
    Granica transakcji: wszystko albo nic.

        with UnitOfWork(db) as uow:
            uow.inventory.try_reserve(...)
            uow.orders.create_order(...)

    Wyjscie bez wyjatku -> commit, wyjatek -> rollback (wszystkie
    rezerwacje cofniete przez baze). SQLAlchemyError zamieniany na StorageError.
    """

    def __init__(self, db: Session):
        self.db = db
        self.inventory = InventoryRepo(db)
        self.orders = OrderRepo(db)

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            try:
                self.commit()
            except SQLAlchemyError as e:
                logger.exception("Commit nie powiodl sie, rollback")
                self.rollback()
                raise StorageError() from e
            return False

        self.rollback()
        if isinstance(exc, SQLAlchemyError):
            logger.error("Blad bazy w transakcji, rollback", exc_info=(exc_type, exc, tb))
            raise StorageError() from exc
        return False

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
