# storefront/repos/inventory_repo.py
from typing import Dict, Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryRepo:
    """
    Stan magazynowy produktow.
    Jedyne operacje zmieniajace stock to warunkowe zmniejszenie (try_reserve)
    i zwiekszenie (release). Brak "ustaw stock na N".
    """

    def __init__(self, db: Session):
        self.db = db

    def get_products(self, product_ids: Iterable[int]) -> Dict[int, ProductModel]:
        ids = set(product_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(ProductModel).where(ProductModel.id.in_(ids))
        ).scalars().all()
        return {p.id: p for p in rows}

    def try_reserve(self, product_id: int, quantity: int) -> bool:
        #UPDATE products SET stock = stock - q WHERE id = :id AND stock >= q
        #jedna atomowa operacja, zadnego odczytu przed zapisem
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        reserved = result.rowcount == 1
        logger.info(
            f"Rezerwacja produktu {product_id} x{quantity}: {'OK' if reserved else 'brak stanu'}"
        )
        return reserved

    def release(self, product_id: int, quantity: int) -> bool:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Zwolnienie produktu {product_id} x{quantity}")
        return result.rowcount == 1
