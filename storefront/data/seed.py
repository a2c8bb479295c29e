# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import SessionLocal
from storefront.data.models import ProductModel

PRODUCTS = [
    {"id": 1, "name": "Keyboard", "price": Decimal("199.99"), "stock": 25},
    {"id": 2, "name": "Mouse", "price": Decimal("49.50"), "stock": 100},
    {"id": 3, "name": "Monitor", "price": Decimal("899.00"), "stock": 5},
]


def seed_products(db, products=PRODUCTS):
    # tylko gdy tabela jest pusta
    if db.query(ProductModel).first():
        return
    db.add_all(ProductModel(**p) for p in products)
    db.commit()


def seed():
    db = SessionLocal()
    try:
        seed_products(db)
    finally:
        db.close()
