# storefront/api/deps.py
from fastapi import Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.order import Caller
from storefront.services.order_service import OrderService
from storefront.utils import settings


def get_caller(
    user_id: int = Query(..., gt=0, le=settings.MAX_DB_INT, description="ID zalogowanego uzytkownika"),
) -> Caller:
    #uwierzytelnianie jest przed serwisem, tu tylko identyfikator + flaga admina
    return Caller(user_id=user_id, is_admin=user_id in settings.ADMIN_USER_IDS)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)
