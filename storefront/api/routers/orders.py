# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Path, Query

from storefront.api.deps import get_caller, get_order_service
from storefront.domain.order import Caller, InvalidItemPolicy, OrderStatus
from storefront.domain.schemas import OrderCreate, OrderOut
from storefront.services.order_service import OrderService
from storefront.utils import settings

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    invalid_items: InvalidItemPolicy | None = Query(None, description="drop albo reject"),
    caller: Caller = Depends(get_caller),
    svc: OrderService = Depends(get_order_service),
):
    """
    Tworzy zamówienie dla zalogowanego użytkownika.
    Tryb (PENDING albo od razu PURCHASED) zależy od ORDER_FLOW.
    """
    return svc.create_order(
        caller.user_id,
        [item.model_dump() for item in payload.items],
        invalid_item_policy=invalid_items,
    )


@router.patch("/{order_id}/pay", response_model=OrderOut)
def pay_order(
    order_id: int = Path(..., le=settings.MAX_DB_INT),
    caller: Caller = Depends(get_caller),
    svc: OrderService = Depends(get_order_service),
):
    return svc.pay_order(order_id, caller.user_id)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int = Path(..., le=settings.MAX_DB_INT),
    caller: Caller = Depends(get_caller),
    svc: OrderService = Depends(get_order_service),
):
    return svc.cancel_order(order_id, caller)


@router.get("/", response_model=List[OrderOut])
def get_all_orders(
    status: OrderStatus | None = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0, le=settings.MAX_DB_INT),
    owner_id: int | None = Query(None, gt=0, le=settings.MAX_DB_INT, description="Filtr po uzytkowniku (admin)"),
    caller: Caller = Depends(get_caller),
    svc: OrderService = Depends(get_order_service),
):
    """
    Zamówienia od najnowszych. Admin widzi wszystkie, pozostali tylko własne.
    """
    return svc.get_all_orders(
        caller,
        status=status.value if status else None,
        limit=limit,
        offset=offset,
        user_id=owner_id,
    )


@router.get("/user/{owner_id}", response_model=List[OrderOut])
def get_user_orders(
    owner_id: int = Path(..., le=settings.MAX_DB_INT),
    status: OrderStatus | None = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0, le=settings.MAX_DB_INT),
    caller: Caller = Depends(get_caller),
    svc: OrderService = Depends(get_order_service),
):
    return svc.get_user_orders(
        caller,
        owner_id,
        status=status.value if status else None,
        limit=limit,
        offset=offset,
    )


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int = Path(..., le=settings.MAX_DB_INT),
    caller: Caller = Depends(get_caller),
    svc: OrderService = Depends(get_order_service),
):
    """
    Pobiera szczegóły zamówienia.
    """
    return svc.get_order(order_id, caller)
