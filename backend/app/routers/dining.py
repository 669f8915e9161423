"""
餐饮路由
菜单公开；菜品维护需 dish 任务，订单处理需 order 任务；客人只能访问自己的订单
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import CatalogStatus, DishCategory, OrderStatus
from app.models.schemas import (
    DishCreate, DishUpdate, DishResponse, OrderCreate, OrderStatusUpdate, OrderResponse,
    MessageResponse
)
from app.security import permissions
from app.security.auth import require
from app.security.identity import Principal
from app.services.errors import NotFoundError, OwnershipError
from app.services.notification import Notifier, get_notifier
from app.services.order_service import DishService, OrderService

dish_router = APIRouter(prefix="/dishes", tags=["餐饮管理"])
order_router = APIRouter(prefix="/orders", tags=["餐饮管理"])
guest_order_router = APIRouter(prefix="/guest/orders", tags=["餐饮管理"])


# ============== 菜品 ==============

@dish_router.get("", response_model=List[DishResponse])
def list_dishes(
    category: Optional[DishCategory] = None,
    status: Optional[CatalogStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """菜单"""
    return DishService(db).get_dishes(category, status, search)


@dish_router.get("/{dish_id}", response_model=DishResponse)
def get_dish(dish_id: int, db: Session = Depends(get_db)):
    """菜品详情"""
    try:
        return DishService(db).get_dish(dish_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@dish_router.post("", response_model=DishResponse)
def create_dish(
    data: DishCreate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.DISH_MANAGE))
):
    """新增菜品"""
    try:
        return DishService(db).create_dish(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@dish_router.put("/{dish_id}", response_model=DishResponse)
def update_dish(
    dish_id: int,
    data: DishUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.DISH_MANAGE))
):
    """更新菜品"""
    try:
        return DishService(db).update_dish(dish_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@dish_router.delete("/{dish_id}", response_model=MessageResponse)
def delete_dish(
    dish_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.DISH_MANAGE))
):
    """删除菜品"""
    try:
        DishService(db).delete_dish(dish_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": "Dish deleted"}


# ============== 员工端订单 ==============

@order_router.get("", response_model=List[OrderResponse])
def list_orders(
    status: Optional[OrderStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.ORDER_MANAGE))
):
    """订单列表"""
    return OrderService(db).get_orders(status=status, search=search)


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.ORDER_MANAGE))
):
    """订单详情"""
    try:
        return OrderService(db).get_order(order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@order_router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.ORDER_MANAGE))
):
    """更新订单状态（取消时归还库存）"""
    try:
        return OrderService(db).update_status(order_id, data.status)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ============== 客人端订单 ==============

@guest_order_router.post("", response_model=OrderResponse)
def place_order(
    data: OrderCreate,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """下单"""
    try:
        return OrderService(db).place_order(principal.record, data, notifier)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@guest_order_router.get("", response_model=List[OrderResponse])
def list_my_orders(
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """我的订单"""
    return OrderService(db).get_orders(guest_id=principal.id)


@guest_order_router.get("/{order_id}", response_model=OrderResponse)
def get_my_order(
    order_id: int,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """我的订单详情"""
    try:
        return OrderService(db).get_guest_order(principal.id, order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OwnershipError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
