"""
洗衣管理路由
价目表维护需 Owner/Admin；订单处理对具备 laundry 任务的员工开放
"""
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import CatalogStatus, LaundryStatus
from app.models.schemas import (
    LaundryItemCreate, LaundryItemUpdate, LaundryItemResponse, LaundryBookingCreate,
    LaundryBookingUpdate, LaundryBookingResponse, LaundryStatusUpdate, LaundryStats,
    MessageResponse
)
from app.routers.csv_export import csv_response
from app.security import permissions
from app.security.auth import require
from app.services.errors import NotFoundError
from app.services.laundry_service import LaundryService
from app.services.notification import Notifier, get_notifier

router = APIRouter(prefix="/laundry", tags=["洗衣管理"])


@router.get("/stats", response_model=LaundryStats)
def get_stats(
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_VIEW))
):
    """洗衣统计"""
    return LaundryService(db).get_stats()


# ============== 价目表 ==============

@router.get("/items", response_model=List[LaundryItemResponse])
def list_items(
    status: Optional[CatalogStatus] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_VIEW))
):
    """价目表"""
    return LaundryService(db).get_items(status, category, search)


@router.get("/items/export")
def export_items(
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_VIEW))
):
    """导出价目表 CSV"""
    header, rows = LaundryService(db).export_items()
    return csv_response("laundry_items.csv", header, rows)


@router.get("/items/{item_id}", response_model=LaundryItemResponse)
def get_item(
    item_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_VIEW))
):
    """价目项详情（含最近下单时间）"""
    service = LaundryService(db)
    try:
        item = service.get_item(item_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    response = LaundryItemResponse.model_validate(item)
    response.last_ordered = service.get_item_last_ordered(item_id)
    return response


@router.post("/items", response_model=LaundryItemResponse)
def create_item(
    data: LaundryItemCreate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_CATALOG))
):
    """新增价目项"""
    try:
        return LaundryService(db).create_item(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/items/{item_id}", response_model=LaundryItemResponse)
def update_item(
    item_id: int,
    data: LaundryItemUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_CATALOG))
):
    """更新价目项"""
    try:
        return LaundryService(db).update_item(item_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/items/{item_id}", response_model=MessageResponse)
def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_CATALOG))
):
    """删除价目项"""
    try:
        LaundryService(db).delete_item(item_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": "Item deleted"}


# ============== 洗衣订单 ==============

@router.post("/bookings", response_model=LaundryBookingResponse)
def create_booking(
    data: LaundryBookingCreate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    _=Depends(require(permissions.LAUNDRY_VIEW))
):
    """创建洗衣订单"""
    try:
        return LaundryService(db).create_booking(data, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/bookings", response_model=List[LaundryBookingResponse])
def list_bookings(
    search: Optional[str] = None,
    status: Optional[LaundryStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_VIEW))
):
    """洗衣订单列表"""
    return LaundryService(db).get_bookings(search, status, start_date, end_date)


@router.get("/bookings/export")
def export_bookings(
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_VIEW))
):
    """导出洗衣订单 CSV"""
    header, rows = LaundryService(db).export_bookings()
    return csv_response("laundry_bookings.csv", header, rows)


@router.get("/bookings/{booking_id}", response_model=LaundryBookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_VIEW))
):
    """洗衣订单详情"""
    try:
        return LaundryService(db).get_booking(booking_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/bookings/{booking_id}", response_model=LaundryBookingResponse)
def update_booking(
    booking_id: int,
    data: LaundryBookingUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_VIEW))
):
    """更新洗衣订单"""
    try:
        return LaundryService(db).update_booking(booking_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/bookings/{booking_id}/status", response_model=LaundryBookingResponse)
def update_booking_status(
    booking_id: int,
    data: LaundryStatusUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_VIEW))
):
    """更新洗衣订单状态"""
    try:
        return LaundryService(db).update_status(booking_id, data.status)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/bookings/{booking_id}", response_model=MessageResponse)
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.LAUNDRY_ADMIN))
):
    """删除洗衣订单"""
    try:
        LaundryService(db).delete_booking(booking_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": "Booking deleted"}
