"""
房间预订路由
员工端 /bookings（需 booking 任务），客人端 /guest/bookings（仅限本人预订）
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import BookingStatus
from app.models.schemas import (
    GuestBookingCreate, StaffBookingCreate, BookingUpdate, BookingStatusUpdate,
    BookingResponse, MessageResponse
)
from app.security import permissions
from app.security.auth import require
from app.security.identity import Principal
from app.services.booking_service import BookingService
from app.services.errors import NotFoundError, OwnershipError
from app.services.notification import Notifier, get_notifier

router = APIRouter(prefix="/bookings", tags=["房间预订"])
guest_router = APIRouter(prefix="/guest/bookings", tags=["房间预订"])


# ============== 员工端 ==============

@router.get("/stats")
def get_stats(
    db: Session = Depends(get_db),
    _=Depends(require(permissions.BOOKING_MANAGE))
):
    """预订统计"""
    return BookingService(db).get_stats()


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    status: Optional[BookingStatus] = None,
    search: Optional[str] = None,
    guest_id: Optional[int] = None,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.BOOKING_MANAGE))
):
    """预订列表"""
    return BookingService(db).get_bookings(status, search, guest_id)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.BOOKING_MANAGE))
):
    """预订详情"""
    try:
        return BookingService(db).get_booking(booking_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=BookingResponse)
def create_booking(
    data: StaffBookingCreate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    _=Depends(require(permissions.BOOKING_MANAGE))
):
    """代客预订"""
    try:
        return BookingService(db).create_by_staff(data, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: int,
    data: BookingUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.BOOKING_MANAGE))
):
    """更新预订"""
    try:
        return BookingService(db).update_booking(booking_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    _=Depends(require(permissions.BOOKING_MANAGE))
):
    """更新预订状态（级联房态）"""
    try:
        return BookingService(db).update_status(booking_id, data.status, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{booking_id}", response_model=MessageResponse)
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.BOOKING_MANAGE))
):
    """删除预订并释放房间"""
    try:
        BookingService(db).delete_booking(booking_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": "Booking deleted"}


# ============== 客人端 ==============

@guest_router.post("", response_model=BookingResponse)
def guest_create_booking(
    data: GuestBookingCreate,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """客人预订房间"""
    try:
        return BookingService(db).create_for_guest(principal.record, data, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@guest_router.get("", response_model=List[BookingResponse])
def guest_list_bookings(
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """我的预订"""
    return BookingService(db).get_bookings(guest_id=principal.id)


@guest_router.get("/{booking_id}", response_model=BookingResponse)
def guest_get_booking(
    booking_id: int,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """我的预订详情"""
    try:
        return BookingService(db).get_guest_booking(principal.id, booking_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OwnershipError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@guest_router.post("/{booking_id}/cancel", response_model=BookingResponse)
def guest_cancel_booking(
    booking_id: int,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """取消我的预订"""
    try:
        return BookingService(db).cancel_for_guest(principal.record, booking_id, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OwnershipError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
