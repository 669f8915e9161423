"""
客房管理路由
房间列表公开；房间维护需 Owner/Admin，房态更新对具备 room 任务的员工开放
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import RoomAvailability
from app.models.schemas import RoomCreate, RoomUpdate, RoomResponse, RoomStatusUpdate, MessageResponse
from app.security import permissions
from app.security.auth import require
from app.services.booking_service import RoomService
from app.services.errors import NotFoundError

router = APIRouter(prefix="/rooms", tags=["客房管理"])


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    availability: Optional[RoomAvailability] = None,
    room_type: Optional[str] = None,
    category: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """房间列表"""
    return RoomService(db).get_rooms(availability, room_type, category)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db)):
    """房间详情"""
    try:
        return RoomService(db).get_room(room_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=RoomResponse)
def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.ROOM_CATALOG))
):
    """新增房间"""
    try:
        return RoomService(db).create_room(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.ROOM_CATALOG))
):
    """更新房间"""
    try:
        return RoomService(db).update_room(room_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/{room_id}/status", response_model=RoomResponse)
def update_room_status(
    room_id: int,
    data: RoomStatusUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.ROOM_OPERATE))
):
    """更新房态 / 清洁状态"""
    try:
        return RoomService(db).update_room_status(room_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{room_id}", response_model=MessageResponse)
def delete_room(
    room_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.ROOM_CATALOG))
):
    """删除房间"""
    try:
        RoomService(db).delete_room(room_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Room deleted"}
