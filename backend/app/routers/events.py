"""
活动预约路由
员工端 /events（需 event 任务，删除需 Owner/Admin），客人端 /guest/events（仅限本人活动）
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import EventStatus
from app.models.schemas import (
    EventReserve, EventUpdate, EventStatusUpdate, EventResponse, EventOverview, MessageResponse
)
from app.security import permissions
from app.security.auth import require
from app.security.identity import Principal
from app.services.errors import NotFoundError, OwnershipError
from app.services.event_service import EventService
from app.services.notification import Notifier, get_notifier

router = APIRouter(prefix="/events", tags=["活动预约"])
guest_router = APIRouter(prefix="/guest/events", tags=["活动预约"])


# ============== 员工端 ==============

@router.get("", response_model=List[EventResponse])
def list_events(
    status: Optional[EventStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.EVENT_MANAGE))
):
    """活动列表"""
    return EventService(db).get_events(status, search)


@router.get("/overview", response_model=EventOverview)
def get_overview(
    db: Session = Depends(get_db),
    _=Depends(require(permissions.EVENT_MANAGE))
):
    """活动状态概览"""
    return EventService(db).get_overview()


@router.get("/{event_id}", response_model=EventResponse)
def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.EVENT_MANAGE))
):
    """活动详情"""
    try:
        return EventService(db).get_event(event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{event_id}", response_model=EventResponse)
def update_event(
    event_id: int,
    data: EventUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.EVENT_MANAGE))
):
    """更新活动（分配会场、定价）"""
    try:
        return EventService(db).update_event(event_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/{event_id}/status", response_model=EventResponse)
def update_event_status(
    event_id: int,
    data: EventStatusUpdate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    _=Depends(require(permissions.EVENT_MANAGE))
):
    """更新活动状态"""
    try:
        return EventService(db).update_status(event_id, data.status, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{event_id}", response_model=MessageResponse)
def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.EVENT_ADMIN))
):
    """删除活动"""
    try:
        EventService(db).delete_event(event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": "Event deleted"}


# ============== 客人端 ==============

@guest_router.post("", response_model=EventResponse)
def guest_reserve_event(
    data: EventReserve,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """提交活动申请"""
    try:
        return EventService(db).reserve(principal.record, data, notifier)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@guest_router.get("", response_model=List[EventResponse])
def guest_list_events(
    status: Optional[EventStatus] = None,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """我的活动"""
    return EventService(db).get_events(status, guest_id=principal.id)


@guest_router.get("/{event_id}", response_model=EventResponse)
def guest_get_event(
    event_id: int,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """我的活动详情"""
    try:
        return EventService(db).get_guest_event(principal.id, event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OwnershipError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))


@guest_router.post("/{event_id}/cancel", response_model=EventResponse)
def guest_cancel_event(
    event_id: int,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """取消我的活动"""
    try:
        return EventService(db).cancel_for_guest(principal.record, event_id, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OwnershipError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
