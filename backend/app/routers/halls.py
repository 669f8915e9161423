"""
会场路由
员工端 /halls（查看需 hall 任务，维护与预订需 Owner/Admin），客人端 /guest/halls 公开浏览
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import HallStatus, HallType
from app.models.schemas import (
    HallBook, HallCreate, HallUpdate, HallPublicResponse, HallResponse
)
from app.security import permissions
from app.security.auth import require
from app.services.errors import NotFoundError
from app.services.hall_service import HallService
from app.services.notification import Notifier, get_notifier

router = APIRouter(prefix="/halls", tags=["会场管理"])
guest_router = APIRouter(prefix="/guest/halls", tags=["会场管理"])


# ============== 员工端 ==============

@router.get("", response_model=List[HallResponse])
def list_halls(
    status: Optional[HallStatus] = None,
    hall_type: Optional[HallType] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.HALL_VIEW))
):
    """会场列表"""
    return HallService(db).get_halls(status, hall_type, search)


@router.get("/{hall_id}", response_model=HallResponse)
def get_hall(
    hall_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.HALL_VIEW))
):
    """会场详情"""
    try:
        return HallService(db).get_hall(hall_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=HallResponse)
def create_hall(
    data: HallCreate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.HALL_MANAGE))
):
    """新增会场"""
    try:
        return HallService(db).create_hall(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{hall_id}", response_model=HallResponse)
def update_hall(
    hall_id: int,
    data: HallUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.HALL_MANAGE))
):
    """更新会场"""
    try:
        return HallService(db).update_hall(hall_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{hall_id}/book", response_model=HallResponse)
def book_hall(
    hall_id: int,
    data: HallBook,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    _=Depends(require(permissions.HALL_MANAGE))
):
    """为客人预订会场"""
    try:
        return HallService(db).book_hall(hall_id, data, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{hall_id}/cancel", response_model=HallResponse)
def cancel_hall(
    hall_id: int,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    _=Depends(require(permissions.HALL_MANAGE))
):
    """取消会场预订"""
    try:
        return HallService(db).cancel_hall(hall_id, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ============== 客人端 ==============

@guest_router.get("", response_model=List[HallPublicResponse])
def guest_list_halls(
    hall_type: Optional[HallType] = None,
    db: Session = Depends(get_db)
):
    """浏览会场"""
    return HallService(db).get_halls(hall_type=hall_type)


@guest_router.get("/available", response_model=List[HallPublicResponse])
def guest_available_halls(
    hall_type: Optional[HallType] = None,
    db: Session = Depends(get_db)
):
    """可预订会场"""
    return HallService(db).get_halls(HallStatus.AVAILABLE, hall_type)


@guest_router.get("/search", response_model=List[HallPublicResponse])
def guest_search_halls(
    q: str,
    db: Session = Depends(get_db)
):
    """按名称、位置或描述搜索会场"""
    return HallService(db).get_halls(search=q)


@guest_router.get("/{hall_id}", response_model=HallPublicResponse)
def guest_get_hall(
    hall_id: int,
    db: Session = Depends(get_db)
):
    """会场详情"""
    try:
        return HallService(db).get_hall(hall_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
