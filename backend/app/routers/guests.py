"""
客人管理路由
需具备 guest 任务；导出仅限 Owner/Admin
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.schemas import (
    GuestAction, GuestAdminResponse, GuestPage, GuestStats, MessageResponse
)
from app.routers.csv_export import csv_response
from app.security import permissions
from app.security.auth import require
from app.services.errors import NotFoundError
from app.services.guest_admin_service import GuestAdminService
from app.services.notification import Notifier, get_notifier

router = APIRouter(prefix="/guests", tags=["客人管理"])


@router.get("/stats", response_model=GuestStats)
def get_stats(
    db: Session = Depends(get_db),
    _=Depends(require(permissions.GUEST_ADMIN))
):
    """客人统计"""
    return GuestAdminService(db).get_stats()


@router.get("", response_model=GuestPage)
def list_guests(
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    _=Depends(require(permissions.GUEST_ADMIN))
):
    """客人列表（分页）"""
    return GuestAdminService(db).list_guests(search, start_date, end_date, page, limit)


@router.get("/blocked", response_model=List[GuestAdminResponse])
def list_blocked(
    db: Session = Depends(get_db),
    _=Depends(require(permissions.GUEST_ADMIN))
):
    """已冻结客人"""
    return GuestAdminService(db).get_blocked()


@router.get("/banned", response_model=List[GuestAdminResponse])
def list_banned(
    db: Session = Depends(get_db),
    _=Depends(require(permissions.GUEST_ADMIN))
):
    """已封禁客人"""
    return GuestAdminService(db).get_banned()


@router.get("/export")
def export_guests(
    db: Session = Depends(get_db),
    _=Depends(require(permissions.GUEST_EXPORT))
):
    """导出客人 CSV"""
    header, rows = GuestAdminService(db).export()
    return csv_response("guests.csv", header, rows)


@router.get("/{guest_id}", response_model=GuestAdminResponse)
def get_guest(
    guest_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.GUEST_ADMIN))
):
    """客人详情"""
    try:
        return GuestAdminService(db).get_guest(guest_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _restrict(action, guest_id: int, value: bool, reason: Optional[str], notifier: Optional[Notifier]):
    try:
        return action(guest_id, value, reason, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{guest_id}/block", response_model=GuestAdminResponse)
def block_guest(
    guest_id: int,
    data: GuestAction,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    _=Depends(require(permissions.GUEST_ADMIN))
):
    """冻结客人"""
    return _restrict(GuestAdminService(db).set_blocked, guest_id, True, data.reason, notifier)


@router.post("/{guest_id}/unblock", response_model=GuestAdminResponse)
def unblock_guest(
    guest_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.GUEST_ADMIN))
):
    """解除冻结"""
    return _restrict(GuestAdminService(db).set_blocked, guest_id, False, None, None)


@router.post("/{guest_id}/ban", response_model=GuestAdminResponse)
def ban_guest(
    guest_id: int,
    data: GuestAction,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    _=Depends(require(permissions.GUEST_ADMIN))
):
    """封禁客人"""
    return _restrict(GuestAdminService(db).set_banned, guest_id, True, data.reason, notifier)


@router.post("/{guest_id}/unban", response_model=GuestAdminResponse)
def unban_guest(
    guest_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.GUEST_ADMIN))
):
    """解除封禁"""
    return _restrict(GuestAdminService(db).set_banned, guest_id, False, None, None)


@router.delete("/{guest_id}", response_model=MessageResponse)
def delete_guest(
    guest_id: int,
    reason: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.GUEST_ADMIN))
):
    """删除客人账号（软删除）"""
    try:
        GuestAdminService(db).delete_guest(guest_id, reason)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": "Guest deleted"}
