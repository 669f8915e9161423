"""
员工账号管理路由
Owner 管理 Admin 与 Staff；Admin 只管理 Staff
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.schemas import (
    StaffCreate, StaffUpdate, StaffResponse, StaffAction, StaffStats, MessageResponse
)
from app.security import permissions
from app.security.auth import require
from app.security.identity import Principal
from app.services.errors import ManagementDeniedError, NotFoundError
from app.services.notification import Notifier, get_notifier
from app.services.staff_service import StaffService

router = APIRouter(prefix="/staff/members", tags=["员工管理"])


def _denied(e: ManagementDeniedError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.decision.to_detail())


@router.get("/stats", response_model=StaffStats)
def get_stats(
    principal: Principal = Depends(require(permissions.STAFF_MANAGE)),
    db: Session = Depends(get_db)
):
    """可管理账号统计"""
    return StaffService(db).get_stats(principal.role)


@router.get("", response_model=List[StaffResponse])
def list_members(
    blocked: Optional[bool] = None,
    search: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(require(permissions.STAFF_MANAGE)),
    db: Session = Depends(get_db)
):
    """列出可管理账号"""
    return StaffService(db).list_members(principal.role, blocked, search, limit, offset)


@router.get("/{staff_id}", response_model=StaffResponse)
def get_member(
    staff_id: int,
    principal: Principal = Depends(require(permissions.STAFF_MANAGE)),
    db: Session = Depends(get_db)
):
    """查看员工账号"""
    try:
        return StaffService(db).get_member(principal.role, staff_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ManagementDeniedError as e:
        raise _denied(e)


@router.post("", response_model=StaffResponse)
def create_member(
    data: StaffCreate,
    principal: Principal = Depends(require(permissions.STAFF_MANAGE)),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """创建员工账号"""
    try:
        return StaffService(db).create_member(principal.role, data, notifier)
    except ManagementDeniedError as e:
        raise _denied(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{staff_id}", response_model=StaffResponse)
def update_member(
    staff_id: int,
    data: StaffUpdate,
    principal: Principal = Depends(require(permissions.STAFF_MANAGE)),
    db: Session = Depends(get_db)
):
    """编辑员工账号"""
    try:
        return StaffService(db).update_member(principal.role, staff_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ManagementDeniedError as e:
        raise _denied(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{staff_id}/block", response_model=StaffResponse)
def block_member(
    staff_id: int,
    data: StaffAction,
    principal: Principal = Depends(require(permissions.STAFF_MANAGE)),
    db: Session = Depends(get_db)
):
    """拉黑员工"""
    try:
        return StaffService(db).set_blocked(principal.role, staff_id, True, data.reason)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ManagementDeniedError as e:
        raise _denied(e)


@router.post("/{staff_id}/unblock", response_model=StaffResponse)
def unblock_member(
    staff_id: int,
    principal: Principal = Depends(require(permissions.STAFF_MANAGE)),
    db: Session = Depends(get_db)
):
    """解除拉黑"""
    try:
        return StaffService(db).set_blocked(principal.role, staff_id, False)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ManagementDeniedError as e:
        raise _denied(e)


@router.delete("/{staff_id}", response_model=MessageResponse)
def delete_member(
    staff_id: int,
    reason: Optional[str] = None,
    principal: Principal = Depends(require(permissions.STAFF_MANAGE)),
    db: Session = Depends(get_db)
):
    """删除员工账号（软删除）"""
    try:
        StaffService(db).delete_member(principal.role, staff_id, reason)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ManagementDeniedError as e:
        raise _denied(e)
    return {"message": "Staff deleted"}
