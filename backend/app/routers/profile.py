"""
个人资料路由（客人与员工各自只能访问自己的记录）
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.schemas import GuestResponse, GuestProfileUpdate, StaffResponse, StaffProfileUpdate
from app.security import permissions
from app.security.auth import require
from app.security.identity import Principal
from app.services.guest_service import GuestService
from app.services.staff_service import StaffService

guest_router = APIRouter(prefix="/guest/profile", tags=["个人资料"])
staff_router = APIRouter(prefix="/staff/profile", tags=["个人资料"])


@guest_router.get("", response_model=GuestResponse)
def get_guest_profile(principal: Principal = Depends(require(permissions.GUEST_SELF))):
    """获取客人资料"""
    return principal.record


@guest_router.put("", response_model=GuestResponse)
def update_guest_profile(
    data: GuestProfileUpdate,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """更新客人资料"""
    try:
        return GuestService(db).update_profile(principal.record, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@staff_router.get("", response_model=StaffResponse)
def get_staff_profile(principal: Principal = Depends(require(permissions.ANY_STAFF))):
    """获取员工资料"""
    return principal.record


@staff_router.put("", response_model=StaffResponse)
def update_staff_profile(
    data: StaffProfileUpdate,
    principal: Principal = Depends(require(permissions.ANY_STAFF)),
    db: Session = Depends(get_db)
):
    """更新员工资料"""
    return StaffService(db).update_profile(principal.record, data)
