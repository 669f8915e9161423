"""
员工认证路由
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.schemas import (
    StaffLogin, StaffLoginResponse, StaffResponse, PasswordChange, ForgotPassword,
    PasswordResetConfirm, MessageResponse
)
from app.security import permissions
from app.security.auth import require
from app.security.identity import Principal
from app.services.errors import AccountRestrictedError, AuthenticationError, DeliveryError, NotFoundError
from app.services.notification import Notifier, get_notifier
from app.services.staff_service import StaffService

router = APIRouter(prefix="/staff/auth", tags=["员工认证"])


@router.post("/login", response_model=StaffLoginResponse)
def login(data: StaffLogin, db: Session = Depends(get_db)):
    """员工登录"""
    service = StaffService(db)
    try:
        staff, token = service.login(data)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except AccountRestrictedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return StaffLoginResponse(access_token=token, staff=StaffResponse.model_validate(staff))


@router.post("/logout", response_model=MessageResponse)
def logout(
    principal: Principal = Depends(require(permissions.ANY_STAFF)),
    db: Session = Depends(get_db)
):
    """退出登录"""
    StaffService(db).logout(principal.record)
    return {"message": "Logged out"}


@router.post("/change_password", response_model=MessageResponse)
def change_password(
    data: PasswordChange,
    principal: Principal = Depends(require(permissions.ANY_STAFF)),
    db: Session = Depends(get_db)
):
    """修改密码"""
    try:
        StaffService(db).change_password(principal.record, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Password changed"}


@router.post("/forgot_password", response_model=MessageResponse)
def forgot_password(
    data: ForgotPassword,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """发送重置密码邮件"""
    try:
        StaffService(db).forgot_password(data.email, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DeliveryError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return {"message": "Password reset email sent"}


@router.post("/reset_password", response_model=MessageResponse)
def reset_password(data: PasswordResetConfirm, db: Session = Depends(get_db)):
    """凭重置凭证设置新密码"""
    try:
        StaffService(db).reset_password(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Password has been reset"}
