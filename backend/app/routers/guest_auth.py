"""
客人认证路由
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.schemas import (
    GuestSignUp, GuestSignIn, GuestLoginResponse, GuestResponse, PasswordChange,
    ForgotPassword, PasswordResetConfirm, AccountDelete, MessageResponse
)
from app.security import permissions
from app.security.auth import require
from app.security.identity import Principal
from app.services.errors import AccountRestrictedError, AuthenticationError, DeliveryError, NotFoundError
from app.services.guest_service import GuestService
from app.services.notification import Notifier, get_notifier

router = APIRouter(prefix="/guest/auth", tags=["客人认证"])


@router.post("/sign_up", response_model=GuestResponse)
def sign_up(
    data: GuestSignUp,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """客人注册"""
    service = GuestService(db)
    try:
        guest = service.sign_up(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    notifier.guest_welcome(guest.email, guest.fullname)
    return guest


@router.post("/sign_in", response_model=GuestLoginResponse)
def sign_in(data: GuestSignIn, db: Session = Depends(get_db)):
    """客人登录"""
    service = GuestService(db)
    try:
        guest, token = service.sign_in(data)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except AccountRestrictedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return GuestLoginResponse(access_token=token, guest=GuestResponse.model_validate(guest))


@router.post("/logout", response_model=MessageResponse)
def logout(
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """退出登录"""
    GuestService(db).logout(principal.record)
    return {"message": "Logged out"}


@router.post("/change_password", response_model=MessageResponse)
def change_password(
    data: PasswordChange,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """修改密码"""
    try:
        GuestService(db).change_password(principal.record, data)
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
        GuestService(db).forgot_password(data.email, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DeliveryError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return {"message": "Password reset email sent"}


@router.post("/reset_password", response_model=MessageResponse)
def reset_password(data: PasswordResetConfirm, db: Session = Depends(get_db)):
    """凭重置凭证设置新密码"""
    try:
        GuestService(db).reset_password(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Password has been reset"}


@router.post("/delete", response_model=MessageResponse)
def delete_account(
    data: AccountDelete,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """注销账号"""
    try:
        GuestService(db).delete_account(principal.record, data.password, data.reason)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Account deleted"}
