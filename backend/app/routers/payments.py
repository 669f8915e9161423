"""
在线支付路由 (Paystack)
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.schemas import PaymentInitialize, PaymentResponse, MessageResponse
from app.security import permissions
from app.security.auth import require
from app.security.identity import Principal
from app.services.errors import DeliveryError, NotFoundError, OwnershipError
from app.services.notification import Notifier, get_notifier
from app.services.payment_service import PaymentService, PaystackClient, get_payment_gateway

router = APIRouter(prefix="/payments", tags=["在线支付"])


@router.post("/initialize", response_model=PaymentResponse)
def initialize_payment(
    data: PaymentInitialize,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_payment_gateway)
):
    """发起支付，返回网关支付链接"""
    try:
        return PaymentService(db, gateway).initialize(principal.record, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OwnershipError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except DeliveryError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/webhook", response_model=MessageResponse)
async def payment_webhook(
    request: Request,
    x_paystack_signature: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier)
):
    """网关回调（校验 x-paystack-signature）"""
    raw_body = await request.body()
    try:
        await run_in_threadpool(
            PaymentService(db, gateway).handle_webhook, raw_body, x_paystack_signature, notifier
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "ok"}


@router.post("/{reference}/verify", response_model=PaymentResponse)
def verify_payment(
    reference: str,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier)
):
    """向网关查询交易并同步支付状态"""
    try:
        return PaymentService(db, gateway).verify(principal.id, reference, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OwnershipError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except DeliveryError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("", response_model=List[PaymentResponse])
def list_my_payments(
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db),
    gateway: PaystackClient = Depends(get_payment_gateway)
):
    """我的支付记录"""
    return PaymentService(db, gateway).get_guest_payments(principal.id)
