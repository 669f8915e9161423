"""
酒店服务目录与客人服务请求
请求创建时快照服务名称与价格，之后目录变动不影响已有请求
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.ontology import (
    Guest, PaymentStatus, ServiceItem, ServiceRequest, ServiceRequestStatus, ServiceStatus,
    ServiceType
)
from app.models.schemas import ServiceItemCreate, ServiceItemUpdate, ServiceRequestCreate
from app.services.errors import NotFoundError, OwnershipError
from app.services.notification import Notifier

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS: Dict[ServiceRequestStatus, frozenset] = {
    ServiceRequestStatus.PENDING: frozenset({ServiceRequestStatus.IN_PROGRESS, ServiceRequestStatus.CANCELLED}),
    ServiceRequestStatus.IN_PROGRESS: frozenset({ServiceRequestStatus.COMPLETED, ServiceRequestStatus.CANCELLED}),
    ServiceRequestStatus.COMPLETED: frozenset(),
    ServiceRequestStatus.CANCELLED: frozenset(),
}


def check_transition(current: ServiceRequestStatus, target: ServiceRequestStatus) -> None:
    if current == target:
        return
    if target not in STATUS_TRANSITIONS[current]:
        raise ValueError(f"Cannot change request status from {current.value} to {target.value}")


class ServiceCatalogService:
    """服务目录"""

    def __init__(self, db: Session):
        self.db = db

    def get_services(self, service_type: Optional[ServiceType] = None,
                     status: Optional[ServiceStatus] = None,
                     search: Optional[str] = None) -> List[ServiceItem]:
        query = self.db.query(ServiceItem)
        if service_type:
            query = query.filter(ServiceItem.service_type == service_type)
        if status:
            query = query.filter(ServiceItem.status == status)
        if search:
            query = query.filter(func.lower(ServiceItem.name).like(f"%{search.lower()}%"))
        return query.order_by(ServiceItem.name).all()

    def get_service(self, service_id: int) -> ServiceItem:
        service = self.db.query(ServiceItem).filter(ServiceItem.id == service_id).first()
        if not service:
            raise NotFoundError("Service not found")
        return service

    def create_service(self, data: ServiceItemCreate) -> ServiceItem:
        service = ServiceItem(**data.model_dump())
        self.db.add(service)
        self.db.commit()
        self.db.refresh(service)
        return service

    def update_service(self, service_id: int, data: ServiceItemUpdate) -> ServiceItem:
        service = self.get_service(service_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(service, key, value)
        self.db.commit()
        self.db.refresh(service)
        return service

    def delete_service(self, service_id: int) -> None:
        service = self.get_service(service_id)
        self.db.query(ServiceRequest).filter(ServiceRequest.service_id == service_id).update(
            {ServiceRequest.service_id: None}, synchronize_session=False
        )
        self.db.delete(service)
        self.db.commit()


class ServiceRequestService:
    """客人服务请求"""

    def __init__(self, db: Session):
        self.db = db

    def create_request(self, guest: Guest, data: ServiceRequestCreate,
                       notifier: Optional[Notifier] = None) -> ServiceRequest:
        if not guest.email:
            raise ValueError("An email address is required to request a service")
        service = ServiceCatalogService(self.db).get_service(data.service_id)
        if service.status != ServiceStatus.AVAILABLE:
            raise ValueError(f"Service {service.name} is {service.status.value}")

        request = ServiceRequest(
            guest_id=guest.id,
            guest_name=guest.fullname,
            email=guest.email,
            service_id=service.id,
            service_name=service.name,
            room=data.room,
            amount=Decimal(str(service.price)),
            duration=data.duration,
            delivery_date=data.delivery_date,
            payment_method=data.payment_method,
            payment_status=PaymentStatus.PENDING,
            status=ServiceRequestStatus.PENDING,
        )
        self.db.add(request)
        self.db.commit()
        self.db.refresh(request)
        logger.info(f"Service request {request.id} ({service.name}) by guest {guest.id}")

        if notifier:
            notifier.service_requested(guest.email, guest.fullname, request.service_name,
                                       request.room, request.amount)
        return request

    def get_requests(self, status: Optional[ServiceRequestStatus] = None,
                     guest_id: Optional[int] = None, search: Optional[str] = None) -> List[ServiceRequest]:
        query = self.db.query(ServiceRequest)
        if guest_id is not None:
            query = query.filter(ServiceRequest.guest_id == guest_id)
        if status:
            query = query.filter(ServiceRequest.status == status)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                func.lower(ServiceRequest.service_name).like(pattern)
                | func.lower(ServiceRequest.guest_name).like(pattern)
                | func.lower(ServiceRequest.room).like(pattern)
            )
        return query.order_by(ServiceRequest.request_date.desc(), ServiceRequest.id.desc()).all()

    def get_request(self, request_id: int) -> ServiceRequest:
        request = self.db.query(ServiceRequest).filter(ServiceRequest.id == request_id).first()
        if not request:
            raise NotFoundError("Service request not found")
        return request

    def get_guest_request(self, guest_id: int, request_id: int) -> ServiceRequest:
        request = self.get_request(request_id)
        if request.guest_id != guest_id:
            raise OwnershipError("This request does not belong to you")
        return request

    def update_status(self, request_id: int, status: ServiceRequestStatus) -> ServiceRequest:
        request = self.get_request(request_id)
        check_transition(request.status, status)
        request.status = status
        self.db.commit()
        self.db.refresh(request)
        logger.info(f"Service request {request.id} -> {status.value}")
        return request

    def delete_request(self, request_id: int) -> None:
        request = self.get_request(request_id)
        self.db.delete(request)
        self.db.commit()
