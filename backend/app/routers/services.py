"""
酒店服务路由
服务目录 /services（维护需 Owner/Admin），服务请求 /service-requests（需 serviceRequest 任务），
客人端 /guest/services 浏览目录、/guest/service-requests 提交与查看本人请求
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import ServiceRequestStatus, ServiceStatus, ServiceType
from app.models.schemas import (
    ServiceItemCreate, ServiceItemUpdate, ServiceItemResponse, ServiceRequestCreate,
    ServiceRequestStatusUpdate, ServiceRequestResponse, MessageResponse
)
from app.security import permissions
from app.security.auth import require
from app.security.identity import Principal
from app.services.errors import NotFoundError, OwnershipError
from app.services.notification import Notifier, get_notifier
from app.services.service_request_service import ServiceCatalogService, ServiceRequestService

catalog_router = APIRouter(prefix="/services", tags=["酒店服务"])
request_router = APIRouter(prefix="/service-requests", tags=["酒店服务"])
guest_catalog_router = APIRouter(prefix="/guest/services", tags=["酒店服务"])
guest_request_router = APIRouter(prefix="/guest/service-requests", tags=["酒店服务"])


# ============== 服务目录 ==============

@catalog_router.get("", response_model=List[ServiceItemResponse])
def list_services(
    service_type: Optional[ServiceType] = None,
    status: Optional[ServiceStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.SERVICE_REQUEST_MANAGE))
):
    """服务目录"""
    return ServiceCatalogService(db).get_services(service_type, status, search)


@catalog_router.post("", response_model=ServiceItemResponse)
def create_service(
    data: ServiceItemCreate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.SERVICE_CATALOG))
):
    """新增服务"""
    return ServiceCatalogService(db).create_service(data)


@catalog_router.put("/{service_id}", response_model=ServiceItemResponse)
def update_service(
    service_id: int,
    data: ServiceItemUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.SERVICE_CATALOG))
):
    """更新服务"""
    try:
        return ServiceCatalogService(db).update_service(service_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@catalog_router.delete("/{service_id}", response_model=MessageResponse)
def delete_service(
    service_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.SERVICE_CATALOG))
):
    """删除服务"""
    try:
        ServiceCatalogService(db).delete_service(service_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": "Service deleted"}


# ============== 服务请求（员工端） ==============

@request_router.get("", response_model=List[ServiceRequestResponse])
def list_requests(
    status: Optional[ServiceRequestStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.SERVICE_REQUEST_MANAGE))
):
    """服务请求列表"""
    return ServiceRequestService(db).get_requests(status, search=search)


@request_router.get("/{request_id}", response_model=ServiceRequestResponse)
def get_request(
    request_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.SERVICE_REQUEST_MANAGE))
):
    """服务请求详情"""
    try:
        return ServiceRequestService(db).get_request(request_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@request_router.patch("/{request_id}/status", response_model=ServiceRequestResponse)
def update_request_status(
    request_id: int,
    data: ServiceRequestStatusUpdate,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.SERVICE_REQUEST_MANAGE))
):
    """更新服务请求状态"""
    try:
        return ServiceRequestService(db).update_status(request_id, data.status)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@request_router.delete("/{request_id}", response_model=MessageResponse)
def delete_request(
    request_id: int,
    db: Session = Depends(get_db),
    _=Depends(require(permissions.SERVICE_REQUEST_MANAGE))
):
    """删除服务请求"""
    try:
        ServiceRequestService(db).delete_request(request_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": "Service request deleted"}


# ============== 客人端 ==============

@guest_catalog_router.get("", response_model=List[ServiceItemResponse])
def guest_list_services(
    service_type: Optional[ServiceType] = None,
    db: Session = Depends(get_db)
):
    """可用服务"""
    return ServiceCatalogService(db).get_services(service_type, ServiceStatus.AVAILABLE)


@guest_catalog_router.get("/{service_id}", response_model=ServiceItemResponse)
def guest_get_service(
    service_id: int,
    db: Session = Depends(get_db)
):
    """服务详情"""
    try:
        return ServiceCatalogService(db).get_service(service_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@guest_request_router.post("", response_model=ServiceRequestResponse)
def guest_create_request(
    data: ServiceRequestCreate,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """提交服务请求"""
    try:
        return ServiceRequestService(db).create_request(principal.record, data, notifier)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@guest_request_router.get("", response_model=List[ServiceRequestResponse])
def guest_list_requests(
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """我的服务请求"""
    return ServiceRequestService(db).get_requests(guest_id=principal.id)


@guest_request_router.get("/{request_id}", response_model=ServiceRequestResponse)
def guest_get_request(
    request_id: int,
    principal: Principal = Depends(require(permissions.GUEST_SELF)),
    db: Session = Depends(get_db)
):
    """我的服务请求详情"""
    try:
        return ServiceRequestService(db).get_guest_request(principal.id, request_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OwnershipError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
