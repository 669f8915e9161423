"""
库存与供应商路由（需 inventory 任务）
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.ontology import InventoryType, SupplierStatus
from app.models.schemas import (
    InventoryItemCreate, InventoryItemUpdate, InventoryItemResponse, InventoryPage,
    InventoryStats, CategoryCount, StockConsume, SupplierCreate, SupplierUpdate,
    SupplierResponse, MessageResponse
)
from app.routers.csv_export import csv_response
from app.security import permissions
from app.security.auth import require
from app.services.errors import NotFoundError
from app.services.inventory_service import InventoryService, SupplierService, item_value

router = APIRouter(
    prefix="/inventory", tags=["库存管理"],
    dependencies=[Depends(require(permissions.INVENTORY_MANAGE))]
)


def _item_response(item) -> InventoryItemResponse:
    response = InventoryItemResponse.model_validate(item)
    response.total_value = item_value(item)
    return response


# ============== 库存物品 ==============

@router.get("/items", response_model=InventoryPage)
def list_items(
    type: InventoryType,
    category: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db)
):
    """按类型分页查询库存"""
    result = InventoryService(db).get_items(type, category, search, page, limit)
    result["items"] = [_item_response(i) for i in result["items"]]
    return result


@router.get("/stats", response_model=InventoryStats)
def get_stats(type: InventoryType, db: Session = Depends(get_db)):
    """库存统计"""
    return InventoryService(db).get_stats(type)


@router.get("/categories", response_model=List[CategoryCount])
def get_categories(type: InventoryType, db: Session = Depends(get_db)):
    """库存分类及数量"""
    return InventoryService(db).get_categories(type)


@router.get("/export")
def export_items(type: Optional[InventoryType] = None, db: Session = Depends(get_db)):
    """导出库存 CSV"""
    header, rows = InventoryService(db).export_items(type)
    return csv_response("inventory.csv", header, rows)


@router.get("/items/{item_id}", response_model=InventoryItemResponse)
def get_item(item_id: int, db: Session = Depends(get_db)):
    """库存物品详情"""
    try:
        return _item_response(InventoryService(db).get_item(item_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/items", response_model=InventoryItemResponse)
def create_item(data: InventoryItemCreate, db: Session = Depends(get_db)):
    """新增库存物品"""
    try:
        return _item_response(InventoryService(db).create_item(data))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/items/{item_id}", response_model=InventoryItemResponse)
def update_item(item_id: int, data: InventoryItemUpdate, db: Session = Depends(get_db)):
    """更新库存物品"""
    try:
        return _item_response(InventoryService(db).update_item(item_id, data))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/items/{item_id}/consume", response_model=InventoryItemResponse)
def consume_item(item_id: int, data: StockConsume, db: Session = Depends(get_db)):
    """领用（原子扣减库存）"""
    try:
        return _item_response(InventoryService(db).consume(item_id, data.quantity))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/items/{item_id}", response_model=MessageResponse)
def delete_item(item_id: int, db: Session = Depends(get_db)):
    """删除库存物品"""
    try:
        InventoryService(db).delete_item(item_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": "Item deleted"}


# ============== 供应商 ==============

@router.get("/suppliers", response_model=List[SupplierResponse])
def list_suppliers(
    status: Optional[SupplierStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """供应商列表"""
    return SupplierService(db).get_suppliers(status, search)


@router.post("/suppliers", response_model=SupplierResponse)
def create_supplier(data: SupplierCreate, db: Session = Depends(get_db)):
    """新增供应商"""
    try:
        return SupplierService(db).create_supplier(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/suppliers/{supplier_id}", response_model=SupplierResponse)
def update_supplier(supplier_id: int, data: SupplierUpdate, db: Session = Depends(get_db)):
    """更新供应商"""
    try:
        return SupplierService(db).update_supplier(supplier_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/suppliers/{supplier_id}", response_model=MessageResponse)
def delete_supplier(supplier_id: int, db: Session = Depends(get_db)):
    """删除供应商"""
    try:
        SupplierService(db).delete_supplier(supplier_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": "Supplier deleted"}
