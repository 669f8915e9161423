"""
库存与供应商服务
库存状态由库存量推导，所有写操作后重新计算
"""
import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.ontology import InventoryItem, InventoryStatus, InventoryType, Supplier, SupplierStatus
from app.models.schemas import (
    InventoryItemCreate, InventoryItemUpdate, SupplierCreate, SupplierUpdate
)
from app.services.errors import NotFoundError

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 10

EXPORT_HEADER = [
    "Name", "Supplier", "Stock", "Damaged", "Unit", "Price", "Total Value", "Date Added"
]


def derive_status(stock: int) -> InventoryStatus:
    """<=0 缺货，<=10 低库存，其余有货"""
    if stock <= 0:
        return InventoryStatus.OUT_OF_STOCK
    if stock <= LOW_STOCK_THRESHOLD:
        return InventoryStatus.LOW_STOCK
    return InventoryStatus.IN_STOCK


def item_value(item: InventoryItem) -> Decimal:
    return Decimal(str(item.price or 0)) * (item.stock or 0)


class InventoryService:
    """库存服务"""

    def __init__(self, db: Session):
        self.db = db

    def _check_supplier(self, supplier_id: Optional[int]) -> None:
        if supplier_id and not self.db.query(Supplier).filter(Supplier.id == supplier_id).first():
            raise NotFoundError("Supplier not found")

    def get_items(self, type: InventoryType, category: Optional[str] = None,
                  search: Optional[str] = None, page: int = 1, limit: int = 20) -> dict:
        """按类型分页查询"""
        query = self.db.query(InventoryItem).filter(InventoryItem.type == type)
        if category:
            query = query.filter(InventoryItem.category == category)
        if search:
            query = query.filter(func.lower(InventoryItem.name).like(f"%{search.lower()}%"))

        count = query.count()
        items = query.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()
        return {
            "count": count,
            "total_pages": math.ceil(count / limit) if limit else 0,
            "current_page": page,
            "items": items,
        }

    def get_item(self, item_id: int) -> InventoryItem:
        item = self.db.query(InventoryItem).filter(InventoryItem.id == item_id).first()
        if not item:
            raise NotFoundError("Inventory item not found")
        return item

    def get_stats(self, type: InventoryType) -> dict:
        """按类型统计：总数、库存价值、低库存/缺货数、损坏数量与价值"""
        items = self.db.query(InventoryItem).filter(InventoryItem.type == type).all()
        return {
            "total_items": len(items),
            "total_value": sum((item_value(i) for i in items), Decimal("0")),
            "low_stock": sum(1 for i in items if i.status == InventoryStatus.LOW_STOCK),
            "out_of_stock": sum(1 for i in items if i.status == InventoryStatus.OUT_OF_STOCK),
            "damaged_items": sum(i.damaged_stock or 0 for i in items),
            "damaged_value": sum(
                (Decimal(str(i.price or 0)) * (i.damaged_stock or 0) for i in items), Decimal("0")
            ),
        }

    def get_categories(self, type: InventoryType) -> List[dict]:
        rows = self.db.query(InventoryItem.category, func.count(InventoryItem.id)).filter(
            InventoryItem.type == type
        ).group_by(InventoryItem.category).order_by(InventoryItem.category).all()
        return [{"name": name, "count": count} for name, count in rows]

    def create_item(self, data: InventoryItemCreate) -> InventoryItem:
        self._check_supplier(data.supplier_id)
        item = InventoryItem(**data.model_dump())
        item.status = derive_status(item.stock)
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def update_item(self, item_id: int, data: InventoryItemUpdate) -> InventoryItem:
        item = self.get_item(item_id)
        update_data = data.model_dump(exclude_unset=True)
        if "supplier_id" in update_data:
            self._check_supplier(update_data["supplier_id"])
        for key, value in update_data.items():
            setattr(item, key, value)
        item.status = derive_status(item.stock or 0)
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, item_id: int) -> None:
        item = self.get_item(item_id)
        self.db.delete(item)
        self.db.commit()

    def consume(self, item_id: int, quantity: int) -> InventoryItem:
        """
        原子扣减库存

        Raises:
            NotFoundError: 物品不存在
            ValueError: 库存不足
        """
        item = self.get_item(item_id)
        taken = self.db.query(InventoryItem).filter(
            InventoryItem.id == item_id, InventoryItem.stock >= quantity
        ).update({InventoryItem.stock: InventoryItem.stock - quantity}, synchronize_session=False)
        if taken != 1:
            self.db.rollback()
            raise ValueError(f"Insufficient stock for {item.name}")

        self.db.refresh(item)
        item.status = derive_status(item.stock)
        item.last_updated = datetime.utcnow()
        self.db.commit()
        self.db.refresh(item)
        logger.info(f"Consumed {quantity} of inventory item {item.id}, {item.stock} left")
        return item

    def export_items(self, type: Optional[InventoryType] = None) -> Tuple[List[str], List[list]]:
        query = self.db.query(InventoryItem)
        if type:
            query = query.filter(InventoryItem.type == type)
        rows = [
            [
                i.name, i.supplier.name if i.supplier else "N/A", i.stock, i.damaged_stock,
                i.unit_of_measurement, i.price, item_value(i),
                i.created_at.date().isoformat() if i.created_at else "",
            ]
            for i in query.order_by(InventoryItem.name).all()
        ]
        return EXPORT_HEADER, rows


class SupplierService:
    """供应商服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_suppliers(self, status: Optional[SupplierStatus] = None,
                      search: Optional[str] = None) -> List[Supplier]:
        query = self.db.query(Supplier)
        if status:
            query = query.filter(Supplier.status == status)
        if search:
            query = query.filter(func.lower(Supplier.name).like(f"%{search.lower()}%"))
        return query.order_by(Supplier.name).all()

    def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.db.query(Supplier).filter(Supplier.id == supplier_id).first()
        if not supplier:
            raise NotFoundError("Supplier not found")
        return supplier

    def create_supplier(self, data: SupplierCreate) -> Supplier:
        if self.db.query(Supplier).filter(Supplier.phone_no == data.phone_no).first():
            raise ValueError("Supplier with this phone number already exists")
        supplier = Supplier(**data.model_dump())
        self.db.add(supplier)
        self.db.commit()
        self.db.refresh(supplier)
        return supplier

    def update_supplier(self, supplier_id: int, data: SupplierUpdate) -> Supplier:
        supplier = self.get_supplier(supplier_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(supplier, key, value)
        self.db.commit()
        self.db.refresh(supplier)
        return supplier

    def delete_supplier(self, supplier_id: int) -> None:
        supplier = self.get_supplier(supplier_id)
        self.db.query(InventoryItem).filter(InventoryItem.supplier_id == supplier_id).update(
            {InventoryItem.supplier_id: None}, synchronize_session=False
        )
        self.db.delete(supplier)
        self.db.commit()
