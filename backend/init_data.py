"""
初始化数据脚本
创建：Owner 账号、示例客房、洗衣价目、菜品

Owner 账号取自环境变量 OWNER_EMAIL / OWNER_PASSWORD / OWNER_NAME，
未设置时使用默认值（密码 123456，上线前务必修改）。
Owner 只能由本脚本或 create_owner.py 创建，接口层不允许创建或提升为 Owner。
"""
import os
import sys
sys.path.insert(0, '.')

from decimal import Decimal
from app.database import SessionLocal, init_db
from app.models.ontology import Room, LaundryItem, Dish, DishCategory, CatalogStatus
from create_owner import ensure_owner


def init_owner(db):
    """创建 Owner 账号（已有 Owner 则跳过）"""
    owner, created = ensure_owner(
        db,
        os.environ.get("OWNER_EMAIL", "owner@hotel.local"),
        os.environ.get("OWNER_PASSWORD", "123456"),
        os.environ.get("OWNER_NAME"),
    )
    print(f"Owner {'创建完成' if created else '已存在'}: {owner.email}")
    return owner


def init_rooms(db):
    """示例客房"""
    rooms_config = [
        ("101", "Standard", Decimal("25000.00"), 2),
        ("102", "Standard", Decimal("25000.00"), 2),
        ("201", "Deluxe", Decimal("40000.00"), 2),
        ("301", "Suite", Decimal("75000.00"), 4),
    ]
    created = 0
    for name, room_type, price, capacity in rooms_config:
        if db.query(Room).filter(Room.name == name).first():
            continue
        db.add(Room(name=name, room_type=room_type, price=price, capacity=capacity))
        created += 1
    db.commit()
    print(f"客房初始化完成: {created} 个新建")


def init_laundry_items(db):
    """洗衣价目；洗涤/熨烫/洗烫价为 0 表示按基础价计"""
    items_config = [
        ("Shirt", "Tops", "500", "700", "400", "1000"),
        ("Trousers", "Bottoms", "600", "800", "500", "1200"),
        ("Suit", "Formal", "2500", "0", "1500", "3500"),
        ("Bedsheet", "Household", "800", "1000", "0", "0"),
    ]
    created = 0
    for name, category, price, wash, iron, both in items_config:
        if db.query(LaundryItem).filter(LaundryItem.name == name).first():
            continue
        db.add(LaundryItem(
            name=name, category=category,
            price=Decimal(price), price_wash=Decimal(wash),
            price_iron=Decimal(iron), price_both=Decimal(both),
            status=CatalogStatus.AVAILABLE,
        ))
        created += 1
    db.commit()
    print(f"洗衣价目初始化完成: {created} 个新建")


def init_dishes(db):
    """示例菜品"""
    dishes_config = [
        ("Jollof Rice", DishCategory.MAIN_MEAL, "3500", 50),
        ("Pepper Soup", DishCategory.SOUP, "4000", 30),
        ("Pancakes", DishCategory.BREAKFAST, "2500", 40),
        ("Chapman", DishCategory.BAR_AND_DRINKS, "1500", 100),
    ]
    created = 0
    for name, category, amount, quantity in dishes_config:
        if db.query(Dish).filter(Dish.name == name).first():
            continue
        db.add(Dish(
            name=name, category=category, amount_per_portion=Decimal(amount),
            quantity=quantity, is_ready=True, status=CatalogStatus.AVAILABLE,
        ))
        created += 1
    db.commit()
    print(f"菜品初始化完成: {created} 个新建")


def main():
    """主函数"""
    print("=" * 50)
    print("酒店管理系统 初始化数据")
    print("=" * 50)

    # 初始化数据库
    init_db()
    print("数据库表创建完成")

    db = SessionLocal()
    try:
        init_owner(db)
        init_rooms(db)
        init_laundry_items(db)
        init_dishes(db)
        print("=" * 50)
        print("初始化完成")
    finally:
        db.close()


if __name__ == '__main__':
    main()
