"""
创建首个 Owner 账号

Owner 只能由部署脚本创建，接口层不允许创建或提升为 Owner。
已存在任意 Owner 时直接退出，不会重复创建。

用法:
    OWNER_EMAIL=owner@hotel.com OWNER_PASSWORD=... OWNER_NAME="Hotel Owner" python create_owner.py
"""
import os
import sys
sys.path.insert(0, '.')

from typing import Optional, Tuple
from app.database import SessionLocal, init_db
from app.models.ontology import Role, Staff
from app.security.auth import get_password_hash


def ensure_owner(db, email: str, password: str,
                 fullname: Optional[str] = None) -> Tuple[Staff, bool]:
    """返回 (Owner, 是否新建)；已有 Owner 时原样返回"""
    existing = db.query(Staff).filter(Staff.role == Role.OWNER).first()
    if existing:
        return existing, False

    owner = Staff(
        fullname=fullname or "Hotel Owner",
        email=email.strip().lower(),
        password_hash=get_password_hash(password),
        role=Role.OWNER,
        primary_role="Owner",
        tasks=[],
    )
    db.add(owner)
    db.commit()
    db.refresh(owner)
    return owner, True


def main() -> int:
    email = os.environ.get("OWNER_EMAIL")
    password = os.environ.get("OWNER_PASSWORD")
    if not email or not password:
        print("OWNER_EMAIL 和 OWNER_PASSWORD 必须设置")
        return 1

    init_db()
    db = SessionLocal()
    try:
        owner, created = ensure_owner(db, email, password, os.environ.get("OWNER_NAME"))
    finally:
        db.close()

    if created:
        print(f"Owner 创建完成: {owner.email}")
    else:
        print(f"Owner 已存在: {owner.email}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
