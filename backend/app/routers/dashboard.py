"""
仪表盘路由（Owner/Admin）
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.database import get_db
from app.security import permissions
from app.security.auth import require
from app.services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["仪表盘"])


@router.get("/overview")
def get_overview(
    db: Session = Depends(get_db),
    _=Depends(require(permissions.DASHBOARD_VIEW))
):
    """运营总览"""
    return DashboardService(db).get_overview()
