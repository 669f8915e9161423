"""
酒店管理系统主应用入口
客人与员工共用一个 API，调用方类别由 From 请求头声明
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.database import init_db
from app.routers import (
    guest_auth, staff_auth, profile, staff, laundry, rooms, bookings, dining,
    inventory, payments, dashboard, halls, events, guests, services
)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时初始化数据库
    init_db()
    if not settings.SMTP_HOST:
        logger.warning("SMTP_HOST is not set, mail notifications are disabled")
    if not settings.PAYSTACK_SECRET_KEY:
        logger.warning("PAYSTACK_SECRET_KEY is not set, online payments are disabled")
    logger.info(f"{settings.APP_NAME} started")
    yield


# 创建应用
app = FastAPI(
    title=settings.APP_NAME,
    description="酒店管理后端：客房预订、点餐、洗衣、库存与员工管理",
    version="1.0.0",
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 生产环境应限制具体域名
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """请求参数校验失败统一返回 400"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


# 注册路由
app.include_router(guest_auth.router)
app.include_router(staff_auth.router)
app.include_router(profile.guest_router)
app.include_router(profile.staff_router)
app.include_router(staff.router)
app.include_router(laundry.router)
app.include_router(rooms.router)
app.include_router(bookings.router)
app.include_router(bookings.guest_router)
app.include_router(dining.dish_router)
app.include_router(dining.order_router)
app.include_router(dining.guest_order_router)
app.include_router(inventory.router)
app.include_router(payments.router)
app.include_router(dashboard.router)
app.include_router(halls.router)
app.include_router(halls.guest_router)
app.include_router(events.router)
app.include_router(events.guest_router)
app.include_router(guests.router)
app.include_router(services.catalog_router)
app.include_router(services.request_router)
app.include_router(services.guest_catalog_router)
app.include_router(services.guest_request_router)


@app.get("/")
def root():
    """根路径"""
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
    }


@app.get("/health")
def health_check():
    """健康检查"""
    return {"status": "healthy"}
