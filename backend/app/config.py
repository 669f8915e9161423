"""
应用配置
从环境变量读取配置（支持 .env 文件）
"""
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "Classic Crown Hotel API"
    DEBUG: bool = False

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./hotel.db"

    # JWT 配置
    SECRET_KEY: str = "hotel-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    GUEST_TOKEN_EXPIRE_MINUTES: int = 60
    STAFF_TOKEN_EXPIRE_MINUTES: int = 480
    RESET_TOKEN_EXPIRE_MINUTES: int = 10

    # 外部协作方调用超时（秒），邮件与支付网关共用
    COLLABORATOR_TIMEOUT_SECONDS: float = 10.0

    # 邮件配置，SMTP_HOST 为空时不发送邮件
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_SENDER: str = ""
    SMTP_USE_TLS: bool = True
    HOTEL_NAME: str = "Classic Crown Hotel"
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # 支付网关配置 (Paystack)
    PAYSTACK_SECRET_KEY: Optional[str] = None
    PAYSTACK_BASE_URL: str = "https://api.paystack.co"
    PAYSTACK_CALLBACK_URL: Optional[str] = None
    CURRENCY: str = "NGN"

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# 全局设置实例
settings = Settings()
