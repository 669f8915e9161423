# Notification
from app.config import settings
from app.services.notification.email_channel import EmailChannel
from app.services.notification.notifier import Notifier


def get_notifier() -> Notifier:
    """依赖注入：按当前配置构建通知服务"""
    return Notifier(
        EmailChannel.from_settings(settings),
        hotel_name=settings.HOTEL_NAME,
        public_base_url=settings.PUBLIC_BASE_URL,
        currency=settings.CURRENCY,
    )


__all__ = ['EmailChannel', 'Notifier', 'get_notifier']
