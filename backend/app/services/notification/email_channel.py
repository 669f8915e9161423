"""
邮件通知渠道 - SMTP 发送邮件
"""
import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class EmailChannel:
    """SMTP 邮件通知渠道；send 失败时抛出异常，由调用方决定是否吞掉"""

    def __init__(
        self,
        smtp_host: str = "localhost",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        sender_email: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.sender_email = sender_email or smtp_user
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> Optional["EmailChannel"]:
        """SMTP_HOST 未配置时返回 None（不发送邮件）"""
        if not settings.SMTP_HOST:
            return None
        return cls(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            sender_email=settings.SMTP_SENDER,
            use_tls=settings.SMTP_USE_TLS,
            timeout=settings.COLLABORATOR_TIMEOUT_SECONDS,
        )

    def send(
        self,
        recipient: str,
        subject: str,
        content: str,
        extra: Optional[Dict] = None,
    ) -> None:
        """发送邮件

        Args:
            recipient: 收件人邮箱地址
            subject: 邮件标题
            content: 邮件内容（支持 HTML）
            extra: 可选参数 (content_type: 'html'|'plain', cc)

        Raises:
            smtplib.SMTPException / OSError: 连接或发送失败
        """
        extra = extra or {}
        content_type = extra.get("content_type", "html")

        msg = MIMEMultipart()
        msg["From"] = self.sender_email
        msg["To"] = recipient
        msg["Subject"] = subject

        if cc := extra.get("cc"):
            msg["Cc"] = cc
        msg.attach(MIMEText(content, content_type, "utf-8"))

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.smtp_user:
                server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

        logger.info(f"Email sent to {recipient}: {subject}")

    def get_channel_type(self) -> str:
        return "email"
