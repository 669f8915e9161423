"""
通知服务 - 渲染酒店邮件模板并通过邮件渠道发送

除重置密码邮件外，所有通知在主事务提交后发送，失败只记录日志，不影响请求结果。
模板中的用户输入一律经 html.escape 转义。
"""
import html
import logging
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from app.services.errors import DeliveryError
from app.services.notification.email_channel import EmailChannel

logger = logging.getLogger(__name__)


def _money(amount) -> str:
    return f"{Decimal(str(amount or 0)):,.2f}"


def _e(value) -> str:
    return html.escape("" if value is None else str(value))


class Notifier:
    """酒店邮件通知"""

    def __init__(self, channel: Optional[EmailChannel], hotel_name: str = "Hotel",
                 public_base_url: str = "", currency: str = "NGN"):
        self.channel = channel
        self.hotel_name = hotel_name
        self.public_base_url = public_base_url.rstrip("/")
        self.currency = currency

    @property
    def enabled(self) -> bool:
        return self.channel is not None

    def _layout(self, fullname: str, body: str) -> str:
        return (
            f"<div style=\"font-family: Arial, sans-serif; line-height: 1.5;\">"
            f"<h3>Hi {_e(fullname)},</h3>{body}"
            f"<hr><p>Best regards,<br>{_e(self.hotel_name)}</p></div>"
        )

    def _deliver(self, recipient: Optional[str], subject: str, html_body: str) -> bool:
        """发送并吞掉失败；返回是否发送成功"""
        if not recipient:
            return False
        if not self.enabled:
            logger.debug(f"Mail disabled, skipped '{subject}' to {recipient}")
            return False
        try:
            self.channel.send(recipient, subject, html_body)
            return True
        except Exception as e:
            logger.warning(f"Notification '{subject}' to {recipient} failed: {e}")
            return False

    # ============== 账号 ==============

    def send_password_reset(self, email: str, fullname: str, token: str, category: str) -> None:
        """
        发送重置密码邮件

        邮件是该操作唯一的产出，因此发送失败时抛出 DeliveryError。
        """
        if not self.enabled:
            raise DeliveryError("Mail service is not configured")
        link = _e(f"{self.public_base_url}/{category}/auth/reset_password?token={token}")
        body = (
            "<p>We've received a request to reset your password.</p>"
            "<p>If you didn't make the request, ignore this email. "
            f"Otherwise, open the link below:</p><p><a href=\"{link}\">{link}</a></p>"
        )
        try:
            self.channel.send(email, "Reset your password", self._layout(fullname, body))
        except Exception as e:
            logger.error(f"Password reset mail to {email} failed: {e}")
            raise DeliveryError("Error sending email") from e

    def staff_account_created(self, email: str, fullname: str, role: str, password: str) -> bool:
        body = (
            f"<p>An account has been created for you at {_e(self.hotel_name)} as <b>{_e(role)}</b>.</p>"
            f"<p>Email: {_e(email)}<br>Temporary password: {_e(password)}</p>"
            "<p>Please change your password after your first login.</p>"
        )
        return self._deliver(email, "Your staff account", self._layout(fullname, body))

    def guest_welcome(self, email: Optional[str], fullname: str) -> bool:
        body = f"<p>Welcome to {_e(self.hotel_name)}. Your account is ready.</p>"
        return self._deliver(email, f"Welcome to {self.hotel_name}", self._layout(fullname, body))

    def guest_restricted(self, email: Optional[str], fullname: str, action: str,
                         reason: Optional[str]) -> bool:
        """账号被冻结或封禁"""
        body = (
            f"<p>Your account has been <b>{_e(action)}</b>.</p>"
            f"<p>Reason: {_e(reason or 'Not specified')}</p>"
            "<p>If you believe this is a mistake, please contact the hotel administration.</p>"
        )
        return self._deliver(email, f"Account {action}", self._layout(fullname, body))

    # ============== 业务单据 ==============

    def booking_confirmed(self, email: str, fullname: str, booking_no: str,
                          rooms: Iterable[str], check_in, check_out, amount) -> bool:
        body = (
            f"<p>Your booking <b>{_e(booking_no)}</b> is confirmed.</p>"
            f"<p>Rooms: {', '.join(_e(room) for room in rooms)}<br>"
            f"Check-in: {_e(check_in)}<br>Check-out: {_e(check_out)}<br>"
            f"Amount: {self.currency} {_money(amount)}</p>"
        )
        return self._deliver(email, "Booking confirmation", self._layout(fullname, body))

    def booking_status_changed(self, email: str, fullname: str, booking_no: str, status: str) -> bool:
        body = f"<p>The status of your booking <b>{_e(booking_no)}</b> is now <b>{_e(status)}</b>.</p>"
        return self._deliver(email, f"Booking {status}", self._layout(fullname, body))

    def order_placed(self, email: str, fullname: str, order_no: str,
                     dishes: Iterable[Tuple[str, int]], amount) -> bool:
        rows = "".join(f"<li>{_e(name)} x {_e(qty)}</li>" for name, qty in dishes)
        body = (
            f"<p>We received your order <b>{_e(order_no)}</b>.</p><ul>{rows}</ul>"
            f"<p>Total: {self.currency} {_money(amount)}</p>"
        )
        return self._deliver(email, "Order received", self._layout(fullname, body))

    def laundry_booked(self, email: Optional[str], fullname: str, booking_id: int, total) -> bool:
        body = (
            f"<p>Your laundry request #{_e(booking_id)} has been received.</p>"
            f"<p>Total: {self.currency} {_money(total)}</p>"
        )
        return self._deliver(email, "Laundry request received", self._layout(fullname, body))

    def payment_receipt(self, email: str, fullname: str, reference: str, amount, description: str) -> bool:
        body = (
            f"<p>We received your payment of {self.currency} {_money(amount)}.</p>"
            f"<p>Reference: {_e(reference)}<br>{_e(description)}</p>"
        )
        return self._deliver(email, "Payment receipt", self._layout(fullname, body))

    # ============== 会场与活动 ==============

    def hall_booked(self, email: Optional[str], fullname: str, hall_name: str, hall_type: str,
                    location: Optional[str], check_in, check_out, amount) -> bool:
        body = (
            f"<p>Your booking of <b>{_e(hall_name)}</b> ({_e(hall_type)}) has been created.</p>"
            f"<ul><li>Location: {_e(location or 'Not specified')}</li>"
            f"<li>Check-in: {_e(check_in)}</li><li>Check-out: {_e(check_out)}</li>"
            f"<li>Amount: {self.currency} {_money(amount)}</li></ul>"
        )
        return self._deliver(email, "Hall booking confirmation", self._layout(fullname, body))

    def hall_cancelled(self, email: Optional[str], fullname: str, hall_name: str) -> bool:
        body = (
            f"<p>Your booking of <b>{_e(hall_name)}</b> has been cancelled by our management team.</p>"
            "<p>If you believe this is a mistake, please contact the hotel administration.</p>"
        )
        return self._deliver(email, "Hall booking cancelled", self._layout(fullname, body))

    def event_requested(self, email: Optional[str], fullname: str, event_name: str, date) -> bool:
        body = (
            f"<p>We received your request for <b>{_e(event_name)}</b> on {_e(date)}.</p>"
            "<p>Our team will review it and get back to you shortly.</p>"
        )
        return self._deliver(email, "Event request received", self._layout(fullname, body))

    def event_status_changed(self, email: Optional[str], fullname: str, event_name: str,
                             status: str) -> bool:
        body = f"<p>The status of your event <b>{_e(event_name)}</b> is now <b>{_e(status)}</b>.</p>"
        return self._deliver(email, f"Event {status}", self._layout(fullname, body))

    # ============== 服务请求 ==============

    def service_requested(self, email: Optional[str], fullname: str, service_name: str,
                          room: str, amount) -> bool:
        body = (
            f"<p>Your request for <b>{_e(service_name)}</b> (room {_e(room)}) has been received.</p>"
            f"<p>Amount: {self.currency} {_money(amount)}</p>"
        )
        return self._deliver(email, "Service request received", self._layout(fullname, body))
