import logging
import smtplib
from email.message import EmailMessage
from html import escape
from typing import Optional

log = logging.getLogger(__name__)

ALERT_TEMPLATE = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #dc3545;">Low Stock Alert</h2>
  <div style="background: #f8f9fa; padding: 20px; border-radius: 8px; border-left: 4px solid #dc3545;">
    <h3 style="margin-top: 0; color: #333;">Product: {name}</h3>
    <p><strong>Current Stock:</strong> {stock} units</p>
    <p><strong>Alert Threshold:</strong> {threshold} units</p>
    <p style="color: #dc3545;"><strong>Action Required:</strong> Please restock this item soon.</p>
  </div>
  <div style="margin-top: 20px; padding: 15px; background: #e3f2fd; border-radius: 8px;">
    <h4 style="margin-top: 0;">What to do:</h4>
    <ul>
      <li>Check supplier availability</li>
      <li>Place restock order</li>
      <li>Update inventory in GHL system</li>
      <li>Monitor sales to prevent stockout</li>
    </ul>
  </div>
  <p style="margin-top: 20px; font-size: 12px; color: #666;">
    This alert was sent automatically by the YMC POS System when stock levels reached the threshold.
  </p>
</div>
"""


class LowStockNotifier:
    """
    Emails a low-stock alert per product. Best effort: a failed send is logged
    and the sale that triggered it carries on.
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: Optional[str],
        password: Optional[str],
        recipient: Optional[str] = None,
        smtp_factory=smtplib.SMTP,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.recipient = recipient or user
        self.smtp_factory = smtp_factory

    @classmethod
    def from_settings(cls, settings) -> "LowStockNotifier":
        return cls(
            settings.EMAIL_HOST,
            settings.EMAIL_PORT,
            settings.EMAIL_USER,
            settings.EMAIL_PASS,
            settings.ALERT_EMAIL,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.user and self.password and self.recipient)

    def build_message(self, product_name: str, current_stock: int, threshold: int) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = f"Low Stock Alert - {product_name}"
        msg["From"] = self.user
        msg["To"] = self.recipient
        msg.set_content(
            f"{product_name} is low on stock: {current_stock} units left (threshold {threshold})."
        )
        msg.add_alternative(
            ALERT_TEMPLATE.format(name=escape(product_name), stock=current_stock, threshold=threshold),
            subtype="html",
        )
        return msg

    def send_low_stock_alert(self, product_name: str, current_stock: int, threshold: int = 20) -> bool:
        if not self.enabled:
            log.info("Email not configured, skipping low stock alert for %s", product_name)
            return False
        msg = self.build_message(product_name, current_stock, threshold)
        try:
            with self.smtp_factory(self.host, self.port, timeout=15) as smtp:
                smtp.starttls()
                smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            log.error("Failed to send low stock alert for %s: %s", product_name, e)
            return False
        log.info("Low stock alert sent for %s (%s units remaining)", product_name, current_stock)
        return True
