"""
邮件服务：SMTP 发送邮件
EMAIL_ENABLED 关闭时只记录日志，不实际发送
"""
import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from hrs.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """SMTP 邮件发送"""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        sender_email: Optional[str] = None,
        use_tls: Optional[bool] = None,
        enabled: Optional[bool] = None,
    ):
        self.smtp_host = smtp_host or settings.SMTP_HOST
        self.smtp_port = smtp_port or settings.SMTP_PORT
        self.smtp_user = smtp_user if smtp_user is not None else settings.SMTP_USER
        self.smtp_password = smtp_password if smtp_password is not None else settings.SMTP_PASSWORD
        self.sender_email = sender_email or settings.SMTP_SENDER or self.smtp_user
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self.enabled = settings.EMAIL_ENABLED if enabled is None else enabled

    def send(self, recipient: str, subject: str, content: str, content_type: str = "plain") -> bool:
        """
        发送邮件

        Args:
            recipient: 收件人邮箱地址
            subject: 邮件标题
            content: 邮件内容
            content_type: 'plain' 或 'html'

        Returns:
            是否发送成功
        """
        if not self.enabled:
            logger.info(f"Email disabled, skipped message to {recipient}: {subject}")
            return False

        try:
            msg = MIMEMultipart()
            msg["From"] = self.sender_email
            msg["To"] = recipient
            msg["Subject"] = subject
            msg.attach(MIMEText(content, content_type, "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent to {recipient}: {subject}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email to {recipient}: {e}")
            return False

    def send_verification_code(self, recipient: str, name: str, code: str, minutes: int) -> bool:
        body = (
            f"Hello {name},\n\n"
            f"Your verification code is: {code}\n"
            f"The code expires in {minutes} minutes.\n"
        )
        return self.send(recipient, "Your verification code", body)

    def send_password_reset(self, recipient: str, name: str, token: str, hours: int) -> bool:
        body = (
            f"Hello {name},\n\n"
            f"Use this token to reset your password: {token}\n"
            f"The token expires in {hours} hours.\n"
        )
        return self.send(recipient, "Password reset request", body)
