"""
验证码服务：邮箱验证码 / 登录验证码 / 重置密码令牌

规则:
- 同一用途每分钟最多 1 个，每小时最多 VERIFICATION_CODE_MAX_PER_HOUR 个
- 生成新验证码时作废之前未使用的验证码
- 验证码 6 位数字，VERIFICATION_CODE_EXPIRE_MINUTES 分钟后过期
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session
from hrs.config import settings
from hrs.models.entities import User, EmailVerificationCode, VerificationPurpose

logger = logging.getLogger(__name__)


class VerificationService:
    """验证码生成与校验"""

    def __init__(self, db: Session, email_service=None):
        self.db = db
        if email_service is None:
            from hrs.services.email_service import EmailService
            email_service = EmailService()
        self.email_service = email_service

    def _check_rate_limit(self, user: User, purpose: VerificationPurpose, now: datetime) -> None:
        one_hour_ago = now - timedelta(hours=1)
        one_minute_ago = now - timedelta(minutes=1)
        recent = self.db.query(EmailVerificationCode).filter(
            EmailVerificationCode.user_id == user.id,
            EmailVerificationCode.purpose == purpose,
            EmailVerificationCode.created_at >= one_hour_ago
        ).all()
        if any(c.created_at >= one_minute_ago for c in recent):
            raise ValueError("请至少等待 1 分钟后再获取新的验证码")
        if len(recent) >= settings.VERIFICATION_CODE_MAX_PER_HOUR:
            raise ValueError("验证码请求过于频繁，请稍后再试")

    def _invalidate(self, user: User, purpose: VerificationPurpose) -> None:
        self.db.query(EmailVerificationCode).filter(
            EmailVerificationCode.user_id == user.id,
            EmailVerificationCode.purpose == purpose,
            EmailVerificationCode.used == False
        ).update({EmailVerificationCode.used: True}, synchronize_session=False)

    def issue_code(self, user: User,
                   purpose: VerificationPurpose = VerificationPurpose.VERIFY_EMAIL) -> str:
        """生成并发送 6 位验证码，返回验证码"""
        now = datetime.utcnow()
        self._check_rate_limit(user, purpose, now)
        self._invalidate(user, purpose)

        code = f"{secrets.randbelow(900000) + 100000}"
        self.db.add(EmailVerificationCode(
            user_id=user.id,
            code=code,
            purpose=purpose,
            expires_at=now + timedelta(minutes=settings.VERIFICATION_CODE_EXPIRE_MINUTES),
            used=False,
            created_at=now,
        ))
        self.db.commit()

        if not self.email_service.send_verification_code(
            user.email, user.first_name, code, settings.VERIFICATION_CODE_EXPIRE_MINUTES
        ):
            logger.warning(f"Verification code for user {user.id} was not delivered by email")
        return code

    def verify_code(self, user: User, code: str,
                    purpose: VerificationPurpose = VerificationPurpose.VERIFY_EMAIL) -> bool:
        """校验验证码，成功后标记已使用"""
        if not code:
            return False
        record = self.db.query(EmailVerificationCode).filter(
            EmailVerificationCode.user_id == user.id,
            EmailVerificationCode.purpose == purpose,
            EmailVerificationCode.code == code.strip(),
            EmailVerificationCode.used == False,
            EmailVerificationCode.expires_at > datetime.utcnow()
        ).order_by(EmailVerificationCode.created_at.desc()).first()
        if record is None:
            return False

        record.used = True
        if purpose == VerificationPurpose.VERIFY_EMAIL:
            user.is_verified = True
        self.db.commit()
        return True

    # ============== 重置密码令牌 ==============

    def issue_reset_token(self, user: User) -> str:
        """生成 url-safe 重置令牌（旧令牌作废）"""
        now = datetime.utcnow()
        self._invalidate(user, VerificationPurpose.PASSWORD_RESET)
        token = secrets.token_urlsafe(32)
        self.db.add(EmailVerificationCode(
            user_id=user.id,
            code=token,
            purpose=VerificationPurpose.PASSWORD_RESET,
            expires_at=now + timedelta(hours=settings.PASSWORD_RESET_EXPIRE_HOURS),
            used=False,
            created_at=now,
        ))
        self.db.commit()

        if not self.email_service.send_password_reset(
            user.email, user.first_name, token, settings.PASSWORD_RESET_EXPIRE_HOURS
        ):
            logger.warning(f"Password reset token for user {user.id} was not delivered by email")
        return token

    def find_reset_token(self, user: User, token: str) -> Optional[EmailVerificationCode]:
        if not token:
            return None
        return self.db.query(EmailVerificationCode).filter(
            EmailVerificationCode.user_id == user.id,
            EmailVerificationCode.purpose == VerificationPurpose.PASSWORD_RESET,
            EmailVerificationCode.code == token,
            EmailVerificationCode.used == False,
            EmailVerificationCode.expires_at > datetime.utcnow()
        ).first()
