"""
用户服务 - 注册、登录、密码、个人资料、用户与员工管理
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from hrs.models.entities import (
    User, UserRole, VerificationPurpose, STAFF_ROLES, Booking, TravelBooking,
    ChatMessage, Complaint, Review, EmailVerificationCode, CheckInCheckOut, AuditLog
)
from hrs.security.auth import get_password_hash, verify_password, create_access_token
from hrs.security.permissions import AUTH_LOGIN

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
PROFILE_FIELDS = ("first_name", "last_name", "phone_number", "preferred_language", "theme_preference")


def _validate_password(password: Optional[str]) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"密码长度至少 {MIN_PASSWORD_LENGTH} 位")


class UserService:
    """用户服务"""

    def __init__(self, db: Session, verification_service=None):
        self.db = db
        self._verification_service = verification_service

    @property
    def verification(self):
        if self._verification_service is None:
            from hrs.services.verification_service import VerificationService
            self._verification_service = VerificationService(self.db)
        return self._verification_service

    # ============== 查询 ==============

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        return self.db.query(User).filter(
            func.lower(User.email) == email.strip().lower()
        ).first()

    def list_users(self, role: Optional[UserRole] = None, search: Optional[str] = None) -> List[User]:
        q = self.db.query(User)
        if role:
            q = q.filter(User.role == role)
        if search:
            like = f"%{search.strip()}%"
            q = q.filter(or_(
                User.email.ilike(like), User.first_name.ilike(like), User.last_name.ilike(like)
            ))
        return q.order_by(User.created_at.desc(), User.id.desc()).all()

    def list_staff(self) -> List[User]:
        return self.db.query(User).filter(
            User.role.in_(STAFF_ROLES)
        ).order_by(User.role, User.last_name, User.first_name).all()

    # ============== 注册与登录 ==============

    def _create(self, data: Dict, role: UserRole, is_verified: bool) -> User:
        email = (data.get("email") or "").strip()
        if not email:
            raise ValueError("邮箱不能为空")
        if self.get_by_email(email):
            raise ValueError("该邮箱已被注册")
        _validate_password(data.get("password"))

        user = User(
            email=email.lower(),
            password_hash=get_password_hash(data["password"]),
            first_name=(data.get("first_name") or "").strip(),
            last_name=(data.get("last_name") or "").strip(),
            phone_number=data.get("phone_number"),
            role=role,
            is_verified=is_verified,
            is_active=data.get("is_active", True),
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def register(self, data: Dict) -> User:
        """客户自助注册，并发送邮箱验证码"""
        user = self._create(data, UserRole.CUSTOMER, is_verified=False)
        logger.info(f"Customer registered: {user.id}")
        try:
            self.verification.issue_code(user, VerificationPurpose.VERIFY_EMAIL)
        except ValueError as e:
            logger.warning(f"Verification code not issued for user {user.id}: {e}")
        return user

    def authenticate(self, email: str, password: str, code: Optional[str] = None) -> Optional[Dict]:
        """
        用户登录

        Returns:
            登录结果；邮箱或密码错误时返回 None

        Raises:
            ValueError: 账号停用、无登录权限或需要二次验证
        """
        from hrs.services.config_service import ConfigService
        from hrs.services.permission_service import PermissionService

        user = self.get_by_email(email)
        if not user or not verify_password(password or "", user.password_hash):
            return None
        if not user.is_active:
            raise ValueError("账号已停用")

        permissions = PermissionService(self.db)
        if not permissions.resolve_permission(user, AUTH_LOGIN):
            raise ValueError("login_disabled")

        if ConfigService(self.db).get_bool("TwoFactorAuth", False):
            if not code:
                try:
                    self.verification.issue_code(user, VerificationPurpose.LOGIN)
                except ValueError as e:
                    logger.info(f"Login code not reissued for user {user.id}: {e}")
                raise ValueError("requires_verification")
            if not self.verification.verify_code(user, code, VerificationPurpose.LOGIN):
                raise ValueError("验证码无效或已过期")

        user.last_login = datetime.utcnow()
        self.db.commit()
        logger.info(f"User {user.id} logged in")

        return {
            "access_token": create_access_token(user.id, user.role),
            "token_type": "bearer",
            "user": user,
            "permissions": permissions.effective_permissions(user),
        }

    def change_password(self, user: User, old_password: str, new_password: str) -> None:
        if not verify_password(old_password or "", user.password_hash):
            raise ValueError("原密码错误")
        _validate_password(new_password)
        user.password_hash = get_password_hash(new_password)
        self.db.commit()
        logger.info(f"User {user.id} changed password")

    # ============== 邮箱验证 ==============

    def send_verification_code(self, email: str) -> None:
        user = self.get_by_email(email)
        if not user:
            raise ValueError("用户不存在")
        self.verification.issue_code(user, VerificationPurpose.VERIFY_EMAIL)

    def verify_email(self, email: str, code: str) -> bool:
        user = self.get_by_email(email)
        if not user:
            raise ValueError("用户不存在")
        if not self.verification.verify_code(user, code, VerificationPurpose.VERIFY_EMAIL):
            raise ValueError("验证码无效或已过期")
        logger.info(f"User {user.id} verified email")
        return True

    # ============== 忘记/重置密码 ==============

    def forgot_password(self, email: str) -> None:
        """仅客户可自助重置；未知邮箱静默成功"""
        user = self.get_by_email(email)
        if not user:
            return
        if user.role != UserRole.CUSTOMER:
            raise ValueError("员工账号请联系管理员重置密码")
        self.verification.issue_reset_token(user)

    def verify_reset_token(self, email: str, token: str) -> bool:
        user = self.get_by_email(email)
        if not user:
            return False
        return self.verification.find_reset_token(user, token) is not None

    def reset_password(self, email: str, token: str, new_password: str, confirm_password: str) -> None:
        _validate_password(new_password)
        if new_password != confirm_password:
            raise ValueError("两次输入的密码不一致")
        user = self.get_by_email(email)
        record = self.verification.find_reset_token(user, token) if user else None
        if record is None:
            raise ValueError("重置链接无效或已过期")

        user.password_hash = get_password_hash(new_password)
        record.used = True
        self.db.commit()
        logger.info(f"User {user.id} reset password")

    # ============== 个人资料 ==============

    def update_profile(self, user: User, data: Dict) -> User:
        for key in PROFILE_FIELDS:
            if data.get(key) is not None:
                setattr(user, key, data[key])
        self.db.commit()
        self.db.refresh(user)
        return user

    # ============== 管理员: 用户管理 ==============

    def create_user(self, data: Dict) -> User:
        role = data.get("role") or UserRole.CUSTOMER
        user = self._create(data, UserRole(role), is_verified=True)
        logger.info(f"User created by admin: {user.id} ({user.role.value})")
        return user

    def update_user(self, user_id: int, data: Dict) -> Optional[User]:
        user = self.get_user(user_id)
        if not user:
            return None

        email = data.get("email")
        if email and email.strip().lower() != user.email.lower():
            if self.get_by_email(email):
                raise ValueError("该邮箱已被注册")
            user.email = email.strip().lower()
        for key in PROFILE_FIELDS:
            if data.get(key) is not None:
                setattr(user, key, data[key])
        if data.get("role") is not None:
            user.role = UserRole(data["role"])
        if data.get("is_active") is not None:
            user.is_active = data["is_active"]
        if data.get("is_verified") is not None:
            user.is_verified = data["is_verified"]
        if data.get("password"):
            _validate_password(data["password"])
            user.password_hash = get_password_hash(data["password"])

        self.db.commit()
        self.db.refresh(user)
        return user

    def delete_user(self, user_id: int, acting_user_id: Optional[int] = None) -> bool:
        user = self.get_user(user_id)
        if not user:
            return False
        if acting_user_id is not None and user.id == acting_user_id:
            raise ValueError("不能删除当前登录账号")
        has_bookings = self.db.query(Booking).filter(Booking.customer_id == user_id).count()
        has_travel = self.db.query(TravelBooking).filter(TravelBooking.customer_id == user_id).count()
        if has_bookings or has_travel:
            raise ValueError("该用户存在预订记录，请改为停用")

        # 清理客户自身数据，员工引用置空
        for model in (ChatMessage, Complaint, Review):
            self.db.query(model).filter(model.customer_id == user_id).delete(synchronize_session=False)
        self.db.query(EmailVerificationCode).filter(
            EmailVerificationCode.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.query(ChatMessage).filter(ChatMessage.receptionist_id == user_id).update(
            {ChatMessage.receptionist_id: None}, synchronize_session=False
        )
        self.db.query(Complaint).filter(Complaint.assigned_to == user_id).update(
            {Complaint.assigned_to: None}, synchronize_session=False
        )
        self.db.query(CheckInCheckOut).filter(CheckInCheckOut.receptionist_id == user_id).update(
            {CheckInCheckOut.receptionist_id: None}, synchronize_session=False
        )
        self.db.query(AuditLog).filter(AuditLog.user_id == user_id).update(
            {AuditLog.user_id: None}, synchronize_session=False
        )
        self.db.delete(user)
        self.db.commit()
        logger.info(f"User {user_id} deleted")
        return True

    # ============== 员工管理 ==============

    def create_staff(self, data: Dict) -> User:
        role = UserRole(data.get("role") or UserRole.RECEPTIONIST)
        if role not in STAFF_ROLES:
            raise ValueError("员工角色必须为 admin / manager / receptionist")
        user = self._create(data, role, is_verified=True)
        logger.info(f"Staff created: {user.id} ({role.value})")
        return user

    def get_staff(self, user_id: int) -> Optional[User]:
        user = self.get_user(user_id)
        if user and user.role in STAFF_ROLES:
            return user
        return None

    def update_staff(self, user_id: int, data: Dict) -> Optional[User]:
        if not self.get_staff(user_id):
            return None
        if data.get("role") is not None and UserRole(data["role"]) not in STAFF_ROLES:
            raise ValueError("员工角色必须为 admin / manager / receptionist")
        return self.update_user(user_id, data)

    def delete_staff(self, user_id: int, acting_user_id: Optional[int] = None) -> bool:
        if not self.get_staff(user_id):
            return False
        return self.delete_user(user_id, acting_user_id)
