"""
实体对象定义
所有业务实体（用户、房型、房间、预订、入住记录、支付、消息、投诉、出行预订等）
状态字段统一使用枚举，不再使用自由字符串
"""
import json
from datetime import datetime
from enum import Enum
from typing import List
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, ForeignKey, Text,
    Enum as SQLEnum, Boolean, Numeric, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from hrs.database import Base


# ============== 枚举定义 ==============

class UserRole(str, Enum):
    """用户角色"""
    ADMIN = "admin"                # 系统管理员
    MANAGER = "manager"            # 经理
    RECEPTIONIST = "receptionist"  # 前台
    CUSTOMER = "customer"          # 客户


class RoomStatus(str, Enum):
    """房间状态"""
    AVAILABLE = "available"      # 可用
    OCCUPIED = "occupied"        # 入住中
    MAINTENANCE = "maintenance"  # 维修中
    CLEANING = "cleaning"        # 清洁中


class BookingStatus(str, Enum):
    """预订状态"""
    PENDING = "pending"          # 待确认
    CONFIRMED = "confirmed"      # 已确认
    CHECKED_IN = "checked_in"    # 已入住
    CHECKED_OUT = "checked_out"  # 已退房
    CANCELLED = "cancelled"      # 已取消


class PaymentStatus(str, Enum):
    """支付状态"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class RefundStatus(str, Enum):
    """退款申请状态（为空表示未申请）"""
    PENDING = "pending"      # 待审核
    APPROVED = "approved"    # 已批准
    DECLINED = "declined"    # 已拒绝


class TravelBookingStatus(str, Enum):
    """出行预订状态"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ComplaintStatus(str, Enum):
    """投诉状态"""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ComplaintPriority(str, Enum):
    """投诉优先级"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class VerificationPurpose(str, Enum):
    """验证码用途"""
    VERIFY_EMAIL = "verify_email"
    LOGIN = "login"
    PASSWORD_RESET = "password_reset"


STAFF_ROLES = (UserRole.ADMIN, UserRole.MANAGER, UserRole.RECEPTIONIST)


def _load_json_list(raw) -> List:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


# ============== 实体定义 ==============

class User(Base):
    """
    用户对象
    客户与员工共用一张表，通过 role 区分
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone_number = Column(String(20))
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.CUSTOMER)
    is_verified = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    preferred_language = Column(String(10), default="ENG")
    theme_preference = Column(String(10), default="dark")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime)

    # 链接
    bookings = relationship("Booking", back_populates="customer", foreign_keys="Booking.customer_id")
    travel_bookings = relationship("TravelBooking", back_populates="customer")
    permission_overrides = relationship(
        "UserPermissionOverride", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class RoomType(Base):
    """房型对象"""
    __tablename__ = "room_types"

    id = Column(Integer, primary_key=True, index=True)
    type_name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    base_price = Column(Numeric(10, 2), nullable=False)
    max_occupancy = Column(Integer, nullable=False, default=2)
    amenities = Column(Text)                               # 设施名称列表(JSON)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    rooms = relationship("Room", back_populates="room_type")

    @property
    def amenity_list(self) -> List[str]:
        return _load_json_list(self.amenities)


class Amenity(Base):
    """设施目录"""
    __tablename__ = "amenities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)
    icon = Column(String(50))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Room(Base):
    """房间对象"""
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(20), unique=True, nullable=False)
    room_type_id = Column(Integer, ForeignKey("room_types.id"), nullable=False)
    floor_number = Column(Integer)
    status = Column(SQLEnum(RoomStatus), default=RoomStatus.AVAILABLE)
    current_price = Column(Numeric(10, 2), nullable=False, default=0)
    description = Column(Text)
    image_urls = Column(Text)                              # 图片地址列表(JSON)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    room_type = relationship("RoomType", back_populates="rooms")
    bookings = relationship("Booking", back_populates="room")

    @property
    def images(self) -> List[str]:
        return _load_json_list(self.image_urls)

    @property
    def nightly_price(self):
        """当前价格为 0 时回退到房型基础价"""
        if self.current_price and self.current_price > 0:
            return self.current_price
        return self.room_type.base_price if self.room_type else 0


class Booking(Base):
    """
    预订对象 - 客房预订的聚合根
    退款申请通过 refund_status 表示，预订状态保持不变直到前台审核
    """
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="check_out_after_check_in"),
    )

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    booking_status = Column(SQLEnum(BookingStatus), default=BookingStatus.PENDING)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    payment_method = Column(String(50))
    qr_code = Column(String(255))
    number_of_guests = Column(Integer, nullable=False, default=1)
    special_requests = Column(Text)
    cancellation_reason = Column(Text)
    cancelled_at = Column(DateTime)
    refund_status = Column(SQLEnum(RefundStatus), nullable=True)
    refund_requested_at = Column(DateTime)
    refund_processed_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("User", back_populates="bookings", foreign_keys=[customer_id])
    room = relationship("Room", back_populates="bookings")
    stay_record = relationship(
        "CheckInCheckOut", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )
    payments = relationship("Payment", back_populates="booking", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="booking", cascade="all, delete-orphan")

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    @property
    def is_checked_in(self) -> bool:
        """存在带时间戳的入住记录"""
        return bool(self.stay_record and self.stay_record.check_in_time)


class CheckInCheckOut(Base):
    """入住/退房记录 - 每个预订至多一条"""
    __tablename__ = "check_in_check_out"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    receptionist_id = Column(Integer, ForeignKey("users.id"))
    check_in_time = Column(DateTime)
    check_out_time = Column(DateTime)
    actual_check_out_date = Column(Date)
    room_key_issued = Column(Boolean, default=False)
    additional_charges = Column(Numeric(10, 2), default=0)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    booking = relationship("Booking", back_populates="stay_record")
    receptionist = relationship("User")


class Payment(Base):
    """支付记录"""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    transaction_id = Column(String(255))
    payment_date = Column(DateTime, default=datetime.utcnow)
    refund_amount = Column(Numeric(10, 2), default=0)
    refund_date = Column(DateTime)
    notes = Column(String(500))

    booking = relationship("Booking", back_populates="payments")


class ChatMessage(Base):
    """客户与前台之间的聊天消息"""
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    receptionist_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    message_text = Column(String(2000), nullable=False)
    is_from_customer = Column(Boolean, nullable=False)
    is_read = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    read_at = Column(DateTime)

    customer = relationship("User", foreign_keys=[customer_id])
    receptionist = relationship("User", foreign_keys=[receptionist_id])


class Complaint(Base):
    """客户投诉 / 服务请求"""
    __tablename__ = "complaints"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    category = Column(String(100))
    subject = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(SQLEnum(ComplaintStatus), default=ComplaintStatus.OPEN)
    priority = Column(SQLEnum(ComplaintPriority), default=ComplaintPriority.MEDIUM)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True)
    resolution = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    resolved_at = Column(DateTime)

    customer = relationship("User", foreign_keys=[customer_id])
    assignee = relationship("User", foreign_keys=[assigned_to])
    booking = relationship("Booking")


class Review(Base):
    """住后评价"""
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="rating_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    category = Column(String(100))
    created_at = Column(DateTime, default=datetime.utcnow)

    booking = relationship("Booking", back_populates="reviews")
    customer = relationship("User")


class TravelBooking(Base):
    """出行 / 景点套餐预订"""
    __tablename__ = "travel_bookings"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    attraction_name = Column(String(200), nullable=False)
    attraction_type = Column(String(50), nullable=False)   # Nature, Culture, Adventure, Wildlife
    travel_date = Column(Date, nullable=False)
    number_of_participants = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(10, 2), nullable=False)
    booking_status = Column(SQLEnum(TravelBookingStatus), default=TravelBookingStatus.PENDING)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING)
    payment_method = Column(String(50))
    special_requests = Column(Text)
    cancellation_reason = Column(Text)
    refund_status = Column(SQLEnum(RefundStatus), nullable=True)
    refund_requested_at = Column(DateTime)
    refund_processed_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("User", back_populates="travel_bookings")


class Role(Base):
    """角色定义（名称、描述、颜色、是否停用）"""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(SQLEnum(UserRole), unique=True, nullable=False)
    name = Column(String(50), nullable=False)
    description = Column(String(255), default="")
    color = Column(String(20), default="")
    is_disabled = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    permissions = relationship(
        "RolePermission", back_populates="role", cascade="all, delete-orphan"
    )


class RolePermission(Base):
    """角色默认权限"""
    __tablename__ = "role_permissions"
    __table_args__ = (UniqueConstraint("role_id", "permission", name="uq_role_permission"),)

    id = Column(Integer, primary_key=True, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    permission = Column(String(100), nullable=False)

    role = relationship("Role", back_populates="permissions")


class UserPermissionOverride(Base):
    """用户级权限覆盖，优先于角色默认权限"""
    __tablename__ = "user_permission_overrides"
    __table_args__ = (UniqueConstraint("user_id", "permission", name="uq_user_permission"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = Column(String(100), nullable=False)
    allowed = Column(Boolean, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="permission_overrides")


class SystemSetting(Base):
    """系统设置 key-value"""
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, index=True)
    setting_key = Column(String(200), unique=True, nullable=False, index=True)
    setting_value = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AuditLog(Base):
    """
    审计日志
    记录关键操作
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(100), nullable=False)
    table_name = Column(String(100))
    record_id = Column(Integer)
    old_value = Column(Text)
    new_value = Column(Text)
    ip_address = Column(String(50))
    user_agent = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User")


class EmailVerificationCode(Base):
    """邮箱验证码 / 登录验证码 / 重置密码令牌"""
    __tablename__ = "email_verification_codes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(64), nullable=False)
    purpose = Column(SQLEnum(VerificationPurpose), nullable=False, default=VerificationPurpose.VERIFY_EMAIL)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")
