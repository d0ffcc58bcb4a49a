"""
Pydantic 模式定义
用于 API 请求/响应验证
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, field_validator, ConfigDict
from hrs.models.entities import (
    UserRole, RoomStatus, BookingStatus, PaymentStatus,
    ComplaintStatus, ComplaintPriority
)


# ============== 认证 Schemas ==============

class RegisterRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255)
    phone_number: Optional[str] = Field(None, max_length=20)
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("邮箱格式不正确")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str
    code: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    role: UserRole
    is_verified: bool = False
    is_active: bool = True
    preferred_language: Optional[str] = None
    theme_preference: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    permissions: List[str] = []


class PasswordChange(BaseModel):
    old_password: str
    new_password: str


class EmailRequest(BaseModel):
    email: str


class VerifyEmailRequest(BaseModel):
    email: str
    code: str


class ResetTokenRequest(BaseModel):
    email: str
    token: str


class ResetPasswordRequest(BaseModel):
    email: str
    token: str
    new_password: str
    confirm_password: str


# ============== 个人资料 / 用户管理 Schemas ==============

class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20)
    preferred_language: Optional[str] = Field(None, max_length=10)
    theme_preference: Optional[str] = Field(None, max_length=10)


class UserCreate(BaseModel):
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    email: str = Field(..., max_length=255)
    phone_number: Optional[str] = None
    password: str
    role: Optional[UserRole] = None
    is_active: bool = True


class UserUpdate(ProfileUpdate):
    email: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None
    password: Optional[str] = None


class RoleAssign(BaseModel):
    user_id: int
    role: str


# ============== 角色与权限 Schemas ==============

class RoleDefinition(BaseModel):
    role: str
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    permissions: List[str] = []
    disabled: bool = False


class RoleStatusUpdate(BaseModel):
    enabled: bool


class PermissionOverrides(BaseModel):
    overrides: Dict[int, Dict[str, bool]]


# ============== 房间 Schemas ==============

class RoomTypeBase(BaseModel):
    type_name: str = Field(..., max_length=100)
    description: Optional[str] = None
    base_price: Decimal = Field(..., ge=0)
    max_occupancy: int = Field(default=2, ge=1)
    amenities: List[str] = []


class RoomTypeCreate(RoomTypeBase):
    pass


class RoomTypeUpdate(BaseModel):
    type_name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    max_occupancy: Optional[int] = Field(None, ge=1)
    amenities: Optional[List[str]] = None


class RoomCreate(BaseModel):
    room_number: str = Field(..., max_length=20)
    room_type_id: int
    floor_number: Optional[int] = None
    status: Optional[RoomStatus] = None
    current_price: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None
    image_urls: List[str] = []


class RoomUpdate(BaseModel):
    room_number: Optional[str] = Field(None, max_length=20)
    room_type_id: Optional[int] = None
    floor_number: Optional[int] = None
    status: Optional[RoomStatus] = None
    current_price: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None
    image_urls: Optional[List[str]] = None


class AmenityCreate(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool = True


class AmenityUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None


class AmenityResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


# ============== 预订 Schemas ==============

class BookRoomRequest(BaseModel):
    room_id: int
    check_in_date: date
    check_out_date: date
    number_of_guests: int = Field(default=1, ge=1)
    payment_method: str = "credit_card"
    special_requests: Optional[str] = None


class CancelBookingRequest(BaseModel):
    reason: Optional[str] = None


class BookingUpdate(BaseModel):
    room_id: Optional[int] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    number_of_guests: Optional[int] = Field(None, ge=1)
    booking_status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = None
    special_requests: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


# ============== 入住/退房 Schemas ==============

class CheckInRequest(BaseModel):
    room_number: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class AdditionalCharge(BaseModel):
    description: str = ""
    amount: Decimal = Field(..., ge=0)


class CheckOutRequest(BaseModel):
    action: str = "checkout"
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    additional_charges: List[AdditionalCharge] = []


class DeclineRefundRequest(BaseModel):
    reason: Optional[str] = None


# ============== 出行 Schemas ==============

class TravelBookingCreate(BaseModel):
    attraction_name: str = Field(..., max_length=200)
    attraction_type: str = Field(..., max_length=50)
    travel_date: date
    number_of_participants: int = Field(default=1, ge=1)
    total_price: Decimal = Field(..., ge=0)
    payment_method: Optional[str] = None
    special_requests: Optional[str] = None
    image_urls: List[str] = []


class ManagerTravelBookingCreate(TravelBookingCreate):
    customer_id: int


class TravelRefundRequest(BaseModel):
    travel_booking_id: int
    reason: Optional[str] = None


# ============== 聊天 Schemas ==============

class ChatMessageCreate(BaseModel):
    message: str


class ChatReplyCreate(BaseModel):
    customer_id: int
    message: str


# ============== 评价与投诉 Schemas ==============

class FeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    category: Optional[str] = None
    booking_id: Optional[int] = None


class ComplaintCreate(BaseModel):
    subject: str = Field(..., max_length=200)
    description: str
    category: Optional[str] = None
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    booking_id: Optional[int] = None


class ComplaintUpdate(BaseModel):
    status: Optional[ComplaintStatus] = None
    assigned_to: Optional[int] = None
    resolution: Optional[str] = None


# ============== 系统配置 Schemas ==============

class ConfigResponse(BaseModel):
    maintenance_mode: bool
    email_notifications: bool
    two_factor_auth: bool
    auto_backup: bool
    currency: Optional[str] = None
    hotel_name: Optional[str] = None
