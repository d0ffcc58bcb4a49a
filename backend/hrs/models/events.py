"""
领域事件定义 (Domain Events)
预订、入住、退房、退款、出行预订等核心业务事件
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime, date
from typing import Optional, Dict, Any


class EventType(str, Enum):
    """事件类型枚举"""
    # 预订相关
    BOOKING_CREATED = "booking.created"
    BOOKING_CANCELLATION_REQUESTED = "booking.cancellation_requested"

    # 入住/退房
    BOOKING_CHECKED_IN = "booking.checked_in"
    BOOKING_CHECKED_OUT = "booking.checked_out"

    # 退款
    REFUND_APPROVED = "refund.approved"
    REFUND_DECLINED = "refund.declined"

    # 出行预订
    TRAVEL_BOOKING_CREATED = "travel_booking.created"


@dataclass
class BaseEventData:
    """事件数据基类"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
        return result


@dataclass
class BookingCreatedData(BaseEventData):
    """预订创建事件数据"""
    booking_id: int = 0
    customer_id: int = 0
    customer_email: str = ""
    customer_name: str = ""
    room_id: int = 0
    room_number: str = ""
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    total_price: float = 0.0
    qr_code: str = ""


@dataclass
class CancellationRequestedData(BaseEventData):
    """取消/退款申请事件数据"""
    kind: str = "room"          # room / travel
    booking_id: int = 0
    customer_id: int = 0
    reason: str = ""


@dataclass
class BookingCheckedInData(BaseEventData):
    """入住事件数据"""
    booking_id: int = 0
    customer_id: int = 0
    room_id: int = 0
    room_number: str = ""
    receptionist_id: Optional[int] = None
    check_in_time: Optional[datetime] = None


@dataclass
class BookingCheckedOutData(BaseEventData):
    """退房事件数据"""
    booking_id: int = 0
    customer_id: int = 0
    room_id: int = 0
    room_number: str = ""
    receptionist_id: Optional[int] = None
    days_late: int = 0
    late_fee: float = 0.0
    total_amount: float = 0.0
    automatic: bool = False


@dataclass
class RefundProcessedData(BaseEventData):
    """退款审核结果事件数据"""
    kind: str = "room"
    booking_id: int = 0
    customer_id: int = 0
    approved: bool = True
    amount: float = 0.0
    reason: str = ""
    receptionist_id: Optional[int] = None


@dataclass
class TravelBookingCreatedData(BaseEventData):
    """出行预订创建事件数据"""
    travel_booking_id: int = 0
    customer_id: int = 0
    customer_email: str = ""
    customer_name: str = ""
    attraction_name: str = ""
    travel_date: Optional[date] = None
    number_of_participants: int = 1
    total_price: float = 0.0
