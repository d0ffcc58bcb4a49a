"""
入住服务 - 前台办理入住
管理 CheckInCheckOut 记录（每个预订至多一条）
支持事件驱动：发布入住事件
"""
import logging
from typing import List, Optional, Callable
from datetime import datetime, date
from sqlalchemy.orm import Session
from hrs.models.entities import (
    Booking, BookingStatus, PaymentStatus, Room, RoomStatus, CheckInCheckOut
)
from hrs.models.events import EventType, BookingCheckedInData
from hrs.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)


class CheckInService:
    """入住服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        # 支持依赖注入事件发布器，便于测试
        self._publish_event = event_publisher or event_bus.publish

    @staticmethod
    def is_eligible(booking: Booking, today: Optional[date] = None) -> bool:
        """已确认、入住日期不晚于今天、且尚无带时间戳的入住记录"""
        today = today or date.today()
        return (
            booking.booking_status == BookingStatus.CONFIRMED
            and booking.check_in_date <= today
            and not booking.is_checked_in
        )

    def get_pending_checkins(self, today: Optional[date] = None) -> List[Booking]:
        """待入住列表"""
        today = today or date.today()
        candidates = self.db.query(Booking).filter(
            Booking.booking_status == BookingStatus.CONFIRMED,
            Booking.check_in_date <= today
        ).order_by(Booking.check_in_date, Booking.id).all()
        return [b for b in candidates if not b.is_checked_in]

    def check_in(
        self,
        booking_id: int,
        receptionist_id: Optional[int] = None,
        room_number: Optional[str] = None,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Optional[Booking]:
        """
        办理入住

        Args:
            booking_id: 预订 ID
            receptionist_id: 办理人
            room_number: 可选，换到指定房间
            payment_method: 可选，更新支付方式
            notes: 备注

        Returns:
            预订；预订不存在时返回 None

        Raises:
            ValueError: 已入住、不满足入住条件或目标房间不可用
        """
        today = today or date.today()
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            return None

        if booking.is_checked_in or booking.booking_status == BookingStatus.CHECKED_IN:
            raise ValueError("该预订已办理入住")
        if booking.booking_status != BookingStatus.CONFIRMED:
            raise ValueError(f"预订状态为 {booking.booking_status.value}，无法办理入住")
        if booking.check_in_date > today:
            raise ValueError("尚未到入住日期")

        room = booking.room
        if room_number and room_number != room.room_number:
            target = self.db.query(Room).filter(Room.room_number == room_number).first()
            if not target:
                raise ValueError(f"房间 {room_number} 不存在")
            if target.status in (RoomStatus.OCCUPIED, RoomStatus.MAINTENANCE):
                raise ValueError(f"房间 {room_number} 当前不可用")
            booking.room_id = target.id
            booking.room = target
            room = target

        now = datetime.now()
        room.status = RoomStatus.OCCUPIED
        booking.booking_status = BookingStatus.CHECKED_IN
        booking.payment_status = PaymentStatus.PAID
        if payment_method:
            booking.payment_method = payment_method

        record = booking.stay_record
        if record is None:
            record = CheckInCheckOut(booking_id=booking.id, additional_charges=0)
            self.db.add(record)
            booking.stay_record = record
        record.receptionist_id = receptionist_id
        record.check_in_time = now
        record.room_key_issued = True
        if notes:
            record.notes = notes

        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} checked in to room {room.room_number}")

        # 发布入住事件
        self._publish_event(Event(
            event_type=EventType.BOOKING_CHECKED_IN,
            timestamp=datetime.now(),
            data=BookingCheckedInData(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                room_id=room.id,
                room_number=room.room_number,
                receptionist_id=receptionist_id,
                check_in_time=now,
            ).to_dict(),
            source="checkin_service"
        ))
        return booking
