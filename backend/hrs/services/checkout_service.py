"""
退房服务 - 费用结算与退房
退房总额 = 房费 + 已记录附加费用 + 本次附加费用 + 逾期天数 × LATE_CHECKOUT_FEE
"""
import logging
from typing import Callable, Dict, List, Optional
from datetime import datetime, date
from decimal import Decimal
from sqlalchemy.orm import Session
from hrs.config import settings
from hrs.models.entities import (
    Booking, BookingStatus, PaymentStatus, RoomStatus, CheckInCheckOut, Payment
)
from hrs.models.events import EventType, BookingCheckedOutData
from hrs.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)

CHECKOUT_ACTIONS = ("checkout", "cancel")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


class CheckOutService:
    """退房服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def get_pending_checkouts(self, today: Optional[date] = None) -> List[Booking]:
        """已入住、尚未退房且离店日期不晚于今天"""
        today = today or date.today()
        return self.db.query(Booking).join(CheckInCheckOut).filter(
            Booking.booking_status == BookingStatus.CHECKED_IN,
            CheckInCheckOut.check_in_time.isnot(None),
            CheckInCheckOut.check_out_time.is_(None),
            Booking.check_out_date <= today
        ).order_by(Booking.check_out_date, Booking.id).all()

    def calculate_total(self, booking: Booking, today: Optional[date] = None,
                        extra_charges=0) -> Dict:
        """计算退房费用明细"""
        today = today or date.today()
        room_total = _money(booking.total_price)
        stored = _money(booking.stay_record.additional_charges if booking.stay_record else 0)
        extra = _money(extra_charges)
        days_late = max((today - booking.check_out_date).days, 0)
        late_fee = _money(Decimal(days_late) * Decimal(str(settings.LATE_CHECKOUT_FEE)))
        return {
            "booking_id": booking.id,
            "room_total": room_total,
            "stored_additional_charges": stored,
            "extra_charges": extra,
            "days_late": days_late,
            "late_fee": late_fee,
            "total": room_total + stored + extra + late_fee,
        }

    def check_out(
        self,
        booking_id: int,
        receptionist_id: Optional[int] = None,
        additional_charges: Optional[List[Dict]] = None,
        notes: Optional[str] = None,
        action: str = "checkout",
        payment_method: Optional[str] = None,
        today: Optional[date] = None,
        automatic: bool = False,
    ) -> Optional[Dict]:
        """
        办理退房或取消

        Args:
            additional_charges: 附加费用列表 [{"description": ..., "amount": ...}]
            action: checkout 退房 / cancel 取消预订并释放房间

        Returns:
            结算明细；预订不存在时返回 None

        Raises:
            ValueError: 未入住、已退房或动作无效
        """
        if action not in CHECKOUT_ACTIONS:
            raise ValueError(f"无效的操作: {action}")
        today = today or date.today()
        booking = self.get_booking(booking_id)
        if not booking:
            return None

        if action == "cancel":
            return self._cancel(booking, receptionist_id, notes)

        if booking.booking_status == BookingStatus.CHECKED_OUT:
            raise ValueError("该预订已退房")
        if not booking.is_checked_in:
            raise ValueError("该预订尚未办理入住，无法退房")

        extra = sum((_money(c.get("amount")) for c in (additional_charges or [])), Decimal("0.00"))
        if extra < 0:
            raise ValueError("附加费用不能为负数")
        summary = self.calculate_total(booking, today, extra)

        now = datetime.now()
        record = booking.stay_record
        record.additional_charges = summary["stored_additional_charges"] + extra
        record.check_out_time = now
        record.actual_check_out_date = today
        if receptionist_id:
            record.receptionist_id = receptionist_id
        if notes:
            record.notes = f"{record.notes}\n{notes}" if record.notes else notes

        booking.booking_status = BookingStatus.CHECKED_OUT
        booking.room.status = RoomStatus.AVAILABLE

        charged = extra + summary["late_fee"]
        if charged > 0:
            self.db.add(Payment(
                booking_id=booking.id,
                amount=charged,
                payment_method=payment_method or booking.payment_method or "cash",
                payment_status=PaymentStatus.PAID,
                transaction_id=f"TXN-{booking.id}-{now.strftime('%Y%m%d%H%M%S')}-CO",
                payment_date=now,
                notes="Check-out charges",
            ))

        self.db.commit()
        logger.info(
            f"Booking {booking.id} checked out, total {summary['total']}, "
            f"late {summary['days_late']} days"
        )

        self._publish_event(Event(
            event_type=EventType.BOOKING_CHECKED_OUT,
            timestamp=datetime.now(),
            data=BookingCheckedOutData(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                room_id=booking.room_id,
                room_number=booking.room.room_number,
                receptionist_id=receptionist_id,
                days_late=summary["days_late"],
                late_fee=float(summary["late_fee"]),
                total_amount=float(summary["total"]),
                automatic=automatic,
            ).to_dict(),
            source="checkout_service"
        ))
        summary["action"] = "checkout"
        return summary

    def _cancel(self, booking: Booking, receptionist_id: Optional[int], notes: Optional[str]) -> Dict:
        if booking.booking_status in (BookingStatus.CANCELLED, BookingStatus.CHECKED_OUT):
            raise ValueError(f"预订状态为 {booking.booking_status.value}，无法取消")
        booking.booking_status = BookingStatus.CANCELLED
        booking.cancelled_at = datetime.now()
        if notes:
            booking.cancellation_reason = notes
        booking.room.status = RoomStatus.AVAILABLE
        self.db.commit()
        logger.info(f"Booking {booking.id} cancelled at front desk by {receptionist_id}")
        return {"booking_id": booking.id, "action": "cancel"}

    def auto_checkout_overdue(self, today: Optional[date] = None) -> List[int]:
        """为离店日期已过的在住预订自动退房，返回处理的预订 ID"""
        today = today or date.today()
        overdue = self.db.query(Booking).join(CheckInCheckOut).filter(
            Booking.booking_status == BookingStatus.CHECKED_IN,
            CheckInCheckOut.check_in_time.isnot(None),
            CheckInCheckOut.check_out_time.is_(None),
            Booking.check_out_date < today
        ).all()

        processed = []
        for booking in overdue:
            self.check_out(booking.id, today=today, notes="Automatic check-out", automatic=True)
            processed.append(booking.id)
        if processed:
            logger.info(f"Auto checked out bookings: {processed}")
        return processed
