"""
退款审核服务 - 客房预订与出行预订的退款申请
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from sqlalchemy.orm import Session
from hrs.models.entities import (
    Booking, BookingStatus, PaymentStatus, RefundStatus,
    TravelBooking, TravelBookingStatus
)
from hrs.models.events import EventType, RefundProcessedData
from hrs.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)

REFUND_KINDS = ("room", "travel")


class RefundService:
    """退款审核服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    def list_requests(self) -> List[Dict]:
        """待处理的退款申请（客房 + 出行），最新申请在前"""
        requests = []
        bookings = self.db.query(Booking).filter(Booking.refund_status == RefundStatus.PENDING).all()
        for b in bookings:
            requests.append({
                "id": b.id,
                "kind": "room",
                "customer_id": b.customer_id,
                "customer_name": b.customer.full_name if b.customer else None,
                "customer_email": b.customer.email if b.customer else None,
                "title": f"Room {b.room.room_number}" if b.room else "Room",
                "date": b.check_in_date,
                "amount": b.total_price,
                "reason": b.cancellation_reason,
                "booking_status": b.booking_status.value,
                "refund_status": b.refund_status,
                "refund_requested_at": b.refund_requested_at,
                "created_at": b.created_at,
            })
        travels = self.db.query(TravelBooking).filter(TravelBooking.refund_status == RefundStatus.PENDING).all()
        for t in travels:
            requests.append({
                "id": t.id,
                "kind": "travel",
                "customer_id": t.customer_id,
                "customer_name": t.customer.full_name if t.customer else None,
                "customer_email": t.customer.email if t.customer else None,
                "title": t.attraction_name,
                "date": t.travel_date,
                "amount": t.total_price,
                "reason": t.cancellation_reason,
                "booking_status": t.booking_status.value,
                "refund_status": t.refund_status,
                "refund_requested_at": t.refund_requested_at,
                "created_at": t.created_at,
            })
        requests.sort(key=lambda r: r["refund_requested_at"] or r["created_at"] or datetime.min, reverse=True)
        return requests

    def _load(self, kind: str, booking_id: int):
        if kind not in REFUND_KINDS:
            raise ValueError(f"无效的预订类型: {kind}")
        model = Booking if kind == "room" else TravelBooking
        return self.db.query(model).filter(model.id == booking_id).first()

    def approve(self, kind: str, booking_id: int, processed_by: Optional[int] = None):
        """
        批准退款：预订取消、支付标记为已退款

        Returns:
            预订；不存在时返回 None
        """
        booking = self._load(kind, booking_id)
        if booking is None:
            return None
        if booking.refund_status != RefundStatus.PENDING:
            raise ValueError("该预订没有待处理的退款申请")

        now = datetime.now()
        booking.refund_status = RefundStatus.APPROVED
        booking.refund_processed_at = now
        booking.payment_status = PaymentStatus.REFUNDED
        if kind == "room":
            booking.booking_status = BookingStatus.CANCELLED
            for payment in booking.payments:
                if payment.payment_status == PaymentStatus.PAID:
                    payment.payment_status = PaymentStatus.REFUNDED
                    payment.refund_amount = payment.amount
                    payment.refund_date = now
        else:
            booking.booking_status = TravelBookingStatus.CANCELLED
        if not booking.cancelled_at:
            booking.cancelled_at = now

        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Refund approved for {kind} booking {booking.id}")

        self._publish_event(Event(
            event_type=EventType.REFUND_APPROVED,
            timestamp=datetime.now(),
            data=RefundProcessedData(
                kind=kind,
                booking_id=booking.id,
                customer_id=booking.customer_id,
                approved=True,
                amount=float(Decimal(str(booking.total_price or 0))),
                reason=booking.cancellation_reason or "",
                receptionist_id=processed_by,
            ).to_dict(),
            source="refund_service"
        ))
        return booking

    def decline(self, kind: str, booking_id: int, reason: Optional[str] = None,
                processed_by: Optional[int] = None):
        """
        拒绝退款：预订恢复为已确认

        Returns:
            预订；不存在时返回 None
        """
        booking = self._load(kind, booking_id)
        if booking is None:
            return None
        if booking.refund_status != RefundStatus.PENDING:
            raise ValueError("该预订没有待处理的退款申请")

        booking.refund_status = RefundStatus.DECLINED
        booking.refund_processed_at = datetime.now()
        booking.cancelled_at = None
        if kind == "room":
            booking.booking_status = BookingStatus.CONFIRMED
        else:
            booking.booking_status = TravelBookingStatus.CONFIRMED
        if reason:
            booking.cancellation_reason = reason

        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Refund declined for {kind} booking {booking.id}")

        self._publish_event(Event(
            event_type=EventType.REFUND_DECLINED,
            timestamp=datetime.now(),
            data=RefundProcessedData(
                kind=kind,
                booking_id=booking.id,
                customer_id=booking.customer_id,
                approved=False,
                reason=reason or "",
                receptionist_id=processed_by,
            ).to_dict(),
            source="refund_service"
        ))
        return booking
