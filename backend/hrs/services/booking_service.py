"""
预订服务 - 客房预订的创建、查询、取消申请与后台维护
"""
import logging
import secrets
from datetime import datetime, date
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from hrs.models.entities import (
    Booking, BookingStatus, PaymentStatus, RefundStatus, Payment, Room, User
)
from hrs.models.events import EventType, BookingCreatedData, CancellationRequestedData
from hrs.services.event_bus import event_bus, Event
from hrs.services.room_service import RoomService

logger = logging.getLogger(__name__)


def generate_qr_code(user_id: int, room_id: int, now: Optional[datetime] = None) -> str:
    """BK-{用户}-{房间}-{yyyyMMddHHmmss}-{8位大写十六进制}"""
    now = now or datetime.now()
    return f"BK-{user_id}-{room_id}-{now.strftime('%Y%m%d%H%M%S')}-{secrets.token_hex(4).upper()}"


def generate_transaction_id(booking_id: int, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"TXN-{booking_id}-{now.strftime('%Y%m%d%H%M%S')}"


class BookingService:
    """预订服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self.room_service = RoomService(db)
        self._publish_event = event_publisher or event_bus.publish

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def calculate_price(self, room: Room, check_in: date, check_out: date) -> Decimal:
        nights = (check_out - check_in).days
        return (Decimal(str(room.nightly_price)) * nights).quantize(Decimal("0.01"))

    # ============== 客户预订 ==============

    def book_room(
        self,
        customer: User,
        room_id: int,
        check_in: date,
        check_out: date,
        guests: int = 1,
        payment_method: str = "credit_card",
        special_requests: Optional[str] = None,
    ) -> Booking:
        """
        客户预订房间，预订即确认并完成支付

        Raises:
            ValueError: 日期、人数或房间占用校验失败
        """
        if check_out <= check_in:
            raise ValueError("离店日期必须晚于入住日期")
        if guests is None or guests < 1:
            raise ValueError("入住人数至少为 1")

        room = self.room_service.get_room(room_id)
        if not room:
            raise ValueError("房间不存在")
        if room.room_type and guests > room.room_type.max_occupancy:
            raise ValueError(f"该房型最多入住 {room.room_type.max_occupancy} 人")
        if not self.room_service.is_available(room.id, check_in, check_out):
            raise ValueError("所选日期该房间已被预订")

        now = datetime.now()
        booking = Booking(
            customer_id=customer.id,
            room_id=room.id,
            check_in_date=check_in,
            check_out_date=check_out,
            total_price=self.calculate_price(room, check_in, check_out),
            booking_status=BookingStatus.CONFIRMED,
            payment_status=PaymentStatus.PAID,
            payment_method=payment_method,
            qr_code=generate_qr_code(customer.id, room.id, now),
            number_of_guests=guests,
            special_requests=special_requests,
        )
        self.db.add(booking)
        self.db.flush()

        self.db.add(Payment(
            booking_id=booking.id,
            amount=booking.total_price,
            payment_method=payment_method,
            payment_status=PaymentStatus.PAID,
            transaction_id=generate_transaction_id(booking.id, now),
            payment_date=now,
        ))
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} created for customer {customer.id}, room {room.room_number}")

        self._publish_event(Event(
            event_type=EventType.BOOKING_CREATED,
            timestamp=datetime.now(),
            data=BookingCreatedData(
                booking_id=booking.id,
                customer_id=customer.id,
                customer_email=customer.email,
                customer_name=customer.full_name,
                room_id=room.id,
                room_number=room.room_number,
                check_in_date=booking.check_in_date,
                check_out_date=booking.check_out_date,
                total_price=float(booking.total_price),
                qr_code=booking.qr_code,
            ).to_dict(),
            source="booking_service"
        ))
        return booking

    @staticmethod
    def can_cancel(booking: Booking) -> bool:
        if booking.booking_status in (
            BookingStatus.CANCELLED, BookingStatus.CHECKED_OUT, BookingStatus.CHECKED_IN
        ):
            return False
        if booking.is_checked_in:
            return False
        return booking.refund_status != RefundStatus.PENDING

    def get_customer_bookings(self, customer: User) -> List[Booking]:
        return self.db.query(Booking).filter(
            Booking.customer_id == customer.id
        ).order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    def request_cancellation(self, customer: User, booking_id: int, reason: Optional[str] = None) -> Optional[Booking]:
        """
        客户申请取消（退款），预订状态保持不变，等待前台审核

        Returns:
            预订；不存在或不属于该客户时返回 None
        """
        booking = self.db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.customer_id == customer.id
        ).first()
        if not booking:
            return None

        if booking.booking_status == BookingStatus.CANCELLED:
            raise ValueError("预订已取消")
        if booking.booking_status == BookingStatus.CHECKED_OUT:
            raise ValueError("已退房的预订无法取消")
        if booking.booking_status == BookingStatus.CHECKED_IN or booking.is_checked_in:
            raise ValueError("已入住的预订无法取消")
        if booking.refund_status == RefundStatus.PENDING:
            raise ValueError("退款申请已提交，请等待处理")

        booking.refund_status = RefundStatus.PENDING
        booking.refund_requested_at = datetime.now()
        booking.cancellation_reason = (reason or "").strip() or None
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Cancellation requested for booking {booking.id}")

        self._publish_event(Event(
            event_type=EventType.BOOKING_CANCELLATION_REQUESTED,
            timestamp=datetime.now(),
            data=CancellationRequestedData(
                kind="room",
                booking_id=booking.id,
                customer_id=customer.id,
                reason=booking.cancellation_reason or "",
            ).to_dict(),
            source="booking_service"
        ))
        return booking

    # ============== 经理: 预订管理 ==============

    def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
    ) -> List[Booking]:
        q = self.db.query(Booking).join(User, Booking.customer_id == User.id).join(Room)
        if status:
            q = q.filter(Booking.booking_status == status)
        if date_from:
            q = q.filter(Booking.check_in_date >= date_from)
        if date_to:
            q = q.filter(Booking.check_in_date <= date_to)
        if search:
            like = f"%{search.strip()}%"
            q = q.filter(or_(
                User.first_name.ilike(like),
                User.last_name.ilike(like),
                User.email.ilike(like),
                Room.room_number.ilike(like),
                Booking.qr_code.ilike(like),
            ))
        return q.order_by(Booking.check_in_date.desc(), Booking.id.desc()).all()

    def update_booking(self, booking_id: int, data: Dict) -> Optional[Booking]:
        booking = self.get_booking(booking_id)
        if not booking:
            return None

        check_in = data.get("check_in_date") or booking.check_in_date
        check_out = data.get("check_out_date") or booking.check_out_date
        room_id = data.get("room_id") or booking.room_id
        dates_changed = (
            check_in != booking.check_in_date
            or check_out != booking.check_out_date
            or room_id != booking.room_id
        )
        if dates_changed:
            if check_out <= check_in:
                raise ValueError("离店日期必须晚于入住日期")
            room = self.room_service.get_room(room_id)
            if not room:
                raise ValueError("房间不存在")
            if not self.room_service.is_available(room.id, check_in, check_out, exclude_booking_id=booking.id):
                raise ValueError("所选日期该房间已被预订")
            booking.room_id = room.id
            booking.check_in_date = check_in
            booking.check_out_date = check_out
            booking.total_price = self.calculate_price(room, check_in, check_out)

        if data.get("booking_status") is not None:
            self._apply_status(booking, BookingStatus(data["booking_status"]))
        if data.get("payment_status") is not None:
            booking.payment_status = PaymentStatus(data["payment_status"])
        for key in ("number_of_guests", "special_requests", "payment_method"):
            if data.get(key) is not None:
                setattr(booking, key, data[key])

        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} updated")
        return booking

    def _apply_status(self, booking: Booking, status: BookingStatus) -> None:
        booking.booking_status = status
        if status == BookingStatus.CANCELLED and not booking.cancelled_at:
            booking.cancelled_at = datetime.now()

    def delete_booking(self, booking_id: int) -> bool:
        booking = self.get_booking(booking_id)
        if not booking:
            return False
        self.db.delete(booking)
        self.db.commit()
        logger.info(f"Booking {booking_id} deleted")
        return True

    # ============== 前台: 预订查询 ==============

    def today_reservations(self, today: Optional[date] = None) -> List[Booking]:
        today = today or date.today()
        return self.db.query(Booking).filter(
            Booking.check_in_date == today,
            Booking.booking_status != BookingStatus.CANCELLED
        ).order_by(Booking.id).all()

    def checked_in_bookings(self) -> List[Booking]:
        return self.db.query(Booking).filter(
            Booking.booking_status == BookingStatus.CHECKED_IN
        ).order_by(Booking.check_out_date).all()

    def list_reservations(self, status: Optional[BookingStatus] = None,
                          search: Optional[str] = None) -> List[Booking]:
        return self.list_bookings(status=status, search=search)

    def update_status(self, booking_id: int, status: BookingStatus) -> Optional[Booking]:
        booking = self.get_booking(booking_id)
        if not booking:
            return None
        self._apply_status(booking, status)
        self.db.commit()
        self.db.refresh(booking)
        logger.info(f"Booking {booking.id} status -> {status.value}")
        return booking

    # ============== 序列化 ==============

    def to_dict(self, booking: Booking) -> Dict:
        room = booking.room
        customer = booking.customer
        return {
            "id": booking.id,
            "customer_id": booking.customer_id,
            "customer_name": customer.full_name if customer else None,
            "customer_email": customer.email if customer else None,
            "room_id": booking.room_id,
            "room_number": room.room_number if room else None,
            "room_type_name": room.room_type.type_name if room and room.room_type else None,
            "check_in_date": booking.check_in_date,
            "check_out_date": booking.check_out_date,
            "nights": booking.nights,
            "number_of_guests": booking.number_of_guests,
            "total_price": booking.total_price,
            "booking_status": booking.booking_status,
            "payment_status": booking.payment_status,
            "payment_method": booking.payment_method,
            "qr_code": booking.qr_code,
            "special_requests": booking.special_requests,
            "cancellation_reason": booking.cancellation_reason,
            "refund_status": booking.refund_status,
            "can_cancel": self.can_cancel(booking),
            "created_at": booking.created_at,
        }
