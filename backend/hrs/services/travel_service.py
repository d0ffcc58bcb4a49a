"""
出行预订服务 - 景点 / 出行套餐预订与退款申请
"""
import json
import logging
from datetime import datetime, date
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from sqlalchemy.orm import Session
from hrs.config import settings
from hrs.models.entities import (
    TravelBooking, TravelBookingStatus, PaymentStatus, RefundStatus, User
)
from hrs.models.events import EventType, TravelBookingCreatedData, CancellationRequestedData
from hrs.services.event_bus import event_bus, Event

logger = logging.getLogger(__name__)


class TravelService:
    """出行预订服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    def get(self, travel_booking_id: int) -> Optional[TravelBooking]:
        return self.db.query(TravelBooking).filter(TravelBooking.id == travel_booking_id).first()

    def create(
        self,
        customer: User,
        attraction_name: str,
        attraction_type: str,
        travel_date: date,
        participants: int,
        total_price,
        payment_method: Optional[str] = None,
        special_requests: Optional[str] = None,
        image_urls: Optional[List[str]] = None,
    ) -> TravelBooking:
        """创建出行预订（待确认、待支付）"""
        if not attraction_name or not attraction_name.strip():
            raise ValueError("景点名称不能为空")
        if participants is None or participants < 1:
            raise ValueError("参与人数至少为 1")
        if Decimal(str(total_price)) < 0:
            raise ValueError("金额不能为负数")

        details = {"special_requests": special_requests or "", "image_urls": image_urls or []}
        travel = TravelBooking(
            customer_id=customer.id,
            attraction_name=attraction_name.strip(),
            attraction_type=attraction_type,
            travel_date=travel_date,
            number_of_participants=participants,
            total_price=Decimal(str(total_price)),
            booking_status=TravelBookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            payment_method=payment_method,
            special_requests=json.dumps(details, ensure_ascii=False),
        )
        self.db.add(travel)
        self.db.commit()
        self.db.refresh(travel)
        logger.info(f"Travel booking {travel.id} created for customer {customer.id}")

        self._publish_event(Event(
            event_type=EventType.TRAVEL_BOOKING_CREATED,
            timestamp=datetime.now(),
            data=TravelBookingCreatedData(
                travel_booking_id=travel.id,
                customer_id=customer.id,
                customer_email=customer.email,
                customer_name=customer.full_name,
                attraction_name=travel.attraction_name,
                travel_date=travel.travel_date,
                number_of_participants=travel.number_of_participants,
                total_price=float(travel.total_price),
            ).to_dict(),
            source="travel_service"
        ))
        return travel

    def create_for_customer(self, customer_id: int, data: Dict) -> TravelBooking:
        """经理代客户创建出行预订"""
        customer = self.db.query(User).filter(User.id == customer_id).first()
        if not customer:
            raise ValueError("客户不存在")
        return self.create(
            customer,
            attraction_name=data["attraction_name"],
            attraction_type=data["attraction_type"],
            travel_date=data["travel_date"],
            participants=data.get("number_of_participants") or 1,
            total_price=data["total_price"],
            payment_method=data.get("payment_method"),
            special_requests=data.get("special_requests"),
            image_urls=data.get("image_urls"),
        )

    def list_all(self) -> List[TravelBooking]:
        return self.db.query(TravelBooking).order_by(
            TravelBooking.travel_date.desc(), TravelBooking.id.desc()
        ).all()

    def list_for_customer(self, customer: User) -> List[TravelBooking]:
        return self.db.query(TravelBooking).filter(
            TravelBooking.customer_id == customer.id
        ).order_by(TravelBooking.created_at.desc(), TravelBooking.id.desc()).all()

    def delete(self, travel_booking_id: int) -> bool:
        travel = self.get(travel_booking_id)
        if not travel:
            return False
        self.db.delete(travel)
        self.db.commit()
        logger.info(f"Travel booking {travel_booking_id} deleted")
        return True

    def request_refund(self, customer: User, travel_booking_id: int, reason: Optional[str] = None,
                       today: Optional[date] = None) -> Optional[TravelBooking]:
        """
        申请出行退款，需在出行日期前至少 TRAVEL_REFUND_MIN_DAYS 天

        Returns:
            出行预订；不存在或不属于该客户时返回 None
        """
        today = today or date.today()
        travel = self.db.query(TravelBooking).filter(
            TravelBooking.id == travel_booking_id,
            TravelBooking.customer_id == customer.id
        ).first()
        if not travel:
            return None

        if (travel.travel_date - today).days < settings.TRAVEL_REFUND_MIN_DAYS:
            raise ValueError(f"仅可在出行日期前 {settings.TRAVEL_REFUND_MIN_DAYS} 天申请退款")
        if travel.booking_status == TravelBookingStatus.CANCELLED:
            raise ValueError("出行预订已取消")
        if travel.refund_status == RefundStatus.PENDING:
            raise ValueError("退款申请已提交，请等待处理")

        travel.refund_status = RefundStatus.PENDING
        travel.refund_requested_at = datetime.now()
        travel.cancellation_reason = (reason or "").strip() or None
        self.db.commit()
        self.db.refresh(travel)
        logger.info(f"Refund requested for travel booking {travel.id}")

        self._publish_event(Event(
            event_type=EventType.BOOKING_CANCELLATION_REQUESTED,
            timestamp=datetime.now(),
            data=CancellationRequestedData(
                kind="travel",
                booking_id=travel.id,
                customer_id=customer.id,
                reason=travel.cancellation_reason or "",
            ).to_dict(),
            source="travel_service"
        ))
        return travel

    @staticmethod
    def to_dict(travel: TravelBooking) -> Dict:
        try:
            details = json.loads(travel.special_requests) if travel.special_requests else {}
        except ValueError:
            details = {"special_requests": travel.special_requests}
        if not isinstance(details, dict):
            details = {"special_requests": travel.special_requests}
        return {
            "id": travel.id,
            "customer_id": travel.customer_id,
            "customer_name": travel.customer.full_name if travel.customer else None,
            "attraction_name": travel.attraction_name,
            "attraction_type": travel.attraction_type,
            "travel_date": travel.travel_date,
            "number_of_participants": travel.number_of_participants,
            "total_price": travel.total_price,
            "booking_status": travel.booking_status,
            "payment_status": travel.payment_status,
            "payment_method": travel.payment_method,
            "special_requests": details.get("special_requests") or None,
            "image_urls": details.get("image_urls") or [],
            "cancellation_reason": travel.cancellation_reason,
            "refund_status": travel.refund_status,
            "created_at": travel.created_at,
        }
