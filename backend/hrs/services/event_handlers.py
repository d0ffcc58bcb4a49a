"""
事件处理器
订阅领域事件：写审计日志、发送预订确认邮件
"""
from typing import Callable
import logging

from hrs.services.event_bus import event_bus, Event
from hrs.models.events import EventType
from hrs.database import SessionLocal

logger = logging.getLogger(__name__)

# 事件类型 -> 审计日志 (action, table_name)
AUDITED_EVENTS = {
    EventType.BOOKING_CREATED: ("booking_created", "bookings"),
    EventType.BOOKING_CANCELLATION_REQUESTED: ("cancellation_requested", "bookings"),
    EventType.BOOKING_CHECKED_IN: ("check_in", "check_in_check_out"),
    EventType.BOOKING_CHECKED_OUT: ("check_out", "check_in_check_out"),
    EventType.REFUND_APPROVED: ("refund_approved", "bookings"),
    EventType.REFUND_DECLINED: ("refund_declined", "bookings"),
    EventType.TRAVEL_BOOKING_CREATED: ("travel_booking_created", "travel_bookings"),
}


class EventHandlers:
    """
    事件处理器集合

    支持依赖注入以便于测试：
    - db_session_factory: 数据库会话工厂
    - email_service_factory: 邮件服务工厂
    """

    def __init__(
        self,
        db_session_factory: Callable = None,
        email_service_factory: Callable = None
    ):
        self._db_session_factory = db_session_factory or SessionLocal
        self._email_service_factory = email_service_factory
        self._registered = False

    def _get_db(self):
        return self._db_session_factory()

    def _get_email_service(self):
        if self._email_service_factory:
            return self._email_service_factory()
        from hrs.services.email_service import EmailService
        return EmailService()

    def handle_audit(self, event: Event) -> None:
        """所有业务事件写入审计日志"""
        from hrs.services.audit_service import AuditService

        action, table_name = AUDITED_EVENTS.get(event.event_type, (str(event.event_type), None))
        data = event.data
        if data.get("kind") == "travel":
            table_name = "travel_bookings"
        record_id = data.get("booking_id") or data.get("travel_booking_id")
        user_id = data.get("receptionist_id") or data.get("customer_id")

        db = self._get_db()
        try:
            AuditService(db).log(
                action=action,
                table_name=table_name,
                record_id=record_id,
                user_id=user_id,
                new_value=data,
            )
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to write audit log for {event.event_type}: {e}", exc_info=True)
        finally:
            db.close()

    def _notifications_enabled(self) -> bool:
        from hrs.services.config_service import ConfigService

        db = self._get_db()
        try:
            return ConfigService(db).get_bool("EmailNotifications", True)
        finally:
            db.close()

    def handle_booking_created(self, event: Event) -> None:
        """发送客房预订确认邮件"""
        data = event.data
        if not data.get("customer_email") or not self._notifications_enabled():
            return
        body = (
            f"Hello {data.get('customer_name', '')},\n\n"
            f"Your booking #{data.get('booking_id')} for room {data.get('room_number')} is confirmed.\n"
            f"Check-in: {data.get('check_in_date')}\n"
            f"Check-out: {data.get('check_out_date')}\n"
            f"Total: {data.get('total_price')}\n"
            f"Booking code: {data.get('qr_code')}\n"
        )
        if not self._get_email_service().send(data["customer_email"], "Booking confirmation", body):
            logger.warning(f"Booking confirmation not sent for booking {data.get('booking_id')}")

    def handle_travel_booking_created(self, event: Event) -> None:
        """发送出行预订确认邮件"""
        data = event.data
        if not data.get("customer_email") or not self._notifications_enabled():
            return
        body = (
            f"Hello {data.get('customer_name', '')},\n\n"
            f"Your travel booking #{data.get('travel_booking_id')} for {data.get('attraction_name')} "
            f"on {data.get('travel_date')} has been received.\n"
            f"Participants: {data.get('number_of_participants')}\n"
            f"Total: {data.get('total_price')}\n"
        )
        if not self._get_email_service().send(data["customer_email"], "Travel booking received", body):
            logger.warning(f"Travel confirmation not sent for booking {data.get('travel_booking_id')}")

    def register_handlers(self, event_bus_instance=None) -> None:
        """注册所有事件处理器"""
        if self._registered:
            return

        bus = event_bus_instance or event_bus
        for event_type in AUDITED_EVENTS:
            bus.subscribe(event_type, self.handle_audit)
        bus.subscribe(EventType.BOOKING_CREATED, self.handle_booking_created)
        bus.subscribe(EventType.TRAVEL_BOOKING_CREATED, self.handle_travel_booking_created)

        self._registered = True
        logger.info("Event handlers registered successfully")

    def unregister_handlers(self, event_bus_instance=None) -> None:
        """取消注册所有事件处理器（用于测试）"""
        bus = event_bus_instance or event_bus
        for event_type in AUDITED_EVENTS:
            bus.unsubscribe(event_type, self.handle_audit)
        bus.unsubscribe(EventType.BOOKING_CREATED, self.handle_booking_created)
        bus.unsubscribe(EventType.TRAVEL_BOOKING_CREATED, self.handle_travel_booking_created)
        self._registered = False


# 全局事件处理器实例
event_handlers = EventHandlers()


def register_event_handlers():
    """注册所有事件处理器（应用启动时调用）"""
    event_handlers.register_handlers()
