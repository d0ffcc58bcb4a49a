"""
预订服务测试：价格、冲突检测、预订码、取消申请、后台维护
"""
import re
import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal

from hrs.models.entities import (
    BookingStatus, PaymentStatus, RefundStatus, Payment, CheckInCheckOut
)
from hrs.models.events import EventType
from hrs.services.booking_service import BookingService, generate_qr_code


@pytest.fixture
def booking_service(db_session, events):
    return BookingService(db_session, event_publisher=events.append)


class TestQrCode:

    def test_format(self):
        code = generate_qr_code(7, 3, datetime(2024, 5, 1, 9, 30, 15))
        assert re.fullmatch(r"BK-7-3-20240501093015-[0-9A-F]{8}", code)

    def test_suffix_is_random(self):
        now = datetime(2024, 5, 1, 9, 30, 15)
        assert generate_qr_code(1, 1, now) != generate_qr_code(1, 1, now)


class TestBookRoom:

    def test_book_room_confirms_and_pays(self, booking_service, db_session, customer, sample_room, events):
        check_in = date.today() + timedelta(days=3)
        booking = booking_service.book_room(customer, sample_room.id, check_in, check_in + timedelta(days=2))

        assert booking.booking_status == BookingStatus.CONFIRMED
        assert booking.payment_status == PaymentStatus.PAID
        assert booking.total_price == Decimal("240.00")
        assert booking.qr_code.startswith(f"BK-{customer.id}-{sample_room.id}-")

        payment = db_session.query(Payment).filter(Payment.booking_id == booking.id).one()
        assert payment.amount == Decimal("240.00")
        assert payment.transaction_id.startswith(f"TXN-{booking.id}-")

        assert len(events) == 1
        assert events[0].event_type == EventType.BOOKING_CREATED
        assert events[0].data["customer_email"] == customer.email

    def test_zero_price_falls_back_to_room_type(self, booking_service, customer, other_room):
        check_in = date.today() + timedelta(days=1)
        booking = booking_service.book_room(customer, other_room.id, check_in, check_in + timedelta(days=3))
        assert booking.total_price == Decimal("300.00")

    def test_rejects_bad_dates(self, booking_service, customer, sample_room):
        day = date.today() + timedelta(days=1)
        with pytest.raises(ValueError, match="离店日期必须晚于入住日期"):
            booking_service.book_room(customer, sample_room.id, day, day)

    def test_rejects_too_many_guests(self, booking_service, customer, sample_room):
        day = date.today() + timedelta(days=1)
        with pytest.raises(ValueError, match="最多入住 2 人"):
            booking_service.book_room(customer, sample_room.id, day, day + timedelta(days=1), guests=3)

    def test_rejects_unknown_room(self, booking_service, customer):
        day = date.today() + timedelta(days=1)
        with pytest.raises(ValueError, match="房间不存在"):
            booking_service.book_room(customer, 999, day, day + timedelta(days=1))

    def test_rejects_overlap(self, booking_service, customer, sample_room, make_booking):
        existing = make_booking(check_in=date.today() + timedelta(days=5), nights=3)
        with pytest.raises(ValueError, match="已被预订"):
            booking_service.book_room(
                customer, sample_room.id,
                existing.check_in_date + timedelta(days=1),
                existing.check_out_date + timedelta(days=1),
            )

    def test_back_to_back_stays_allowed(self, booking_service, customer, sample_room, make_booking):
        existing = make_booking(check_in=date.today() + timedelta(days=5), nights=2)
        booking = booking_service.book_room(
            customer, sample_room.id, existing.check_out_date, existing.check_out_date + timedelta(days=1)
        )
        assert booking.id != existing.id

    def test_cancelled_booking_frees_dates(self, booking_service, customer, sample_room, make_booking):
        existing = make_booking(check_in=date.today() + timedelta(days=5), status=BookingStatus.CANCELLED)
        booking = booking_service.book_room(
            customer, sample_room.id, existing.check_in_date, existing.check_out_date
        )
        assert booking.booking_status == BookingStatus.CONFIRMED


class TestRequestCancellation:

    def test_marks_refund_pending(self, booking_service, customer, make_booking, events):
        booking = make_booking(check_in=date.today() + timedelta(days=4))
        result = booking_service.request_cancellation(customer, booking.id, "  change of plans ")

        assert result.refund_status == RefundStatus.PENDING
        assert result.booking_status == BookingStatus.CONFIRMED
        assert result.cancellation_reason == "change of plans"
        assert events[-1].event_type == EventType.BOOKING_CANCELLATION_REQUESTED
        assert events[-1].data["kind"] == "room"

    def test_other_customer_gets_none(self, booking_service, make_user, make_booking):
        booking = make_booking()
        stranger = make_user()
        assert booking_service.request_cancellation(stranger, booking.id) is None

    def test_checked_in_cannot_cancel(self, booking_service, customer, make_booking):
        booking = make_booking(checked_in=True)
        with pytest.raises(ValueError, match="已入住"):
            booking_service.request_cancellation(customer, booking.id)

    def test_duplicate_request_rejected(self, booking_service, customer, make_booking):
        booking = make_booking(check_in=date.today() + timedelta(days=4))
        booking_service.request_cancellation(customer, booking.id)
        with pytest.raises(ValueError, match="退款申请已提交"):
            booking_service.request_cancellation(customer, booking.id)

    def test_can_cancel_flag(self, make_booking):
        assert BookingService.can_cancel(make_booking(check_in=date.today() + timedelta(days=10)))
        assert not BookingService.can_cancel(make_booking(status=BookingStatus.CHECKED_OUT,
                                                          check_in=date.today() - timedelta(days=10)))


class TestBookingMaintenance:

    def test_update_dates_recalculates_price(self, booking_service, make_booking):
        booking = make_booking(check_in=date.today() + timedelta(days=2), nights=2)
        updated = booking_service.update_booking(booking.id, {
            "check_out_date": booking.check_in_date + timedelta(days=4)
        })
        assert updated.total_price == Decimal("480.00")

    def test_update_conflict(self, booking_service, make_booking):
        first = make_booking(check_in=date.today() + timedelta(days=2), nights=2)
        second = make_booking(check_in=date.today() + timedelta(days=10), nights=2)
        with pytest.raises(ValueError, match="已被预订"):
            booking_service.update_booking(second.id, {
                "check_in_date": first.check_in_date,
                "check_out_date": first.check_out_date,
            })

    def test_update_status_cancelled_sets_timestamp(self, booking_service, make_booking):
        booking = make_booking()
        updated = booking_service.update_status(booking.id, BookingStatus.CANCELLED)
        assert updated.booking_status == BookingStatus.CANCELLED
        assert updated.cancelled_at is not None

    def test_update_missing_returns_none(self, booking_service):
        assert booking_service.update_booking(999, {}) is None
        assert booking_service.update_status(999, BookingStatus.CONFIRMED) is None
        assert booking_service.delete_booking(999) is False

    def test_list_bookings_search(self, booking_service, make_booking, customer):
        make_booking()
        assert len(booking_service.list_bookings(search="silva")) == 1
        assert booking_service.list_bookings(search="nobody") == []

    def test_today_and_checked_in(self, booking_service, make_booking):
        make_booking()
        make_booking(check_in=date.today() - timedelta(days=1), status=BookingStatus.CHECKED_IN,
                     checked_in=True, nights=1)
        assert len(booking_service.today_reservations()) == 1
        assert len(booking_service.checked_in_bookings()) == 1

    def test_to_dict(self, booking_service, make_booking):
        data = booking_service.to_dict(make_booking())
        assert data["room_number"] == "101"
        assert data["room_type_name"] == "Standard"
        assert data["nights"] == 2
        assert data["customer_name"] == "Ana Silva"
