"""
Tests for hrs/services/report_service.py
Covers: room_revenue, travel_revenue, room_counts, dashboards, get_payments
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from hrs.models.entities import (
    Payment, PaymentStatus, BookingStatus, RefundStatus, RoomStatus,
    TravelBooking, TravelBookingStatus
)
from hrs.services.report_service import ReportService


# ── helpers ──────────────────────────────────────────────────────────

def _pay(db, booking, amount, status=PaymentStatus.PAID, method="credit_card"):
    p = Payment(
        booking_id=booking.id,
        amount=Decimal(amount),
        payment_method=method,
        payment_status=status,
        transaction_id=f"TXN-{booking.id}-{amount}",
    )
    db.add(p)
    db.commit()
    return p


def _travel(db, customer, price, payment_status=PaymentStatus.PAID,
            status=TravelBookingStatus.CONFIRMED, **kwargs):
    t = TravelBooking(
        customer_id=customer.id,
        attraction_name="Sigiriya Rock",
        attraction_type="Culture",
        travel_date=date.today() + timedelta(days=5),
        number_of_participants=2,
        total_price=Decimal(price),
        booking_status=status,
        payment_status=payment_status,
        payment_method="cash",
        **kwargs
    )
    db.add(t)
    db.commit()
    return t


@pytest.fixture
def report_service(db_session):
    return ReportService(db_session)


@pytest.fixture
def window():
    # payment_date 使用 UTC，区间放宽一天
    today = date.today()
    return today - timedelta(days=1), today + timedelta(days=2)


# ── revenue ──────────────────────────────────────────────────────────

class TestRevenue:

    def test_room_revenue_counts_paid_only(self, report_service, db_session, make_booking, window):
        booking = make_booking()
        _pay(db_session, booking, "240.00")
        _pay(db_session, booking, "30.00", status=PaymentStatus.PENDING)
        assert report_service.room_revenue(*window) == Decimal("240.00")

    def test_cancelled_booking_excluded(self, report_service, db_session, make_booking, window):
        cancelled = make_booking(status=BookingStatus.CANCELLED)
        _pay(db_session, cancelled, "240.00")
        assert report_service.room_revenue(*window) == Decimal("0")

    def test_travel_revenue(self, report_service, db_session, customer, window):
        _travel(db_session, customer, "80.00")
        _travel(db_session, customer, "50.00", payment_status=PaymentStatus.PENDING)
        _travel(db_session, customer, "70.00", status=TravelBookingStatus.CANCELLED)
        assert report_service.travel_revenue(*window) == Decimal("80.00")

    def test_combined_revenue(self, report_service, db_session, customer, make_booking, window):
        _pay(db_session, make_booking(), "240.00")
        _travel(db_session, customer, "80.00")
        assert report_service.revenue(*window) == Decimal("320.00")

    def test_window_outside_is_empty(self, report_service, db_session, make_booking):
        _pay(db_session, make_booking(), "240.00")
        start = date.today() - timedelta(days=30)
        assert report_service.room_revenue(start, start + timedelta(days=5)) == Decimal("0")


# ── rooms & dashboards ───────────────────────────────────────────────

class TestDashboards:

    def test_room_counts(self, report_service, db_session, sample_room, other_room):
        sample_room.status = RoomStatus.OCCUPIED
        db_session.commit()
        counts = report_service.room_counts()
        assert counts["total_rooms"] == 2
        assert counts["occupied_rooms"] == 1
        assert counts["available_rooms"] == 1
        assert counts["occupancy_rate"] == 50.0

    def test_room_counts_empty(self, report_service):
        assert report_service.room_counts()["occupancy_rate"] == 0.0

    def test_receptionist_dashboard(self, report_service, make_booking):
        make_booking(status=BookingStatus.CHECKED_IN, checked_in=True)
        data = report_service.get_receptionist_dashboard()
        assert data["total_bookings"] == 1
        assert data["currently_checked_in"] == 1
        assert data["today_check_ins"] == 1
        assert data["recent_activities"]

    def test_manager_dashboard_counts_pending_refunds(self, report_service, db_session,
                                                       customer, make_booking, manager):
        make_booking(status=BookingStatus.PENDING, refund_status=RefundStatus.PENDING)
        _travel(db_session, customer, "80.00", refund_status=RefundStatus.PENDING)

        data = report_service.get_manager_dashboard("week")
        assert data["time_range"] == "week"
        assert data["pending_refund_requests"] == 2
        assert data["staff_count"] == 1
        assert data["average_rating"] == 0.0

    def test_manager_dashboard_invalid_range(self, report_service):
        with pytest.raises(ValueError, match="无效的时间范围"):
            report_service.get_manager_dashboard("decade")

    def test_admin_reports_breakdown(self, report_service, make_booking):
        make_booking()
        make_booking(check_in=date.today() + timedelta(days=10), status=BookingStatus.CANCELLED)
        data = report_service.get_admin_reports()
        assert data["booking_status_breakdown"]["confirmed"] == 1
        assert data["booking_status_breakdown"]["cancelled"] == 1
        assert data["top_room_types"][0]["room_type"] == "Standard"
        assert data["top_room_types"][0]["bookings"] == 1

    def test_admin_dashboard_payment_methods(self, report_service, db_session, make_booking):
        booking = make_booking()
        _pay(db_session, booking, "240.00")
        _pay(db_session, booking, "10.00", status=PaymentStatus.FAILED, method="cash")
        data = report_service.get_admin_dashboard()
        assert data["failed_transactions"] == 1
        assert {"label": "cash", "value": 1} in data["payment_methods_distribution"]
        assert len(data["daily_bookings_chart"]) == 7
        assert len(data["monthly_revenue_chart"]) == 6


# ── payments ─────────────────────────────────────────────────────────

class TestPayments:

    def test_room_and_paid_travel(self, report_service, db_session, customer, make_booking):
        _pay(db_session, make_booking(), "240.00")
        _travel(db_session, customer, "80.00")
        _travel(db_session, customer, "50.00", payment_status=PaymentStatus.PENDING)

        items = report_service.get_payments()
        assert sorted(i["kind"] for i in items) == ["room", "travel"]

    def test_filters(self, report_service, db_session, customer, make_booking):
        _pay(db_session, make_booking(), "240.00")
        _travel(db_session, customer, "80.00")

        assert [i["kind"] for i in report_service.get_payments(kind="travel")] == ["travel"]
        assert [i["kind"] for i in report_service.get_payments(method="CASH")] == ["travel"]
        assert report_service.get_payments(status="refunded") == []
