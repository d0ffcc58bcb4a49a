"""
报表服务
提供前台、经理、管理员仪表盘与财务统计
"""
from typing import Dict, List, Optional, Tuple
from datetime import date, datetime, timedelta
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy import func
from hrs.models.entities import (
    Room, RoomStatus, RoomType, Booking, BookingStatus, PaymentStatus, RefundStatus,
    Payment, CheckInCheckOut, TravelBooking, TravelBookingStatus, Review, User,
    STAFF_ROLES
)

TIME_RANGES = ("today", "week", "month")


def _day_bounds(day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


def _month_start(day: date, months_back: int = 0) -> date:
    year, month = day.year, day.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    return date(year, month, 1)


def _next_month(first: date) -> date:
    return date(first.year + 1, 1, 1) if first.month == 12 else date(first.year, first.month + 1, 1)


def _range_start(time_range: str, today: date) -> date:
    if time_range == "today":
        return today
    if time_range == "week":
        return today - timedelta(days=today.weekday())
    if time_range == "month":
        return today.replace(day=1)
    raise ValueError(f"无效的时间范围: {time_range}")


def _as_datetime(value: date) -> datetime:
    return datetime.combine(value, datetime.min.time())


def _pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


class ReportService:
    """报表服务"""

    def __init__(self, db: Session):
        self.db = db

    # ============== 营收 ==============

    def room_revenue(self, start: date, end: date) -> Decimal:
        """[start, end) 区间内已支付、未取消预订的客房收款"""
        total = self.db.query(func.sum(Payment.amount)).join(Booking).filter(
            Payment.payment_status == PaymentStatus.PAID,
            Booking.booking_status != BookingStatus.CANCELLED,
            Payment.payment_date >= _as_datetime(start),
            Payment.payment_date < _as_datetime(end)
        ).scalar()
        return Decimal(str(total or 0))

    def travel_revenue(self, start: date, end: date) -> Decimal:
        total = self.db.query(func.sum(TravelBooking.total_price)).filter(
            TravelBooking.payment_status == PaymentStatus.PAID,
            TravelBooking.booking_status != TravelBookingStatus.CANCELLED,
            TravelBooking.created_at >= _as_datetime(start),
            TravelBooking.created_at < _as_datetime(end)
        ).scalar()
        return Decimal(str(total or 0))

    def revenue(self, start: date, end: date) -> Decimal:
        return self.room_revenue(start, end) + self.travel_revenue(start, end)

    def monthly_revenue_series(self, today: date, months: int = 6) -> List[Dict]:
        series = []
        for back in range(months - 1, -1, -1):
            first = _month_start(today, back)
            series.append({
                "label": first.strftime("%Y-%m"),
                "value": self.revenue(first, _next_month(first)),
            })
        return series

    # ============== 房间 ==============

    def room_counts(self) -> Dict:
        rooms = self.db.query(Room).all()
        total = len(rooms)
        occupied = len([r for r in rooms if r.status == RoomStatus.OCCUPIED])
        available = len([r for r in rooms if r.status == RoomStatus.AVAILABLE])
        maintenance = len([r for r in rooms if r.status == RoomStatus.MAINTENANCE])
        cleaning = len([r for r in rooms if r.status == RoomStatus.CLEANING])
        return {
            "total_rooms": total,
            "occupied_rooms": occupied,
            "available_rooms": available,
            "maintenance_rooms": maintenance,
            "cleaning_rooms": cleaning,
            "occupancy_rate": _pct(occupied, total),
        }

    def recent_activity(self, limit: int = 5) -> List[Dict]:
        """最近的预订、入住、退房动态"""
        activities = []
        for b in self.db.query(Booking).order_by(Booking.created_at.desc()).limit(limit).all():
            activities.append({
                "type": "booking",
                "booking_id": b.id,
                "description": f"{b.customer.full_name if b.customer else 'Guest'} booked room "
                               f"{b.room.room_number if b.room else b.room_id}",
                "time": b.created_at,
            })
        records = self.db.query(CheckInCheckOut).filter(
            CheckInCheckOut.check_in_time.isnot(None)
        ).order_by(CheckInCheckOut.check_in_time.desc()).limit(limit).all()
        for r in records:
            booking = r.booking
            name = booking.customer.full_name if booking and booking.customer else "Guest"
            room = booking.room.room_number if booking and booking.room else ""
            activities.append({
                "type": "check_in",
                "booking_id": r.booking_id,
                "description": f"{name} checked in to room {room}",
                "time": r.check_in_time,
            })
            if r.check_out_time:
                activities.append({
                    "type": "check_out",
                    "booking_id": r.booking_id,
                    "description": f"{name} checked out of room {room}",
                    "time": r.check_out_time,
                })
        activities.sort(key=lambda a: a["time"] or datetime.min, reverse=True)
        return activities[:limit]

    # ============== 前台仪表盘 ==============

    def get_receptionist_dashboard(self, today: Optional[date] = None) -> Dict:
        from hrs.services.checkin_service import CheckInService

        today = today or date.today()
        start, end = _day_bounds(today)
        today_checkins = self.db.query(CheckInCheckOut).filter(
            CheckInCheckOut.check_in_time >= start,
            CheckInCheckOut.check_in_time < end
        ).count()
        today_checkouts = self.db.query(CheckInCheckOut).filter(
            CheckInCheckOut.check_out_time >= start,
            CheckInCheckOut.check_out_time < end
        ).count()
        checked_in = self.db.query(Booking).filter(
            Booking.booking_status == BookingStatus.CHECKED_IN
        ).count()

        result = {
            "total_bookings": self.db.query(Booking).count(),
            "today_check_ins": today_checkins,
            "today_check_outs": today_checkouts,
            "currently_checked_in": checked_in,
            "pending_arrivals": len(CheckInService(self.db).get_pending_checkins(today)),
            "recent_activities": self.recent_activity(5),
        }
        result.update(self.room_counts())
        return result

    # ============== 经理仪表盘 ==============

    def get_manager_dashboard(self, time_range: str = "today", today: Optional[date] = None) -> Dict:
        today = today or date.today()
        range_start = _range_start(time_range, today)
        tomorrow = today + timedelta(days=1)
        counts = self.room_counts()

        pending_refunds = (
            self.db.query(Booking).filter(Booking.refund_status == RefundStatus.PENDING).count()
            + self.db.query(TravelBooking).filter(TravelBooking.refund_status == RefundStatus.PENDING).count()
        )
        average_rating = self.db.query(func.avg(Review.rating)).scalar()
        reviews_in_range = self.db.query(Review).filter(
            Review.created_at >= _as_datetime(range_start)
        ).count()

        return {
            "time_range": time_range,
            "total_rooms": counts["total_rooms"],
            "occupied_rooms": counts["occupied_rooms"],
            "maintenance_rooms": counts["maintenance_rooms"],
            "occupancy_rate": counts["occupancy_rate"],
            "today_revenue": self.revenue(today, tomorrow),
            "revenue_in_range": self.revenue(range_start, tomorrow),
            "pending_refund_requests": pending_refunds,
            "staff_count": self.db.query(User).filter(User.role.in_(STAFF_ROLES)).count(),
            "average_rating": round(float(average_rating), 2) if average_rating is not None else 0.0,
            "reviews_in_range": reviews_in_range,
            "recent_activity": self.recent_activity(5),
        }

    # ============== 财务报表 ==============

    def get_financial_report(self, today: Optional[date] = None) -> Dict:
        today = today or date.today()
        tomorrow = today + timedelta(days=1)
        month_start = today.replace(day=1)
        week_start = today - timedelta(days=today.weekday())

        pending_payments = (
            self.db.query(Booking).filter(Booking.payment_status == PaymentStatus.PENDING).count()
            + self.db.query(TravelBooking).filter(TravelBooking.payment_status == PaymentStatus.PENDING).count()
        )
        recent = self.get_payments()[:5]

        return {
            "month_revenue": self.revenue(month_start, tomorrow),
            "week_revenue": self.revenue(week_start, tomorrow),
            "month_room_revenue": self.room_revenue(month_start, tomorrow),
            "month_travel_revenue": self.travel_revenue(month_start, tomorrow),
            "pending_payments": pending_payments,
            "room_bookings": self.db.query(Booking).count(),
            "travel_bookings": self.db.query(TravelBooking).count(),
            "recent_transactions": recent,
            "monthly_revenue": self.monthly_revenue_series(today, 6),
        }

    # ============== 管理员仪表盘 ==============

    def get_admin_dashboard(self, today: Optional[date] = None) -> Dict:
        today = today or date.today()
        tomorrow = today + timedelta(days=1)
        month_start = today.replace(day=1)
        start, end = _day_bounds(today)

        users = self.db.query(User).all()
        payments = self.db.query(Payment).all()
        travels = self.db.query(TravelBooking).all()

        method_counts: Dict[str, int] = {}
        for p in payments:
            method = p.payment_method or "unknown"
            method_counts[method] = method_counts.get(method, 0) + 1

        daily_bookings = []
        for back in range(6, -1, -1):
            day = today - timedelta(days=back)
            d_start, d_end = _day_bounds(day)
            daily_bookings.append({
                "label": day.isoformat(),
                "value": self.db.query(Booking).filter(
                    Booking.created_at >= d_start, Booking.created_at < d_end
                ).count(),
            })

        user_growth = []
        for back in range(5, -1, -1):
            first = _month_start(today, back)
            nxt = _next_month(first)
            user_growth.append({
                "label": first.strftime("%Y-%m"),
                "value": len([
                    u for u in users
                    if u.created_at and _as_datetime(first) <= u.created_at < _as_datetime(nxt)
                ]),
            })

        occupancy_by_type = []
        for room_type in self.db.query(RoomType).order_by(RoomType.type_name).all():
            occupied = len([r for r in room_type.rooms if r.status == RoomStatus.OCCUPIED])
            occupancy_by_type.append({"label": room_type.type_name, "value": occupied})

        travel_stats = {
            "total_travel_bookings": len(travels),
            "today_travel_bookings": len([t for t in travels if t.created_at and start <= t.created_at < end]),
            "pending_travel_bookings": len([t for t in travels if t.booking_status == TravelBookingStatus.PENDING]),
            "travel_revenue": self.travel_revenue(date.min, tomorrow),
            "monthly_travel_revenue": self.travel_revenue(month_start, tomorrow),
            "pending_travel_refunds": len([t for t in travels if t.refund_status == RefundStatus.PENDING]),
        }

        return {
            "total_users": len(users),
            "active_staff": len([u for u in users if u.role in STAFF_ROLES and u.is_active]),
            "total_revenue": self.revenue(date.min, tomorrow),
            "monthly_revenue": self.revenue(month_start, tomorrow),
            "today_bookings": self.db.query(Booking).filter(
                Booking.created_at >= start, Booking.created_at < end
            ).count(),
            "pending_bookings": self.db.query(Booking).filter(
                Booking.booking_status == BookingStatus.PENDING
            ).count(),
            "failed_transactions": len([p for p in payments if p.payment_status == PaymentStatus.FAILED]),
            "unverified_users": len([u for u in users if not u.is_verified]),
            "monthly_revenue_chart": self.monthly_revenue_series(today, 6),
            "daily_bookings_chart": daily_bookings,
            "payment_methods_distribution": [
                {"label": k, "value": v} for k, v in sorted(method_counts.items())
            ],
            "user_growth_chart": user_growth,
            "room_occupancy_by_type": occupancy_by_type,
            "travel_stats": travel_stats,
            "recent_activity": self.recent_activity(5),
        }

    # ============== 管理员报表 ==============

    def get_admin_reports(self, today: Optional[date] = None) -> Dict:
        today = today or date.today()
        this_month = today.replace(day=1)
        last_month = _month_start(today, 1)
        current = self.revenue(this_month, _next_month(this_month))
        previous = self.revenue(last_month, this_month)
        if previous:
            trend = round(float((current - previous) / previous * 100), 1)
        else:
            trend = 100.0 if current else 0.0

        status_breakdown = {s.value: 0 for s in BookingStatus}
        rows = self.db.query(Booking.booking_status, func.count(Booking.id)).group_by(
            Booking.booking_status
        ).all()
        for status, count in rows:
            status_breakdown[status.value] = count

        top_types = self.db.query(
            RoomType.type_name, func.count(Booking.id), func.sum(Booking.total_price)
        ).join(Room, Room.room_type_id == RoomType.id).join(
            Booking, Booking.room_id == Room.id
        ).filter(
            Booking.booking_status != BookingStatus.CANCELLED
        ).group_by(RoomType.type_name).order_by(func.count(Booking.id).desc()).limit(5).all()

        return {
            "current_month_revenue": current,
            "previous_month_revenue": previous,
            "revenue_trend_percent": trend,
            "occupancy_rate": self.room_counts()["occupancy_rate"],
            "booking_status_breakdown": status_breakdown,
            "top_room_types": [
                {"room_type": name, "bookings": count, "revenue": Decimal(str(revenue or 0))}
                for name, count, revenue in top_types
            ],
        }

    # ============== 支付列表 ==============

    def get_payments(self, status: Optional[str] = None, method: Optional[str] = None,
                     kind: Optional[str] = None) -> List[Dict]:
        """客房支付记录 + 已支付的出行预订，最新在前"""
        items = []
        if kind in (None, "", "room"):
            for p in self.db.query(Payment).all():
                booking = p.booking
                items.append({
                    "id": p.id,
                    "kind": "room",
                    "booking_id": p.booking_id,
                    "customer_name": booking.customer.full_name if booking and booking.customer else None,
                    "amount": p.amount,
                    "payment_method": p.payment_method,
                    "payment_status": p.payment_status.value,
                    "transaction_id": p.transaction_id,
                    "refund_amount": p.refund_amount,
                    "date": p.payment_date,
                })
        if kind in (None, "", "travel"):
            travels = self.db.query(TravelBooking).filter(
                TravelBooking.payment_status == PaymentStatus.PAID
            ).all()
            for t in travels:
                items.append({
                    "id": t.id,
                    "kind": "travel",
                    "booking_id": t.id,
                    "customer_name": t.customer.full_name if t.customer else None,
                    "amount": t.total_price,
                    "payment_method": t.payment_method,
                    "payment_status": t.payment_status.value,
                    "transaction_id": None,
                    "refund_amount": Decimal("0"),
                    "date": t.created_at,
                })
        if status:
            items = [i for i in items if i["payment_status"] == status]
        if method:
            items = [i for i in items if (i["payment_method"] or "").lower() == method.lower()]
        items.sort(key=lambda i: i["date"] or datetime.min, reverse=True)
        return items
