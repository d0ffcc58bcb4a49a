"""
前台路由 - 仪表盘、预订查询、入住/退房、退款审核
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from hrs.database import get_db
from hrs.models.entities import User, BookingStatus, ComplaintStatus
from hrs.models.schemas import (
    CheckInRequest, CheckOutRequest, DeclineRefundRequest, BookingStatusUpdate
)
from hrs.services.booking_service import BookingService
from hrs.services.checkin_service import CheckInService
from hrs.services.checkout_service import CheckOutService
from hrs.services.feedback_service import FeedbackService
from hrs.services.refund_service import RefundService
from hrs.services.report_service import ReportService
from hrs.services.room_service import RoomService
from hrs.services.travel_service import TravelService
from hrs.security.auth import require_permission
from hrs.security.permissions import (
    RECEPTIONIST_DASHBOARD_VIEW, RECEPTIONIST_BOOKINGS_VIEW, RECEPTIONIST_BOOKINGS_MANAGE,
    RECEPTIONIST_CHECKIN, RECEPTIONIST_CHECKOUT, RECEPTIONIST_TRAVEL_VIEW,
    RECEPTIONIST_REQUESTS_HANDLE
)

router = APIRouter(prefix="/receptionist", tags=["前台"])


@router.get("/dashboard")
def dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_DASHBOARD_VIEW))
):
    """前台仪表盘"""
    return ReportService(db).get_receptionist_dashboard()


@router.get("/today-reservations")
def today_reservations(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_BOOKINGS_VIEW))
):
    """今日预抵"""
    service = BookingService(db)
    return [service.to_dict(b) for b in service.today_reservations()]


@router.get("/checked-in-bookings")
def checked_in_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_BOOKINGS_VIEW))
):
    """在住预订"""
    service = BookingService(db)
    return [service.to_dict(b) for b in service.checked_in_bookings()]


@router.get("/reservations")
def list_reservations(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_BOOKINGS_VIEW))
):
    """预订列表"""
    service = BookingService(db)
    return [service.to_dict(b) for b in service.list_reservations(status_filter, search)]


@router.put("/reservations/{booking_id}/status")
def update_reservation_status(
    booking_id: int,
    data: BookingStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_BOOKINGS_MANAGE))
):
    """更新预订状态"""
    service = BookingService(db)
    booking = service.update_status(booking_id, data.status)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    return service.to_dict(booking)


@router.get("/room-availability")
def room_availability(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_BOOKINGS_VIEW))
):
    """房态总览"""
    return RoomService(db).get_availability_overview()


@router.get("/pending-checkins")
def pending_checkins(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_CHECKIN))
):
    """待办理入住"""
    booking_service = BookingService(db)
    return [booking_service.to_dict(b) for b in CheckInService(db).get_pending_checkins()]


@router.post("/check-in/{booking_id}")
def check_in(
    booking_id: int,
    data: Optional[CheckInRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_CHECKIN))
):
    """办理入住"""
    data = data or CheckInRequest()
    try:
        booking = CheckInService(db).check_in(
            booking_id,
            receptionist_id=current_user.id,
            room_number=data.room_number,
            payment_method=data.payment_method,
            notes=data.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    return {"message": "入住办理成功", "booking": BookingService(db).to_dict(booking)}


@router.get("/pending-checkouts")
def pending_checkouts(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_CHECKOUT))
):
    """待退房"""
    booking_service = BookingService(db)
    return [booking_service.to_dict(b) for b in CheckOutService(db).get_pending_checkouts()]


@router.get("/checkout-summary/{booking_id}")
def checkout_summary(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_CHECKOUT))
):
    """退房费用预览"""
    service = CheckOutService(db)
    booking = service.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    return service.calculate_total(booking)


@router.post("/check-out/{booking_id}")
def check_out(
    booking_id: int,
    data: Optional[CheckOutRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_CHECKOUT))
):
    """办理退房 / 取消"""
    data = data or CheckOutRequest()
    try:
        result = CheckOutService(db).check_out(
            booking_id,
            receptionist_id=current_user.id,
            additional_charges=[c.model_dump() for c in data.additional_charges],
            notes=data.notes,
            action=data.action,
            payment_method=data.payment_method,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    message = "预订已取消" if result["action"] == "cancel" else "退房成功，房间已释放"
    return {"message": message, **result}


@router.post("/auto-checkout")
def auto_checkout(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_CHECKOUT))
):
    """为已过离店日期的在住预订自动退房"""
    processed = CheckOutService(db).auto_checkout_overdue()
    return {"processed": processed, "count": len(processed)}


@router.get("/refund-requests")
def refund_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_REQUESTS_HANDLE))
):
    """待审核退款"""
    return RefundService(db).list_requests()


@router.get("/customer-requests")
def customer_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_REQUESTS_HANDLE))
):
    """客户请求：待审核退款 + 未处理投诉"""
    feedback = FeedbackService(db)
    complaints = feedback.list_complaints(ComplaintStatus.OPEN) + feedback.list_complaints(ComplaintStatus.IN_PROGRESS)
    return {
        "refund_requests": RefundService(db).list_requests(),
        "complaints": [feedback.complaint_to_dict(c) for c in complaints],
    }


@router.post("/refund-requests/{booking_id}/approve")
def approve_refund(
    booking_id: int,
    kind: str = "room",
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_REQUESTS_HANDLE))
):
    """批准退款"""
    try:
        booking = RefundService(db).approve(kind, booking_id, processed_by=current_user.id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    return {"message": "退款已批准", "id": booking.id, "kind": kind}


@router.post("/refund-requests/{booking_id}/decline")
def decline_refund(
    booking_id: int,
    kind: str = "room",
    data: Optional[DeclineRefundRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_REQUESTS_HANDLE))
):
    """拒绝退款"""
    try:
        booking = RefundService(db).decline(
            kind, booking_id, data.reason if data else None, processed_by=current_user.id
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    return {"message": "退款已拒绝", "id": booking.id, "kind": kind}


@router.get("/travel-bookings")
def travel_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_TRAVEL_VIEW))
):
    """出行预订列表"""
    service = TravelService(db)
    return [service.to_dict(t) for t in service.list_all()]
