"""
客户路由 - 预订、取消、评价、投诉、出行预订
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hrs.database import get_db
from hrs.models.entities import User, BookingStatus, RoomStatus
from hrs.models.schemas import (
    UserResponse, ProfileUpdate, BookRoomRequest, CancelBookingRequest,
    FeedbackCreate, ComplaintCreate, TravelBookingCreate, TravelRefundRequest
)
from hrs.services.booking_service import BookingService
from hrs.services.feedback_service import FeedbackService
from hrs.services.room_service import RoomService
from hrs.services.travel_service import TravelService
from hrs.services.user_service import UserService
from hrs.security.auth import require_permission
from hrs.security.permissions import (
    CUSTOMER_DASHBOARD_VIEW, CUSTOMER_BOOKING_CREATE, CUSTOMER_BOOKING_VIEW,
    CUSTOMER_PROFILE_UPDATE, CUSTOMER_SUPPORT_USE
)

router = APIRouter(prefix="/customer", tags=["客户"])


@router.get("/home")
def customer_home(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_DASHBOARD_VIEW))
):
    """客户首页：即将入住的预订与可订房型"""
    booking_service = BookingService(db)
    room_service = RoomService(db)
    today = date.today()
    upcoming = [
        b for b in booking_service.get_customer_bookings(current_user)
        if b.booking_status in (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)
        and b.check_out_date >= today
    ]
    upcoming.sort(key=lambda b: b.check_in_date)
    return {
        "customer_name": current_user.full_name,
        "upcoming_bookings": [booking_service.to_dict(b) for b in upcoming[:3]],
        "available_rooms": len(room_service.get_rooms(status=RoomStatus.AVAILABLE)),
        "room_types": [room_service.room_type_to_dict(t) for t in room_service.get_room_types()],
    }


@router.get("/profile", response_model=UserResponse)
def get_profile(current_user: User = Depends(require_permission(CUSTOMER_DASHBOARD_VIEW))):
    """个人资料"""
    return current_user


@router.put("/profile", response_model=UserResponse)
def update_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_PROFILE_UPDATE))
):
    """更新个人资料"""
    return UserService(db).update_profile(current_user, data.model_dump(exclude_unset=True))


@router.get("/my-bookings")
def my_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_BOOKING_VIEW))
):
    """我的预订（客房 + 出行）"""
    booking_service = BookingService(db)
    travel_service = TravelService(db)
    return {
        "bookings": [booking_service.to_dict(b) for b in booking_service.get_customer_bookings(current_user)],
        "travel_bookings": [travel_service.to_dict(t) for t in travel_service.list_for_customer(current_user)],
    }


@router.post("/book-room", status_code=status.HTTP_201_CREATED)
def book_room(
    data: BookRoomRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_BOOKING_CREATE))
):
    """预订房间"""
    service = BookingService(db)
    try:
        booking = service.book_room(
            current_user,
            room_id=data.room_id,
            check_in=data.check_in_date,
            check_out=data.check_out_date,
            guests=data.number_of_guests,
            payment_method=data.payment_method,
            special_requests=data.special_requests,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return service.to_dict(booking)


@router.post("/cancel-booking/{booking_id}")
def cancel_booking(
    booking_id: int,
    data: Optional[CancelBookingRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_BOOKING_VIEW))
):
    """申请取消预订（等待前台审核退款）"""
    service = BookingService(db)
    try:
        booking = service.request_cancellation(current_user, booking_id, data.reason if data else None)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    return {"message": "取消申请已提交，等待审核", "booking": service.to_dict(booking)}


@router.post("/feedback", status_code=status.HTTP_201_CREATED)
def submit_feedback(
    data: FeedbackCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_SUPPORT_USE))
):
    """提交评价"""
    try:
        review = FeedbackService(db).submit_review(
            current_user, data.rating, data.comment, data.booking_id, data.category
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "感谢您的反馈", "review_id": review.id, "booking_id": review.booking_id}


@router.post("/complaints", status_code=status.HTTP_201_CREATED)
def submit_complaint(
    data: ComplaintCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_SUPPORT_USE))
):
    """提交投诉 / 服务请求"""
    service = FeedbackService(db)
    try:
        complaint = service.submit_complaint(
            current_user,
            subject=data.subject,
            description=data.description,
            category=data.category,
            priority=data.priority,
            booking_id=data.booking_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return service.complaint_to_dict(complaint)


@router.get("/travel-bookings")
def list_travel_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_BOOKING_VIEW))
):
    """我的出行预订"""
    service = TravelService(db)
    return [service.to_dict(t) for t in service.list_for_customer(current_user)]


@router.post("/travel-booking", status_code=status.HTTP_201_CREATED)
def create_travel_booking(
    data: TravelBookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_BOOKING_CREATE))
):
    """创建出行预订"""
    service = TravelService(db)
    try:
        travel = service.create(
            current_user,
            attraction_name=data.attraction_name,
            attraction_type=data.attraction_type,
            travel_date=data.travel_date,
            participants=data.number_of_participants,
            total_price=data.total_price,
            payment_method=data.payment_method,
            special_requests=data.special_requests,
            image_urls=data.image_urls,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return service.to_dict(travel)


@router.post("/travel/refund")
def request_travel_refund(
    data: TravelRefundRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_BOOKING_VIEW))
):
    """申请出行退款"""
    service = TravelService(db)
    try:
        travel = service.request_refund(current_user, data.travel_booking_id, data.reason)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not travel:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="出行预订不存在")
    return {"message": "退款申请已提交，将在 24 小时内处理", "travel_booking": service.to_dict(travel)}
