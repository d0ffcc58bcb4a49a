"""
经理路由 - 经营看板、房间/房型/设施维护、预订与出行管理
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from hrs.database import get_db
from hrs.models.entities import User, BookingStatus, ComplaintStatus
from hrs.models.schemas import (
    UserResponse, RoomCreate, RoomUpdate, RoomTypeCreate, RoomTypeUpdate,
    AmenityCreate, AmenityUpdate, AmenityResponse, BookingUpdate,
    ManagerTravelBookingCreate, ComplaintUpdate
)
from hrs.services.booking_service import BookingService
from hrs.services.feedback_service import FeedbackService
from hrs.services.report_service import ReportService
from hrs.services.room_service import RoomService
from hrs.services.travel_service import TravelService
from hrs.services.user_service import UserService
from hrs.security.auth import require_permission
from hrs.security.permissions import (
    MANAGER_DASHBOARD_VIEW, MANAGER_ROOMS_VIEW, MANAGER_ROOMS_MANAGE,
    MANAGER_BOOKINGS_VIEW, MANAGER_BOOKINGS_MANAGE, MANAGER_TRAVEL_MANAGE,
    MANAGER_REPORTS_VIEW, MANAGER_STAFF_VIEW, MANAGER_FEEDBACK_VIEW
)

router = APIRouter(prefix="/manager", tags=["经理"])


# ============== 看板与报表 ==============

@router.get("/dashboard")
def dashboard(
    time_range: str = "today",
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_DASHBOARD_VIEW))
):
    """经理仪表盘（today / week / month）"""
    try:
        return ReportService(db).get_manager_dashboard(time_range)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/financial-reports")
def financial_reports(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_REPORTS_VIEW))
):
    """财务报表"""
    return ReportService(db).get_financial_report()


@router.get("/customer-feedback")
def customer_feedback(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_FEEDBACK_VIEW))
):
    """客户评价汇总"""
    return FeedbackService(db).customer_feedback()


@router.get("/staff", response_model=List[UserResponse])
def list_staff(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_STAFF_VIEW))
):
    """员工列表"""
    return UserService(db).list_staff()


# ============== 房间 ==============

@router.get("/rooms")
def list_rooms(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_VIEW))
):
    service = RoomService(db)
    return [service.room_to_dict(r) for r in service.get_rooms()]


@router.post("/rooms", status_code=status.HTTP_201_CREATED)
def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_MANAGE))
):
    """新增房间"""
    service = RoomService(db)
    try:
        room = service.create_room(data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return service.room_to_dict(room)


@router.put("/rooms/{room_id}")
def update_room(
    room_id: int,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_MANAGE))
):
    """更新房间"""
    service = RoomService(db)
    try:
        room = service.update_room(room_id, data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="房间不存在")
    return service.room_to_dict(room)


@router.delete("/rooms/{room_id}")
def delete_room(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_MANAGE))
):
    """删除房间（存在未完成预订时拒绝）"""
    try:
        deleted = RoomService(db).delete_room(room_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="房间不存在")
    return {"message": "房间已删除"}


# ============== 房型 ==============

@router.get("/room-types")
def list_room_types(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_VIEW))
):
    service = RoomService(db)
    return [service.room_type_to_dict(t) for t in service.get_room_types()]


@router.post("/room-types", status_code=status.HTTP_201_CREATED)
def create_room_type(
    data: RoomTypeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_MANAGE))
):
    service = RoomService(db)
    try:
        room_type = service.create_room_type(data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return service.room_type_to_dict(room_type)


@router.put("/room-types/{room_type_id}")
def update_room_type(
    room_type_id: int,
    data: RoomTypeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_MANAGE))
):
    service = RoomService(db)
    try:
        room_type = service.update_room_type(room_type_id, data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not room_type:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="房型不存在")
    return service.room_type_to_dict(room_type)


@router.delete("/room-types/{room_type_id}")
def delete_room_type(
    room_type_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_MANAGE))
):
    try:
        deleted = RoomService(db).delete_room_type(room_type_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="房型不存在")
    return {"message": "房型已删除"}


# ============== 设施 ==============

@router.get("/amenities", response_model=List[AmenityResponse])
def list_amenities(
    active_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_VIEW))
):
    return RoomService(db).get_amenities(active_only)


@router.post("/amenities", response_model=AmenityResponse, status_code=status.HTTP_201_CREATED)
def create_amenity(
    data: AmenityCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_MANAGE))
):
    try:
        return RoomService(db).create_amenity(data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/amenities/{amenity_id}", response_model=AmenityResponse)
def update_amenity(
    amenity_id: int,
    data: AmenityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_MANAGE))
):
    try:
        amenity = RoomService(db).update_amenity(amenity_id, data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not amenity:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="设施不存在")
    return amenity


@router.delete("/amenities/{amenity_id}")
def delete_amenity(
    amenity_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_ROOMS_MANAGE))
):
    if not RoomService(db).delete_amenity(amenity_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="设施不存在")
    return {"message": "设施已删除"}


# ============== 预订 ==============

@router.get("/bookings")
def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_BOOKINGS_VIEW))
):
    """预订列表"""
    service = BookingService(db)
    bookings = service.list_bookings(status_filter, date_from, date_to, search)
    return [service.to_dict(b) for b in bookings]


@router.get("/bookings/{booking_id}")
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_BOOKINGS_VIEW))
):
    service = BookingService(db)
    booking = service.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    return service.to_dict(booking)


@router.put("/bookings/{booking_id}")
def update_booking(
    booking_id: int,
    data: BookingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_BOOKINGS_MANAGE))
):
    """修改预订（改期/换房时重新校验冲突并重算价格）"""
    service = BookingService(db)
    try:
        booking = service.update_booking(booking_id, data.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    return service.to_dict(booking)


@router.delete("/bookings/{booking_id}")
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_BOOKINGS_MANAGE))
):
    if not BookingService(db).delete_booking(booking_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    return {"message": "预订已删除"}


# ============== 出行预订 ==============

@router.get("/travel-bookings")
def list_travel_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_TRAVEL_MANAGE))
):
    service = TravelService(db)
    return [service.to_dict(t) for t in service.list_all()]


@router.post("/travel-bookings", status_code=status.HTTP_201_CREATED)
def create_travel_booking(
    data: ManagerTravelBookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_TRAVEL_MANAGE))
):
    """代客户创建出行预订"""
    service = TravelService(db)
    try:
        travel = service.create_for_customer(data.customer_id, data.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return service.to_dict(travel)


@router.delete("/travel-bookings/{travel_booking_id}")
def delete_travel_booking(
    travel_booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_TRAVEL_MANAGE))
):
    if not TravelService(db).delete(travel_booking_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="出行预订不存在")
    return {"message": "出行预订已删除"}


# ============== 投诉 ==============

@router.get("/complaints")
def list_complaints(
    status_filter: Optional[ComplaintStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_FEEDBACK_VIEW))
):
    service = FeedbackService(db)
    return [service.complaint_to_dict(c) for c in service.list_complaints(status_filter)]


@router.put("/complaints/{complaint_id}")
def update_complaint(
    complaint_id: int,
    data: ComplaintUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(MANAGER_FEEDBACK_VIEW))
):
    """更新投诉状态 / 指派 / 处理结果"""
    service = FeedbackService(db)
    try:
        complaint = service.update_complaint(
            complaint_id, data.status, data.assigned_to, data.resolution
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not complaint:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="投诉不存在")
    return service.complaint_to_dict(complaint)
