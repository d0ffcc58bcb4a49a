"""
房间路由（公开查询）
"""
from datetime import date
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from hrs.database import get_db
from hrs.models.entities import RoomStatus
from hrs.services.room_service import RoomService

router = APIRouter(prefix="/rooms", tags=["房间"])


@router.get("")
def list_rooms(
    status_filter: Optional[RoomStatus] = Query(None, alias="status"),
    room_type_id: Optional[int] = None,
    room_type: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    guests: Optional[int] = None,
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    db: Session = Depends(get_db)
):
    """房间列表"""
    service = RoomService(db)
    rooms = service.get_rooms(
        status=status_filter,
        room_type_id=room_type_id,
        room_type_name=room_type,
        min_price=min_price,
        max_price=max_price,
        guests=guests,
        check_in=check_in,
        check_out=check_out,
    )
    return [service.room_to_dict(r) for r in rooms]


@router.get("/types")
def list_room_types(db: Session = Depends(get_db)):
    """房型列表"""
    service = RoomService(db)
    return [service.room_type_to_dict(t) for t in service.get_room_types()]


@router.get("/{room_id}")
def get_room(room_id: int, db: Session = Depends(get_db)):
    """房间详情（含已预订日期）"""
    detail = RoomService(db).get_room_detail(room_id)
    if not detail:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="房间不存在")
    return detail


@router.get("/{room_id}/availability")
def check_availability(
    room_id: int,
    check_in: date,
    check_out: date,
    db: Session = Depends(get_db)
):
    """检查日期区间内是否可订"""
    service = RoomService(db)
    if not service.get_room(room_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="房间不存在")
    if check_out <= check_in:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="离店日期必须晚于入住日期")
    return {
        "room_id": room_id,
        "check_in": check_in,
        "check_out": check_out,
        "available": service.is_available(room_id, check_in, check_out),
    }
