"""
房间服务 - 房间 / 房型 / 设施的查询与维护，可用性判断
"""
import json
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from hrs.models.entities import (
    Room, RoomType, RoomStatus, Amenity, Booking, BookingStatus, Review
)

logger = logging.getLogger(__name__)

# 占用房间的预订状态
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)


class RoomService:
    """房间服务"""

    def __init__(self, db: Session):
        self.db = db

    # ============== 房间查询 ==============

    def get_room(self, room_id: int) -> Optional[Room]:
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_room_by_number(self, room_number: str) -> Optional[Room]:
        return self.db.query(Room).filter(Room.room_number == room_number).first()

    def get_rooms(
        self,
        status: Optional[RoomStatus] = None,
        room_type_id: Optional[int] = None,
        room_type_name: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        guests: Optional[int] = None,
        check_in: Optional[date] = None,
        check_out: Optional[date] = None,
    ) -> List[Room]:
        q = self.db.query(Room).join(RoomType)
        if status:
            q = q.filter(Room.status == status)
        if room_type_id:
            q = q.filter(Room.room_type_id == room_type_id)
        if room_type_name:
            q = q.filter(RoomType.type_name == room_type_name)
        if min_price is not None:
            q = q.filter(Room.current_price >= min_price)
        if max_price is not None:
            q = q.filter(Room.current_price <= max_price)
        if guests:
            q = q.filter(RoomType.max_occupancy >= guests)
        rooms = q.order_by(Room.room_number).all()

        if check_in and check_out:
            booked = self.booked_room_ids(check_in, check_out)
            rooms = [r for r in rooms if r.id not in booked]
        return rooms

    def booked_room_ids(self, check_in: date, check_out: date,
                        exclude_booking_id: Optional[int] = None) -> set:
        """日期区间内已被占用的房间 ID"""
        q = self.db.query(Booking.room_id).filter(
            Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.check_out_date > check_in,
            Booking.check_in_date < check_out
        )
        if exclude_booking_id:
            q = q.filter(Booking.id != exclude_booking_id)
        return {row[0] for row in q.distinct().all()}

    def is_available(self, room_id: int, check_in: date, check_out: date,
                     exclude_booking_id: Optional[int] = None) -> bool:
        return room_id not in self.booked_room_ids(check_in, check_out, exclude_booking_id)

    def get_booked_ranges(self, room_id: int, from_date: Optional[date] = None) -> List[Dict]:
        """房间即将到来的已预订日期区间"""
        from_date = from_date or date.today()
        bookings = self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.check_out_date > from_date
        ).order_by(Booking.check_in_date).all()
        return [
            {"check_in_date": b.check_in_date, "check_out_date": b.check_out_date}
            for b in bookings
        ]

    def average_rating(self, room_id: int) -> Optional[float]:
        value = self.db.query(func.avg(Review.rating)).join(Booking).filter(
            Booking.room_id == room_id
        ).scalar()
        return round(float(value), 1) if value is not None else None

    def room_to_dict(self, room: Room) -> Dict:
        room_type = room.room_type
        return {
            "id": room.id,
            "room_number": room.room_number,
            "floor_number": room.floor_number,
            "status": room.status,
            "room_type_id": room.room_type_id,
            "room_type_name": room_type.type_name if room_type else None,
            "max_occupancy": room_type.max_occupancy if room_type else None,
            "current_price": room.nightly_price,
            "description": room.description or (room_type.description if room_type else None),
            "amenities": room_type.amenity_list if room_type else [],
            "image_urls": room.images,
        }

    def get_room_detail(self, room_id: int) -> Optional[Dict]:
        room = self.get_room(room_id)
        if not room:
            return None
        detail = self.room_to_dict(room)
        detail["booked_ranges"] = self.get_booked_ranges(room.id)
        detail["average_rating"] = self.average_rating(room.id)
        return detail

    # ============== 房间维护 ==============

    def create_room(self, data: Dict) -> Room:
        if self.get_room_by_number(data["room_number"]):
            raise ValueError(f"房间号 {data['room_number']} 已存在")
        room_type = self.get_room_type(data["room_type_id"])
        if not room_type:
            raise ValueError(f"房型 ID {data['room_type_id']} 不存在")

        room = Room(
            room_number=data["room_number"],
            room_type_id=room_type.id,
            floor_number=data.get("floor_number"),
            status=data.get("status") or RoomStatus.AVAILABLE,
            current_price=data.get("current_price") or room_type.base_price,
            description=data.get("description"),
            image_urls=json.dumps(data.get("image_urls") or []),
        )
        self.db.add(room)
        self.db.commit()
        self.db.refresh(room)
        logger.info(f"Room {room.room_number} created")
        return room

    def update_room(self, room_id: int, data: Dict) -> Optional[Room]:
        room = self.get_room(room_id)
        if not room:
            return None

        number = data.get("room_number")
        if number and number != room.room_number and self.get_room_by_number(number):
            raise ValueError(f"房间号 {number} 已存在")
        if data.get("room_type_id") and not self.get_room_type(data["room_type_id"]):
            raise ValueError(f"房型 ID {data['room_type_id']} 不存在")

        for key in ("room_number", "room_type_id", "floor_number", "status", "current_price", "description"):
            if data.get(key) is not None:
                setattr(room, key, data[key])
        if data.get("image_urls") is not None:
            room.image_urls = json.dumps(data["image_urls"])
        self.db.commit()
        self.db.refresh(room)
        return room

    def update_room_status(self, room_id: int, status: RoomStatus) -> Optional[Room]:
        room = self.get_room(room_id)
        if not room:
            return None
        old_status = room.status
        room.status = status
        self.db.commit()
        logger.info(f"Room {room.room_number} status {old_status} -> {status}")
        return room

    def delete_room(self, room_id: int) -> bool:
        room = self.get_room(room_id)
        if not room:
            return False
        active = self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.booking_status.in_(ACTIVE_BOOKING_STATUSES)
        ).count()
        if active:
            raise ValueError("该房间存在未完成的预订，无法删除")
        if self.db.query(Booking).filter(Booking.room_id == room_id).count():
            raise ValueError("该房间存在历史预订记录，请改为维护状态")
        self.db.delete(room)
        self.db.commit()
        logger.info(f"Room {room.room_number} deleted")
        return True

    # ============== 房型 ==============

    def get_room_types(self) -> List[RoomType]:
        return self.db.query(RoomType).order_by(RoomType.type_name).all()

    def get_room_type(self, room_type_id: int) -> Optional[RoomType]:
        return self.db.query(RoomType).filter(RoomType.id == room_type_id).first()

    def _get_room_type_by_name(self, name: str) -> Optional[RoomType]:
        return self.db.query(RoomType).filter(RoomType.type_name == name).first()

    def room_type_to_dict(self, room_type: RoomType) -> Dict:
        return {
            "id": room_type.id,
            "type_name": room_type.type_name,
            "description": room_type.description,
            "base_price": room_type.base_price,
            "max_occupancy": room_type.max_occupancy,
            "amenities": room_type.amenity_list,
            "room_count": len(room_type.rooms),
        }

    def create_room_type(self, data: Dict) -> RoomType:
        if self._get_room_type_by_name(data["type_name"]):
            raise ValueError(f"房型 {data['type_name']} 已存在")
        room_type = RoomType(
            type_name=data["type_name"],
            description=data.get("description"),
            base_price=data["base_price"],
            max_occupancy=data.get("max_occupancy") or 2,
            amenities=json.dumps(data.get("amenities") or []),
        )
        self.db.add(room_type)
        self.db.commit()
        self.db.refresh(room_type)
        return room_type

    def update_room_type(self, room_type_id: int, data: Dict) -> Optional[RoomType]:
        room_type = self.get_room_type(room_type_id)
        if not room_type:
            return None
        name = data.get("type_name")
        if name and name != room_type.type_name and self._get_room_type_by_name(name):
            raise ValueError(f"房型 {name} 已存在")
        for key in ("type_name", "description", "base_price", "max_occupancy"):
            if data.get(key) is not None:
                setattr(room_type, key, data[key])
        if data.get("amenities") is not None:
            room_type.amenities = json.dumps(data["amenities"])
        self.db.commit()
        self.db.refresh(room_type)
        return room_type

    def delete_room_type(self, room_type_id: int) -> bool:
        room_type = self.get_room_type(room_type_id)
        if not room_type:
            return False
        if room_type.rooms:
            raise ValueError("该房型下仍有房间，无法删除")
        self.db.delete(room_type)
        self.db.commit()
        return True

    # ============== 设施 ==============

    def get_amenities(self, active_only: bool = False) -> List[Amenity]:
        q = self.db.query(Amenity)
        if active_only:
            q = q.filter(Amenity.is_active == True)
        return q.order_by(Amenity.name).all()

    def get_amenity(self, amenity_id: int) -> Optional[Amenity]:
        return self.db.query(Amenity).filter(Amenity.id == amenity_id).first()

    def create_amenity(self, data: Dict) -> Amenity:
        if self.db.query(Amenity).filter(Amenity.name == data["name"]).first():
            raise ValueError(f"设施 {data['name']} 已存在")
        amenity = Amenity(
            name=data["name"],
            description=data.get("description"),
            icon=data.get("icon"),
            is_active=data.get("is_active", True),
        )
        self.db.add(amenity)
        self.db.commit()
        self.db.refresh(amenity)
        return amenity

    def update_amenity(self, amenity_id: int, data: Dict) -> Optional[Amenity]:
        amenity = self.get_amenity(amenity_id)
        if not amenity:
            return None
        name = data.get("name")
        if name and name != amenity.name and self.db.query(Amenity).filter(Amenity.name == name).first():
            raise ValueError(f"设施 {name} 已存在")
        for key in ("name", "description", "icon", "is_active"):
            if data.get(key) is not None:
                setattr(amenity, key, data[key])
        self.db.commit()
        self.db.refresh(amenity)
        return amenity

    def delete_amenity(self, amenity_id: int) -> bool:
        amenity = self.get_amenity(amenity_id)
        if not amenity:
            return False
        self.db.delete(amenity)
        self.db.commit()
        return True

    # ============== 前台: 房态总览 ==============

    def get_availability_overview(self) -> Dict:
        rooms = self.db.query(Room).order_by(Room.room_number).all()
        counts = {s.value: 0 for s in RoomStatus}
        items = []
        for room in rooms:
            counts[room.status.value] = counts.get(room.status.value, 0) + 1
            guest = None
            if room.status == RoomStatus.OCCUPIED:
                booking = self.db.query(Booking).filter(
                    Booking.room_id == room.id,
                    Booking.booking_status == BookingStatus.CHECKED_IN
                ).order_by(Booking.check_in_date.desc()).first()
                if booking and booking.customer:
                    guest = {
                        "booking_id": booking.id,
                        "customer_name": booking.customer.full_name,
                        "check_out_date": booking.check_out_date,
                    }
            items.append({
                "id": room.id,
                "room_number": room.room_number,
                "floor_number": room.floor_number,
                "room_type_name": room.room_type.type_name if room.room_type else None,
                "status": room.status,
                "current_guest": guest,
            })
        return {"total": len(rooms), "by_status": counts, "rooms": items}
