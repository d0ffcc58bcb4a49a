"""
Pytest 配置和共享 fixtures
"""
import os
import tempfile

# 应用启动时的建表与种子数据写入临时库，不污染工作目录
os.environ.setdefault(
    "DATABASE_URL", "sqlite:///" + os.path.join(tempfile.gettempdir(), "hrs_test.db")
)

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from hrs.database import Base, get_db
from hrs.models import entities  # noqa
from hrs.models.entities import (
    User, UserRole, RoomType, Room, RoomStatus, Booking, BookingStatus,
    PaymentStatus, CheckInCheckOut
)
from hrs.security.auth import get_password_hash, create_access_token
from hrs.services.event_handlers import event_handlers
from hrs.main import app


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端（事件处理器不写入应用数据库）"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        event_handlers.unregister_handlers()
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def events():
    """收集服务发布的事件，配合 event_publisher=events.append 使用"""
    return []


# ============== 用户相关 Fixtures ==============

@pytest.fixture
def make_user(db_session):
    """用户工厂"""
    counter = {"n": 0}

    def _make(role=UserRole.CUSTOMER, email=None, password="secret123", **kwargs):
        counter["n"] += 1
        user = User(
            email=email or f"{role.value}{counter['n']}@hotel.test",
            password_hash=get_password_hash(password),
            first_name=kwargs.pop("first_name", role.value.title()),
            last_name=kwargs.pop("last_name", str(counter["n"])),
            role=role,
            is_verified=kwargs.pop("is_verified", True),
            is_active=kwargs.pop("is_active", True),
            **kwargs
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


@pytest.fixture
def customer(make_user):
    return make_user(UserRole.CUSTOMER, email="guest@hotel.test", first_name="Ana", last_name="Silva")


@pytest.fixture
def receptionist(make_user):
    return make_user(UserRole.RECEPTIONIST, email="front@hotel.test")


@pytest.fixture
def manager(make_user):
    return make_user(UserRole.MANAGER, email="manager@hotel.test")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, email="admin@hotel.test")


def _headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def customer_headers(customer):
    return _headers(customer)


@pytest.fixture
def receptionist_headers(receptionist):
    return _headers(receptionist)


@pytest.fixture
def manager_headers(manager):
    return _headers(manager)


@pytest.fixture
def admin_headers(admin):
    return _headers(admin)


# ============== 实体相关 Fixtures ==============

@pytest.fixture
def sample_room_type(db_session):
    """创建测试房型"""
    room_type = RoomType(
        type_name="Standard",
        description="Standard Room",
        base_price=Decimal("100.00"),
        max_occupancy=2,
        amenities='["WiFi", "TV"]'
    )
    db_session.add(room_type)
    db_session.commit()
    db_session.refresh(room_type)
    return room_type


@pytest.fixture
def sample_room(db_session, sample_room_type):
    """创建测试房间"""
    room = Room(
        room_number="101",
        room_type_id=sample_room_type.id,
        floor_number=1,
        status=RoomStatus.AVAILABLE,
        current_price=Decimal("120.00")
    )
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def other_room(db_session, sample_room_type):
    room = Room(
        room_number="102",
        room_type_id=sample_room_type.id,
        floor_number=1,
        status=RoomStatus.AVAILABLE,
        current_price=Decimal("0")
    )
    db_session.add(room)
    db_session.commit()
    db_session.refresh(room)
    return room


@pytest.fixture
def make_booking(db_session, customer, sample_room):
    """预订工厂：默认今天入住、住两晚、已确认已支付"""
    def _make(check_in=None, nights=2, status=BookingStatus.CONFIRMED, room=None,
              owner=None, checked_in=False, **kwargs):
        check_in = check_in or date.today()
        booking = Booking(
            customer_id=(owner or customer).id,
            room_id=(room or sample_room).id,
            check_in_date=check_in,
            check_out_date=check_in + timedelta(days=nights),
            total_price=kwargs.pop("total_price", Decimal("240.00")),
            booking_status=status,
            payment_status=kwargs.pop("payment_status", PaymentStatus.PAID),
            payment_method="credit_card",
            qr_code=f"BK-{(owner or customer).id}-{(room or sample_room).id}-TEST",
            number_of_guests=1,
            **kwargs
        )
        db_session.add(booking)
        db_session.commit()
        if checked_in:
            db_session.add(CheckInCheckOut(
                booking_id=booking.id,
                check_in_time=datetime.combine(check_in, datetime.min.time()) + timedelta(hours=14),
                additional_charges=Decimal("0"),
            ))
            db_session.commit()
        db_session.refresh(booking)
        return booking
    return _make
