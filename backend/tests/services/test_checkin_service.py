"""
入住服务测试：入住资格、待入住列表、办理入住
"""
import pytest
from datetime import date, timedelta

from hrs.models.entities import BookingStatus, RoomStatus
from hrs.models.events import EventType
from hrs.services.checkin_service import CheckInService


@pytest.fixture
def checkin_service(db_session, events):
    return CheckInService(db_session, event_publisher=events.append)


class TestEligibility:

    def test_confirmed_today_is_eligible(self, make_booking):
        assert CheckInService.is_eligible(make_booking())

    def test_past_check_in_date_still_eligible(self, make_booking):
        assert CheckInService.is_eligible(make_booking(check_in=date.today() - timedelta(days=1)))

    def test_future_booking_not_eligible(self, make_booking):
        assert not CheckInService.is_eligible(make_booking(check_in=date.today() + timedelta(days=1)))

    def test_pending_booking_not_eligible(self, make_booking):
        assert not CheckInService.is_eligible(make_booking(status=BookingStatus.PENDING))

    def test_already_checked_in_not_eligible(self, make_booking):
        assert not CheckInService.is_eligible(make_booking(checked_in=True))


class TestPendingCheckins:

    def test_lists_only_eligible(self, checkin_service, make_booking):
        today_booking = make_booking()
        make_booking(check_in=date.today() + timedelta(days=3))
        make_booking(check_in=date.today() - timedelta(days=1), nights=1, checked_in=True)
        make_booking(status=BookingStatus.CANCELLED)

        pending = checkin_service.get_pending_checkins()
        assert [b.id for b in pending] == [today_booking.id]


class TestCheckIn:

    def test_check_in_success(self, checkin_service, make_booking, receptionist, events):
        booking = make_booking()
        result = checkin_service.check_in(booking.id, receptionist_id=receptionist.id, notes="late arrival")

        assert result.booking_status == BookingStatus.CHECKED_IN
        assert result.room.status == RoomStatus.OCCUPIED
        assert result.stay_record.check_in_time is not None
        assert result.stay_record.receptionist_id == receptionist.id
        assert result.stay_record.room_key_issued is True
        assert events[-1].event_type == EventType.BOOKING_CHECKED_IN

    def test_check_in_not_found(self, checkin_service):
        assert checkin_service.check_in(999) is None

    def test_check_in_twice(self, checkin_service, make_booking):
        booking = make_booking()
        checkin_service.check_in(booking.id)
        with pytest.raises(ValueError, match="已办理入住"):
            checkin_service.check_in(booking.id)

    def test_check_in_future_date(self, checkin_service, make_booking):
        booking = make_booking(check_in=date.today() + timedelta(days=2))
        with pytest.raises(ValueError, match="尚未到入住日期"):
            checkin_service.check_in(booking.id)

    def test_check_in_cancelled(self, checkin_service, make_booking):
        booking = make_booking(status=BookingStatus.CANCELLED)
        with pytest.raises(ValueError, match="无法办理入住"):
            checkin_service.check_in(booking.id)

    def test_check_in_to_other_room(self, checkin_service, make_booking, other_room):
        booking = make_booking()
        result = checkin_service.check_in(booking.id, room_number="102")
        assert result.room_id == other_room.id
        assert other_room.status == RoomStatus.OCCUPIED

    def test_check_in_to_unknown_room(self, checkin_service, make_booking):
        booking = make_booking()
        with pytest.raises(ValueError, match="不存在"):
            checkin_service.check_in(booking.id, room_number="999")
