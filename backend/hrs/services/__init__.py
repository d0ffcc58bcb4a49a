# Business Services
from hrs.services.room_service import RoomService
from hrs.services.booking_service import BookingService
from hrs.services.checkin_service import CheckInService
from hrs.services.checkout_service import CheckOutService
from hrs.services.refund_service import RefundService
from hrs.services.travel_service import TravelService
from hrs.services.report_service import ReportService

__all__ = [
    'RoomService', 'BookingService', 'CheckInService', 'CheckOutService',
    'RefundService', 'TravelService', 'ReportService'
]
