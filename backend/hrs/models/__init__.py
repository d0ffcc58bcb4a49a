# Domain Models
from hrs.models.entities import (
    User, RoomType, Amenity, Room, Booking, CheckInCheckOut, Payment, ChatMessage,
    Complaint, Review, TravelBooking, Role, RolePermission, UserPermissionOverride,
    SystemSetting, AuditLog, EmailVerificationCode
)

__all__ = [
    'User', 'RoomType', 'Amenity', 'Room', 'Booking', 'CheckInCheckOut', 'Payment',
    'ChatMessage', 'Complaint', 'Review', 'TravelBooking', 'Role', 'RolePermission',
    'UserPermissionOverride', 'SystemSetting', 'AuditLog', 'EmailVerificationCode'
]
