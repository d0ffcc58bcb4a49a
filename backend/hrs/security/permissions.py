"""
集中定义所有权限码常量与默认角色定义

权限码格式: <角色域>:<资源>:<动作>
"""

# 通用
AUTH_LOGIN = "auth:login"

# 管理员
ADMIN_DASHBOARD_VIEW = "admin:dashboard:view"
ADMIN_USERS_MANAGE = "admin:users:manage"
ADMIN_ROLES_MANAGE = "admin:roles:manage"
ADMIN_STAFF_MANAGE = "admin:staff:manage"
ADMIN_PAYMENTS_VIEW = "admin:payments:view"
ADMIN_REPORTS_VIEW = "admin:reports:view"
ADMIN_AUDIT_VIEW = "admin:audit:view"
ADMIN_CONFIG_MANAGE = "admin:config:manage"
ADMIN_PROFILE_UPDATE = "admin:profile:update"

# 经理
MANAGER_DASHBOARD_VIEW = "manager:dashboard:view"
MANAGER_ROOMS_VIEW = "manager:rooms:view"
MANAGER_ROOMS_MANAGE = "manager:rooms:manage"
MANAGER_BOOKINGS_VIEW = "manager:bookings:view"
MANAGER_BOOKINGS_MANAGE = "manager:bookings:manage"
MANAGER_TRAVEL_MANAGE = "manager:travel:manage"
MANAGER_REPORTS_VIEW = "manager:reports:view"
MANAGER_STAFF_VIEW = "manager:staff:view"
MANAGER_FEEDBACK_VIEW = "manager:feedback:view"
MANAGER_PROFILE_UPDATE = "manager:profile:update"

# 前台
RECEPTIONIST_DASHBOARD_VIEW = "receptionist:dashboard:view"
RECEPTIONIST_BOOKINGS_VIEW = "receptionist:bookings:view"
RECEPTIONIST_BOOKINGS_MANAGE = "receptionist:bookings:manage"
RECEPTIONIST_CHECKIN = "receptionist:checkin"
RECEPTIONIST_CHECKOUT = "receptionist:checkout"
RECEPTIONIST_TRAVEL_VIEW = "receptionist:travel:view"
RECEPTIONIST_REQUESTS_HANDLE = "receptionist:requests:handle"
RECEPTIONIST_PROFILE_UPDATE = "receptionist:profile:update"

# 客户
CUSTOMER_DASHBOARD_VIEW = "customer:dashboard:view"
CUSTOMER_BOOKING_CREATE = "customer:booking:create"
CUSTOMER_BOOKING_VIEW = "customer:booking:view"
CUSTOMER_PAYMENTS_PAY = "customer:payments:pay"
CUSTOMER_SUPPORT_USE = "customer:support:use"
CUSTOMER_PROFILE_UPDATE = "customer:profile:update"


# 默认角色定义（key 为 UserRole 值）
DEFAULT_ROLE_DEFINITIONS = {
    "admin": {
        "name": "Admin",
        "description": "Full administrative access",
        "color": "red",
        "permissions": [
            AUTH_LOGIN,
            ADMIN_DASHBOARD_VIEW,
            ADMIN_USERS_MANAGE,
            ADMIN_ROLES_MANAGE,
            ADMIN_STAFF_MANAGE,
            ADMIN_PAYMENTS_VIEW,
            ADMIN_REPORTS_VIEW,
            ADMIN_AUDIT_VIEW,
            ADMIN_CONFIG_MANAGE,
            ADMIN_PROFILE_UPDATE,
        ],
    },
    "manager": {
        "name": "Manager",
        "description": "Manage rooms, bookings, reports",
        "color": "blue",
        "permissions": [
            AUTH_LOGIN,
            MANAGER_DASHBOARD_VIEW,
            MANAGER_ROOMS_VIEW,
            MANAGER_ROOMS_MANAGE,
            MANAGER_BOOKINGS_VIEW,
            MANAGER_BOOKINGS_MANAGE,
            MANAGER_TRAVEL_MANAGE,
            MANAGER_REPORTS_VIEW,
            MANAGER_STAFF_VIEW,
            MANAGER_FEEDBACK_VIEW,
            MANAGER_PROFILE_UPDATE,
        ],
    },
    "receptionist": {
        "name": "Receptionist",
        "description": "Handle guest check-ins, bookings, and requests",
        "color": "green",
        "permissions": [
            AUTH_LOGIN,
            RECEPTIONIST_DASHBOARD_VIEW,
            RECEPTIONIST_BOOKINGS_VIEW,
            RECEPTIONIST_BOOKINGS_MANAGE,
            RECEPTIONIST_CHECKIN,
            RECEPTIONIST_CHECKOUT,
            RECEPTIONIST_TRAVEL_VIEW,
            RECEPTIONIST_REQUESTS_HANDLE,
            RECEPTIONIST_PROFILE_UPDATE,
        ],
    },
    "customer": {
        "name": "Customer",
        "description": "Create and manage own bookings",
        "color": "purple",
        "permissions": [
            AUTH_LOGIN,
            CUSTOMER_DASHBOARD_VIEW,
            CUSTOMER_BOOKING_CREATE,
            CUSTOMER_BOOKING_VIEW,
            CUSTOMER_PAYMENTS_PAY,
            CUSTOMER_SUPPORT_USE,
            CUSTOMER_PROFILE_UPDATE,
        ],
    },
}


def all_permission_codes():
    """所有已知权限码（去重、排序）"""
    codes = set()
    for definition in DEFAULT_ROLE_DEFINITIONS.values():
        codes.update(definition["permissions"])
    return sorted(codes)
