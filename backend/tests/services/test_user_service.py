"""
用户服务测试：注册、登录（停用/无登录权限/二次验证）、邮箱验证、重置密码、员工管理
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

from hrs.models.entities import (
    UserRole, EmailVerificationCode, VerificationPurpose, TravelBooking, ChatMessage, Complaint
)
from hrs.security.permissions import AUTH_LOGIN
from hrs.services.config_service import ConfigService
from hrs.services.permission_service import PermissionService
from hrs.services.user_service import UserService
from hrs.services.verification_service import VerificationService


@pytest.fixture
def mailer():
    mock = MagicMock()
    mock.send_verification_code.return_value = True
    mock.send_password_reset.return_value = True
    return mock


@pytest.fixture
def user_service(db_session, mailer):
    return UserService(db_session, verification_service=VerificationService(db_session, mailer))


def _latest_code(db_session, user, purpose):
    return db_session.query(EmailVerificationCode).filter(
        EmailVerificationCode.user_id == user.id,
        EmailVerificationCode.purpose == purpose,
        EmailVerificationCode.used == False
    ).order_by(EmailVerificationCode.id.desc()).first()


REGISTRATION = {
    "first_name": "Nimal",
    "last_name": "Perera",
    "email": "Nimal@Example.com",
    "password": "hunter22",
}


class TestRegister:

    def test_register_customer_and_send_code(self, user_service, db_session, mailer):
        user = user_service.register(dict(REGISTRATION))
        assert user.role == UserRole.CUSTOMER
        assert user.email == "nimal@example.com"
        assert user.is_verified is False
        assert _latest_code(db_session, user, VerificationPurpose.VERIFY_EMAIL) is not None
        mailer.send_verification_code.assert_called_once()

    def test_duplicate_email_case_insensitive(self, user_service):
        user_service.register(dict(REGISTRATION))
        with pytest.raises(ValueError, match="已被注册"):
            user_service.register({**REGISTRATION, "email": "NIMAL@example.com"})

    def test_short_password(self, user_service):
        with pytest.raises(ValueError):
            user_service.register({**REGISTRATION, "password": "123"})

    def test_verify_email(self, user_service, db_session):
        user = user_service.register(dict(REGISTRATION))
        code = _latest_code(db_session, user, VerificationPurpose.VERIFY_EMAIL).code
        assert user_service.verify_email(user.email, code) is True
        assert user.is_verified is True
        with pytest.raises(ValueError, match="验证码无效"):
            user_service.verify_email(user.email, code)

    def test_resend_code_rate_limited(self, user_service):
        user = user_service.register(dict(REGISTRATION))
        with pytest.raises(ValueError, match="1 分钟"):
            user_service.send_verification_code(user.email)


class TestAuthenticate:

    def test_login_success(self, user_service, customer):
        result = user_service.authenticate("GUEST@hotel.test", "secret123")
        assert result["token_type"] == "bearer"
        assert result["access_token"]
        assert result["user"].id == customer.id
        assert AUTH_LOGIN in result["permissions"]
        assert customer.last_login is not None

    def test_wrong_password(self, user_service, customer):
        assert user_service.authenticate(customer.email, "nope") is None
        assert user_service.authenticate("nobody@hotel.test", "secret123") is None

    def test_inactive_account(self, user_service, make_user):
        user = make_user(is_active=False)
        with pytest.raises(ValueError, match="账号已停用"):
            user_service.authenticate(user.email, "secret123")

    def test_login_disabled_by_override(self, user_service, db_session, customer):
        PermissionService(db_session).save_user_overrides({customer.id: {AUTH_LOGIN: False}})
        with pytest.raises(ValueError, match="login_disabled"):
            user_service.authenticate(customer.email, "secret123")

    def test_two_factor_flow(self, user_service, db_session, customer, mailer):
        ConfigService(db_session).update_config({"twoFactorAuth": True})

        with pytest.raises(ValueError, match="requires_verification"):
            user_service.authenticate(customer.email, "secret123")
        mailer.send_verification_code.assert_called_once()

        with pytest.raises(ValueError, match="验证码无效"):
            user_service.authenticate(customer.email, "secret123", code="000000")

        code = _latest_code(db_session, customer, VerificationPurpose.LOGIN).code
        result = user_service.authenticate(customer.email, "secret123", code=code)
        assert result["user"].id == customer.id

    def test_change_password(self, user_service, customer):
        with pytest.raises(ValueError, match="原密码错误"):
            user_service.change_password(customer, "wrong", "newsecret")
        user_service.change_password(customer, "secret123", "newsecret")
        assert user_service.authenticate(customer.email, "newsecret") is not None


class TestPasswordReset:

    def test_reset_flow(self, user_service, db_session, customer, mailer):
        user_service.forgot_password(customer.email)
        token = _latest_code(db_session, customer, VerificationPurpose.PASSWORD_RESET).code
        mailer.send_password_reset.assert_called_once()

        assert user_service.verify_reset_token(customer.email, token) is True
        user_service.reset_password(customer.email, token, "brandnew1", "brandnew1")

        assert user_service.authenticate(customer.email, "brandnew1") is not None
        assert user_service.verify_reset_token(customer.email, token) is False

    def test_mismatched_confirmation(self, user_service, customer):
        with pytest.raises(ValueError, match="不一致"):
            user_service.reset_password(customer.email, "tok", "brandnew1", "brandnew2")

    def test_bad_token(self, user_service, customer):
        with pytest.raises(ValueError, match="无效或已过期"):
            user_service.reset_password(customer.email, "bogus", "brandnew1", "brandnew1")

    def test_unknown_email_is_silent(self, user_service, mailer):
        user_service.forgot_password("ghost@hotel.test")
        mailer.send_password_reset.assert_not_called()

    def test_staff_cannot_self_reset(self, user_service, receptionist):
        with pytest.raises(ValueError, match="员工账号"):
            user_service.forgot_password(receptionist.email)


class TestUserAdministration:

    def test_update_profile_ignores_role(self, user_service, customer):
        user_service.update_profile(customer, {"first_name": "Anna", "role": "admin"})
        assert customer.first_name == "Anna"
        assert customer.role == UserRole.CUSTOMER

    def test_create_staff_defaults_to_receptionist(self, user_service):
        staff = user_service.create_staff({**REGISTRATION, "email": "desk@hotel.test"})
        assert staff.role == UserRole.RECEPTIONIST
        assert staff.is_verified is True

    def test_create_staff_rejects_customer_role(self, user_service):
        with pytest.raises(ValueError, match="员工角色"):
            user_service.create_staff({**REGISTRATION, "role": UserRole.CUSTOMER})

    def test_get_staff_ignores_customers(self, user_service, customer, receptionist):
        assert user_service.get_staff(customer.id) is None
        assert user_service.get_staff(receptionist.id).id == receptionist.id
        assert [u.id for u in user_service.list_staff()] == [receptionist.id]

    def test_delete_self_rejected(self, user_service, admin):
        with pytest.raises(ValueError, match="当前登录账号"):
            user_service.delete_user(admin.id, acting_user_id=admin.id)

    def test_delete_user_with_bookings_rejected(self, user_service, customer, make_booking, admin):
        make_booking()
        with pytest.raises(ValueError, match="存在预订记录"):
            user_service.delete_user(customer.id, acting_user_id=admin.id)

    def test_delete_user_with_travel_rejected(self, user_service, db_session, customer, admin):
        db_session.add(TravelBooking(
            customer_id=customer.id, attraction_name="Sigiriya", attraction_type="Culture",
            travel_date=date.today() + timedelta(days=10), total_price=Decimal("30.00")
        ))
        db_session.commit()
        with pytest.raises(ValueError, match="存在预订记录"):
            user_service.delete_user(customer.id, acting_user_id=admin.id)

    def test_delete_user_clears_related_rows(self, user_service, db_session, customer, receptionist, admin):
        db_session.add_all([
            ChatMessage(customer_id=customer.id, message_text="Hi", is_from_customer=True),
            ChatMessage(customer_id=customer.id, receptionist_id=receptionist.id,
                        message_text="Hello", is_from_customer=False),
            Complaint(customer_id=customer.id, subject="Noise", description="Loud hallway",
                      assigned_to=receptionist.id),
        ])
        db_session.commit()

        assert user_service.delete_user(receptionist.id, acting_user_id=admin.id) is True
        reply = db_session.query(ChatMessage).filter(ChatMessage.is_from_customer.is_(False)).one()
        assert reply.receptionist_id is None
        assert db_session.query(Complaint).one().assigned_to is None

        assert user_service.delete_user(customer.id, acting_user_id=admin.id) is True
        assert db_session.query(ChatMessage).count() == 0
        assert db_session.query(Complaint).count() == 0

    def test_update_user_email_conflict(self, user_service, customer, receptionist):
        with pytest.raises(ValueError, match="已被注册"):
            user_service.update_user(receptionist.id, {"email": customer.email})
