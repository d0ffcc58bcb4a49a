"""
管理员 API 测试：用户与员工、角色与权限覆盖、系统配置、审计日志、支付
"""
from datetime import date, timedelta
from decimal import Decimal

from hrs.models.entities import AuditLog, TravelBooking, UserRole
from hrs.security.permissions import AUTH_LOGIN, ADMIN_CONFIG_MANAGE


class TestUsers:

    def test_create_user_is_audited(self, client, db_session, admin, admin_headers):
        response = client.post("/admin/users", headers=admin_headers, json={
            "first_name": "Ravi", "last_name": "Kumar", "email": "ravi@hotel.test",
            "password": "secret123", "role": "manager"
        })
        assert response.status_code == 201
        assert response.json()["role"] == "manager"

        entry = db_session.query(AuditLog).filter(AuditLog.action == "create_user").one()
        assert entry.user_id == admin.id
        assert entry.ip_address == "testclient"

    def test_list_users_filter(self, client, admin_headers, customer, receptionist):
        users = client.get("/admin/users", headers=admin_headers, params={"role": "customer"}).json()
        assert [u["email"] for u in users] == [customer.email]

    def test_update_user_hides_password_in_audit(self, client, db_session, admin_headers, customer):
        response = client.put(f"/admin/users/{customer.id}", headers=admin_headers,
                              json={"is_active": False, "password": "another1"})
        assert response.status_code == 200
        assert response.json()["is_active"] is False
        entry = db_session.query(AuditLog).filter(AuditLog.action == "update_user").one()
        assert "another1" not in entry.new_value

    def test_cannot_delete_self(self, client, admin, admin_headers):
        assert client.delete(f"/admin/users/{admin.id}", headers=admin_headers).status_code == 400

    def test_delete_missing_user(self, client, admin_headers):
        assert client.delete("/admin/users/999", headers=admin_headers).status_code == 404

    def test_delete_customer_with_travel_booking(self, client, db_session, admin_headers, customer):
        db_session.add(TravelBooking(
            customer_id=customer.id, attraction_name="Yala Safari", attraction_type="Wildlife",
            travel_date=date.today() + timedelta(days=14), total_price=Decimal("75.00")
        ))
        db_session.commit()
        response = client.delete(f"/admin/users/{customer.id}", headers=admin_headers)
        assert response.status_code == 400

    def test_get_user(self, client, admin_headers, customer):
        response = client.get(f"/admin/users/{customer.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["email"] == customer.email
        assert client.get("/admin/users/999", headers=admin_headers).status_code == 404

    def test_manager_forbidden(self, client, manager_headers):
        assert client.get("/admin/users", headers=manager_headers).status_code == 403


class TestStaff:

    def test_create_staff_default_role(self, client, admin_headers):
        response = client.post("/admin/staff", headers=admin_headers, json={
            "first_name": "Desk", "last_name": "Two", "email": "desk2@hotel.test", "password": "secret123"
        })
        assert response.status_code == 201
        assert response.json()["role"] == "receptionist"

    def test_staff_rejects_customer_role(self, client, admin_headers, receptionist):
        response = client.put(f"/admin/staff/{receptionist.id}", headers=admin_headers,
                              json={"role": "customer"})
        assert response.status_code == 400

    def test_customer_is_not_staff(self, client, admin_headers, customer):
        assert client.delete(f"/admin/staff/{customer.id}", headers=admin_headers).status_code == 404


class TestRolesAndPermissions:

    def test_list_roles(self, client, admin_headers):
        roles = {r["role"]: r for r in client.get("/admin/roles", headers=admin_headers).json()}
        assert set(roles) == {"admin", "manager", "receptionist", "customer"}
        assert roles["admin"]["user_count"] == 1

    def test_save_roles(self, client, admin_headers):
        response = client.put("/admin/roles", headers=admin_headers, json=[
            {"role": "Receptionist", "permissions": [AUTH_LOGIN]}
        ])
        assert response.status_code == 200
        roles = {r["role"]: r for r in response.json()}
        assert roles["receptionist"]["permissions"] == [AUTH_LOGIN]

    def test_save_unknown_roles(self, client, admin_headers):
        response = client.put("/admin/roles", headers=admin_headers, json=[{"role": "concierge"}])
        assert response.status_code == 400

    def test_assign_role(self, client, admin_headers, customer):
        response = client.post("/admin/roles/assign", headers=admin_headers,
                               json={"user_id": customer.id, "role": "Receptionist"})
        assert response.status_code == 200
        assert response.json()["role"] == "receptionist"

        assert client.post("/admin/roles/assign", headers=admin_headers,
                           json={"user_id": 999, "role": "manager"}).status_code == 404

    def test_role_status(self, client, admin_headers, receptionist):
        response = client.put("/admin/roles/receptionist/status", headers=admin_headers,
                              json={"enabled": False})
        assert response.json() == {"role": "receptionist", "enabled": False, "affected_users": 1}

        empty = client.put("/admin/roles/manager/status", headers=admin_headers, json={"enabled": False})
        assert empty.status_code == 404

    def test_permission_overrides(self, client, admin_headers, receptionist, receptionist_headers):
        assert client.get("/admin/config", headers=receptionist_headers).status_code == 403

        response = client.put("/admin/users/permissions", headers=admin_headers, json={
            "overrides": {str(receptionist.id): {ADMIN_CONFIG_MANAGE: True}}
        })
        assert response.status_code == 200
        assert response.json()[str(receptionist.id)] == {ADMIN_CONFIG_MANAGE: True}

        assert client.get("/admin/config", headers=receptionist_headers).status_code == 200
        listed = client.get("/admin/users/permissions", headers=admin_headers,
                            params={"user_id": receptionist.id}).json()
        assert listed == {str(receptionist.id): {ADMIN_CONFIG_MANAGE: True}}

    def test_override_unknown_user(self, client, admin_headers):
        response = client.put("/admin/users/permissions", headers=admin_headers,
                              json={"overrides": {"999": {AUTH_LOGIN: True}}})
        assert response.status_code == 400


class TestConfigAndReports:

    def test_config_round_trip(self, client, db_session, admin_headers):
        assert client.get("/admin/config", headers=admin_headers).json()["two_factor_auth"] is False

        response = client.put("/admin/config", headers=admin_headers,
                              json={"twoFactorAuth": True, "hotelName": "Kandy Lake Hotel"})
        assert response.status_code == 200
        assert response.json()["two_factor_auth"] is True
        assert response.json()["hotel_name"] == "Kandy Lake Hotel"

        entry = db_session.query(AuditLog).filter(AuditLog.action == "update_config").one()
        assert '"two_factor_auth": false' in entry.old_value

    def test_empty_config_rejected(self, client, admin_headers):
        assert client.put("/admin/config", headers=admin_headers, json={}).status_code == 400

    def test_audit_logs_endpoint(self, client, admin_headers, customer):
        client.put(f"/admin/users/{customer.id}", headers=admin_headers, json={"first_name": "Anne"})
        logs = client.get("/admin/audit-logs", headers=admin_headers, params={"action": "update_user"}).json()
        assert len(logs) == 1
        assert logs[0]["record_id"] == customer.id

    def test_dashboard_and_reports(self, client, admin_headers, make_booking):
        make_booking()
        dashboard = client.get("/admin/dashboard", headers=admin_headers).json()
        assert dashboard["total_users"] == 2
        reports = client.get("/admin/reports", headers=admin_headers).json()
        assert reports["booking_status_breakdown"]["confirmed"] == 1

    def test_payments(self, client, admin_headers):
        assert client.get("/admin/payments", headers=admin_headers).json() == []
