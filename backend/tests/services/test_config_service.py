"""
系统配置测试：默认值、键别名、布尔值存储
"""
import pytest

from hrs.models.entities import SystemSetting
from hrs.services.config_service import ConfigService, DEFAULT_SETTINGS, normalize_key


@pytest.fixture
def config_service(db_session):
    return ConfigService(db_session)


class TestConfigService:

    def test_defaults_without_rows(self, config_service):
        assert config_service.get_config() == {
            "maintenance_mode": False,
            "email_notifications": True,
            "two_factor_auth": False,
            "auto_backup": True,
            "currency": "USD",
            "hotel_name": "HRS SmartBooking",
        }

    def test_key_aliases(self):
        assert normalize_key("twoFactorAuth") == "TwoFactorAuth"
        assert normalize_key("maintenance_mode") == "MaintenanceMode"
        assert normalize_key("Currency") == "Currency"
        assert normalize_key("CustomKey") == "CustomKey"

    def test_update_stores_backend_keys(self, config_service, db_session):
        result = config_service.update_config({"maintenanceMode": True, "currency": "LKR"})
        assert result["maintenance_mode"] is True
        assert result["currency"] == "LKR"

        row = db_session.query(SystemSetting).filter(
            SystemSetting.setting_key == "MaintenanceMode"
        ).one()
        assert row.setting_value == "true"

    def test_none_values_skipped(self, config_service):
        config_service.update_config({"hotel_name": None, "auto_backup": False})
        config = config_service.get_config()
        assert config["hotel_name"] == "HRS SmartBooking"
        assert config["auto_backup"] is False

    def test_empty_update_rejected(self, config_service):
        with pytest.raises(ValueError):
            config_service.update_config({})

    def test_seed_defaults_idempotent(self, config_service, db_session):
        config_service.update_config({"currency": "EUR"})
        config_service.seed_defaults()
        config_service.seed_defaults()
        assert db_session.query(SystemSetting).count() == len(DEFAULT_SETTINGS)
        assert config_service.get_value("Currency") == "EUR"

    def test_get_bool_variants(self, config_service):
        config_service.update_config({"EmailNotifications": "off"})
        assert config_service.get_bool("email_notifications", True) is False
        config_service.update_config({"EmailNotifications": "YES"})
        assert config_service.get_bool("email_notifications") is True
