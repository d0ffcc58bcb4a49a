"""
系统配置服务：system_settings 表中的运行时配置
"""
import logging
from typing import Dict, Optional
from sqlalchemy.orm import Session
from hrs.models.entities import SystemSetting

logger = logging.getLogger(__name__)

# 后端键 -> 默认值
DEFAULT_SETTINGS = {
    "MaintenanceMode": "false",
    "EmailNotifications": "true",
    "TwoFactorAuth": "false",
    "AutoBackup": "true",
    "Currency": "USD",
    "HotelName": "HRS SmartBooking",
}

# 前端键（含小写写法）-> 后端键
KEY_ALIASES = {
    "maintenance_mode": "MaintenanceMode",
    "maintenancemode": "MaintenanceMode",
    "email_notifications": "EmailNotifications",
    "emailnotifications": "EmailNotifications",
    "two_factor_auth": "TwoFactorAuth",
    "twofactorauth": "TwoFactorAuth",
    "auto_backup": "AutoBackup",
    "autobackup": "AutoBackup",
    "currency": "Currency",
    "hotel_name": "HotelName",
    "hotelname": "HotelName",
}

BOOLEAN_KEYS = ("MaintenanceMode", "EmailNotifications", "TwoFactorAuth", "AutoBackup")


def normalize_key(key: str) -> str:
    return KEY_ALIASES.get(key.strip().lower(), key.strip())


def _to_str(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


class ConfigService:
    """运行时配置读写"""

    def __init__(self, db: Session):
        self.db = db

    def _get(self, key: str) -> Optional[SystemSetting]:
        return self.db.query(SystemSetting).filter(SystemSetting.setting_key == key).first()

    def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        key = normalize_key(key)
        row = self._get(key)
        if row is not None and row.setting_value is not None:
            return row.setting_value
        if default is not None:
            return default
        return DEFAULT_SETTINGS.get(key)

    def get_bool(self, key: str, default: bool = False) -> bool:
        raw = self.get_value(key)
        if raw is None:
            return default
        return raw.strip().lower() in ("true", "1", "yes", "on")

    def get_config(self) -> Dict:
        return {
            "maintenance_mode": self.get_bool("MaintenanceMode", False),
            "email_notifications": self.get_bool("EmailNotifications", True),
            "two_factor_auth": self.get_bool("TwoFactorAuth", False),
            "auto_backup": self.get_bool("AutoBackup", True),
            "currency": self.get_value("Currency"),
            "hotel_name": self.get_value("HotelName"),
        }

    def update_config(self, mapping: Dict) -> Dict:
        if not mapping:
            raise ValueError("没有可保存的配置项")

        for raw_key, value in mapping.items():
            if value is None:
                continue
            key = normalize_key(raw_key)
            row = self._get(key)
            if row is None:
                row = SystemSetting(setting_key=key)
                self.db.add(row)
            row.setting_value = _to_str(value)
        self.db.commit()
        logger.info(f"System settings updated: {sorted(normalize_key(k) for k in mapping)}")
        return self.get_config()

    def seed_defaults(self) -> None:
        """补齐缺失的默认配置"""
        added = False
        for key, value in DEFAULT_SETTINGS.items():
            if self._get(key) is None:
                self.db.add(SystemSetting(setting_key=key, setting_value=value))
                added = True
        if added:
            self.db.commit()
