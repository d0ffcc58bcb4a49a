"""
应用配置
从环境变量 / .env 读取配置
"""
from decimal import Decimal
from typing import List, Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "HRS SmartBooking"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./hrs.db"

    # JWT 配置
    SECRET_KEY: str = "hrs-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # 业务规则
    LATE_CHECKOUT_FEE: Decimal = Decimal("40.00")    # 逾期退房每天费用
    TRAVEL_REFUND_MIN_DAYS: int = 2                  # 出行前至少提前几天申请退款

    # 验证码 / 重置密码
    VERIFICATION_CODE_EXPIRE_MINUTES: int = 10
    VERIFICATION_CODE_MAX_PER_HOUR: int = 5
    PASSWORD_RESET_EXPIRE_HOURS: int = 24

    # SMTP 邮件配置
    EMAIL_ENABLED: bool = False
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_SENDER: Optional[str] = None
    SMTP_USE_TLS: bool = True

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


# 全局设置实例
settings = Settings()
