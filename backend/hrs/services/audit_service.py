"""
审计日志服务
"""
import json
import logging
from typing import Any, List, Optional
from sqlalchemy.orm import Session
from hrs.models.entities import AuditLog

logger = logging.getLogger(__name__)


def _serialize(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


class AuditService:
    """审计日志写入与查询"""

    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        action: str,
        table_name: Optional[str] = None,
        record_id: Optional[int] = None,
        user_id: Optional[int] = None,
        old_value: Any = None,
        new_value: Any = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=user_id,
            action=action,
            table_name=table_name,
            record_id=record_id,
            old_value=_serialize(old_value),
            new_value=_serialize(new_value),
            ip_address=ip_address,
            user_agent=(user_agent or "")[:500] or None,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def get_logs(
        self,
        action: Optional[str] = None,
        user_id: Optional[int] = None,
        limit: int = 100,
    ) -> List[AuditLog]:
        q = self.db.query(AuditLog)
        if action:
            q = q.filter(AuditLog.action == action)
        if user_id is not None:
            q = q.filter(AuditLog.user_id == user_id)
        return q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()

    def to_dict(self, entry: AuditLog) -> dict:
        return {
            "id": entry.id,
            "user_id": entry.user_id,
            "user_name": entry.user.full_name if entry.user else None,
            "action": entry.action,
            "table_name": entry.table_name,
            "record_id": entry.record_id,
            "old_value": entry.old_value,
            "new_value": entry.new_value,
            "ip_address": entry.ip_address,
            "user_agent": entry.user_agent,
            "created_at": entry.created_at,
        }
