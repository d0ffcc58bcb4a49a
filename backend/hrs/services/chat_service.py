"""
客服聊天 Service：客户与前台之间的消息收发 / 会话列表 / 标记已读
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from hrs.models.entities import ChatMessage, User, UserRole

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


def _clean_text(text: Optional[str]) -> str:
    text = (text or "").strip()
    if not text:
        raise ValueError("消息内容不能为空")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValueError(f"消息长度不能超过 {MAX_MESSAGE_LENGTH} 个字符")
    return text


class ChatService:
    def __init__(self, db: Session):
        self.db = db

    def _mark_read(self, customer_id: int, from_customer: bool) -> int:
        """将某客户会话中一方发出的未读消息标记为已读"""
        now = datetime.now()
        count = self.db.query(ChatMessage).filter(
            ChatMessage.customer_id == customer_id,
            ChatMessage.is_from_customer == from_customer,
            ChatMessage.is_read == False,
        ).update({"is_read": True, "read_at": now}, synchronize_session="fetch")
        return count

    def _messages(self, customer_id: int) -> List[ChatMessage]:
        return (
            self.db.query(ChatMessage)
            .filter(ChatMessage.customer_id == customer_id)
            .order_by(ChatMessage.created_at, ChatMessage.id)
            .all()
        )

    # =============== 客户端 ===============

    def get_customer_messages(self, customer_id: int) -> List[ChatMessage]:
        """客户查看自己的会话，同时将前台回复标记为已读"""
        if self._mark_read(customer_id, from_customer=False):
            self.db.commit()
        return self._messages(customer_id)

    def send_customer_message(self, customer_id: int, text: str) -> ChatMessage:
        msg = ChatMessage(
            customer_id=customer_id,
            message_text=_clean_text(text),
            is_from_customer=True,
            is_read=False,
            created_at=datetime.now(),
        )
        self.db.add(msg)
        self.db.commit()
        self.db.refresh(msg)
        return msg

    # =============== 前台端 ===============

    def get_conversations(self) -> List[Dict]:
        """每个客户一条会话：最新消息、未读数（客户发出且未读）"""
        messages = (
            self.db.query(ChatMessage)
            .order_by(ChatMessage.created_at, ChatMessage.id)
            .all()
        )
        conversations: Dict[int, Dict] = {}
        for m in messages:
            conv = conversations.get(m.customer_id)
            if conv is None:
                customer = m.customer
                conv = {
                    "customer_id": m.customer_id,
                    "customer_name": customer.full_name if customer else "Unknown",
                    "customer_email": customer.email if customer else None,
                    "unread_count": 0,
                    "message_count": 0,
                }
                conversations[m.customer_id] = conv
            conv["last_message"] = m.message_text
            conv["last_message_time"] = m.created_at
            conv["message_count"] += 1
            if m.is_from_customer and not m.is_read:
                conv["unread_count"] += 1

        result = list(conversations.values())
        for conv in result:
            conv["has_unread"] = conv["unread_count"] > 0
        result.sort(key=lambda c: c["last_message_time"], reverse=True)
        return result

    def get_conversation(self, customer_id: int) -> List[ChatMessage]:
        """前台查看某客户会话，同时将客户消息标记为已读"""
        if self._mark_read(customer_id, from_customer=True):
            self.db.commit()
        return self._messages(customer_id)

    def send_reply(self, receptionist_id: int, customer_id: int, text: str) -> Optional[Dict]:
        """
        前台回复客户

        Returns:
            {"message_id", "message_count"}；客户不存在时返回 None
        """
        text = _clean_text(text)
        customer = self.db.query(User).filter(
            User.id == customer_id, User.role == UserRole.CUSTOMER
        ).first()
        if not customer:
            return None

        self._mark_read(customer_id, from_customer=True)
        msg = ChatMessage(
            customer_id=customer_id,
            receptionist_id=receptionist_id,
            message_text=text,
            is_from_customer=False,
            is_read=False,
            created_at=datetime.now(),
        )
        self.db.add(msg)
        self.db.commit()
        self.db.refresh(msg)

        count = self.db.query(ChatMessage).filter(ChatMessage.customer_id == customer_id).count()
        logger.info(f"Receptionist {receptionist_id} replied to customer {customer_id}")
        return {"message_id": msg.id, "message_count": count}

    @staticmethod
    def to_dict(msg: ChatMessage) -> Dict:
        return {
            "id": msg.id,
            "customer_id": msg.customer_id,
            "receptionist_id": msg.receptionist_id,
            "receptionist_name": msg.receptionist.full_name if msg.receptionist else None,
            "message_text": msg.message_text,
            "is_from_customer": msg.is_from_customer,
            "is_read": msg.is_read,
            "created_at": msg.created_at,
            "read_at": msg.read_at,
        }
