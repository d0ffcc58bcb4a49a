"""
客服聊天测试：会话列表、已读标记、回复计数
"""
import pytest

from hrs.models.entities import ChatMessage
from hrs.services.chat_service import ChatService, MAX_MESSAGE_LENGTH


@pytest.fixture
def chat_service(db_session):
    return ChatService(db_session)


class TestCustomerSide:

    def test_send_message(self, chat_service, customer):
        msg = chat_service.send_customer_message(customer.id, "  Is breakfast included?  ")
        assert msg.message_text == "Is breakfast included?"
        assert msg.is_from_customer is True
        assert msg.is_read is False

    def test_empty_message_rejected(self, chat_service, customer):
        with pytest.raises(ValueError, match="不能为空"):
            chat_service.send_customer_message(customer.id, "   ")

    def test_too_long_rejected(self, chat_service, customer):
        with pytest.raises(ValueError, match="长度"):
            chat_service.send_customer_message(customer.id, "x" * (MAX_MESSAGE_LENGTH + 1))

    def test_viewing_marks_replies_read(self, chat_service, customer, receptionist, db_session):
        chat_service.send_customer_message(customer.id, "hello")
        chat_service.send_reply(receptionist.id, customer.id, "hi there")

        messages = chat_service.get_customer_messages(customer.id)
        assert len(messages) == 2
        reply = db_session.query(ChatMessage).filter(ChatMessage.is_from_customer == False).one()
        assert reply.is_read is True
        assert reply.read_at is not None


class TestReceptionistSide:

    def test_conversations_summary(self, chat_service, customer, make_user):
        other = make_user()
        chat_service.send_customer_message(customer.id, "first")
        chat_service.send_customer_message(customer.id, "second")
        chat_service.send_customer_message(other.id, "question")

        conversations = {c["customer_id"]: c for c in chat_service.get_conversations()}
        assert conversations[customer.id]["message_count"] == 2
        assert conversations[customer.id]["unread_count"] == 2
        assert conversations[customer.id]["has_unread"] is True
        assert conversations[customer.id]["last_message"] == "second"
        assert conversations[customer.id]["customer_name"] == "Ana Silva"
        assert conversations[other.id]["message_count"] == 1

    def test_opening_conversation_marks_customer_messages_read(self, chat_service, customer):
        chat_service.send_customer_message(customer.id, "first")
        chat_service.get_conversation(customer.id)
        conv = chat_service.get_conversations()[0]
        assert conv["unread_count"] == 0
        assert conv["has_unread"] is False

    def test_reply_increments_count_and_marks_read(self, chat_service, customer, receptionist, db_session):
        chat_service.send_customer_message(customer.id, "one")
        chat_service.send_customer_message(customer.id, "two")

        result = chat_service.send_reply(receptionist.id, customer.id, "We are on it")

        assert result["message_count"] == 3
        reply = db_session.query(ChatMessage).filter(ChatMessage.id == result["message_id"]).one()
        assert reply.receptionist_id == receptionist.id
        unread = db_session.query(ChatMessage).filter(
            ChatMessage.is_from_customer == True, ChatMessage.is_read == False
        ).count()
        assert unread == 0

    def test_reply_to_unknown_customer(self, chat_service, receptionist):
        assert chat_service.send_reply(receptionist.id, 999, "hello") is None

    def test_reply_to_staff_is_rejected(self, chat_service, receptionist, manager):
        assert chat_service.send_reply(receptionist.id, manager.id, "hello") is None
