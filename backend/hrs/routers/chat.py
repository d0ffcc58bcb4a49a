"""
客服聊天路由
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from hrs.database import get_db
from hrs.models.entities import User
from hrs.models.schemas import ChatMessageCreate, ChatReplyCreate
from hrs.services.chat_service import ChatService
from hrs.security.auth import require_permission
from hrs.security.permissions import CUSTOMER_SUPPORT_USE, RECEPTIONIST_REQUESTS_HANDLE

router = APIRouter(prefix="/chat", tags=["客服聊天"])


# ---------- 客户端 ----------

@router.get("/messages")
def get_my_messages(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_SUPPORT_USE))
):
    """客户查看会话"""
    service = ChatService(db)
    return [service.to_dict(m) for m in service.get_customer_messages(current_user.id)]


@router.post("/messages", status_code=status.HTTP_201_CREATED)
def send_message(
    data: ChatMessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(CUSTOMER_SUPPORT_USE))
):
    """客户发送消息"""
    service = ChatService(db)
    try:
        msg = service.send_customer_message(current_user.id, data.message)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return service.to_dict(msg)


# ---------- 前台端 ----------

@router.get("/conversations")
def list_conversations(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_REQUESTS_HANDLE))
):
    """会话列表"""
    return ChatService(db).get_conversations()


@router.get("/conversations/{customer_id}")
def get_conversation(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_REQUESTS_HANDLE))
):
    """查看某客户会话（同时标记客户消息已读）"""
    service = ChatService(db)
    return [service.to_dict(m) for m in service.get_conversation(customer_id)]


@router.post("/reply")
def send_reply(
    data: ChatReplyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(RECEPTIONIST_REQUESTS_HANDLE))
):
    """前台回复客户"""
    service = ChatService(db)
    try:
        result = service.send_reply(current_user.id, data.customer_id, data.message)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="客户不存在")
    return {"success": True, **result}
