"""对外 API 服务模块。

提供简化的函数接口供上层应用调用，每个用户一个 ChatSession。
"""

from typing import Any, Dict, Optional

from chat_core.config.settings import settings
from chat_core.domain.conversation import ConversationStore
from chat_core.domain.models import Message
from chat_core.infrastructure.logging.logger import logger
from chat_core.infrastructure.storage.json_store import JsonConversationStore
from chat_core.prompts import SUGGESTED_PROMPTS
from chat_core.providers import create_provider
from chat_core.session.orchestrator import ChatSession


_store: Optional[ConversationStore] = None
_sessions: Dict[Optional[str], ChatSession] = {}


def get_store() -> ConversationStore:
    global _store
    if _store is None:
        _store = JsonConversationStore(root=settings.storage_root)
    return _store


def get_session(owner_id: Optional[str] = None) -> ChatSession:
    """获取某个用户的 ChatSession 实例（按 owner_id 单例）。"""
    session = _sessions.get(owner_id)
    if session is None:
        session = ChatSession(client=create_provider(), store=get_store(), owner_id=owner_id)
        _sessions[owner_id] = session
    return session


def _message_dict(m: Message) -> Dict[str, Any]:
    return {
        "id": m.id,
        "role": m.role,
        "content": m.content,
        "timestamp": m.timestamp.isoformat(),
    }


def send_chat(user_input: str, owner_id: Optional[str] = None) -> Dict[str, Any]:
    """发送一条消息并等待流式回答结束。

    Args:
        user_input: 用户输入内容
        owner_id: 用户ID（可选，不提供则不做持久化）

    Returns:
        包含是否成功、当前会话ID、状态、可见消息和提示的字典
    """
    session = get_session(owner_id)
    seen = len(session.notifications)
    try:
        ok = session.send_message(user_input)
    except Exception as e:
        logger.error(f"Chat failed: {e}", extra={"extra": {
            "owner_id": owner_id,
            "conversation_id": session.current_conversation_id,
            "error": str(e),
        }})
        raise
    return {
        "ok": ok,
        "conversation_id": session.current_conversation_id,
        "state": session.state.value,
        "messages": [_message_dict(m) for m in session.messages],
        "notifications": [
            {"title": n.title, "description": n.description, "variant": n.variant}
            for n in session.notifications[seen:]
        ],
    }


def list_conversations(owner_id: str) -> list[Dict[str, Any]]:
    """列出用户的会话，最近更新的在前。

    Returns:
        会话列表，每项包含 id, title, created_at, updated_at
    """
    convs = get_session(owner_id).load_conversations()
    return [
        {
            "id": c.id,
            "title": c.title,
            "created_at": c.created_at.isoformat(),
            "updated_at": c.updated_at.isoformat(),
        }
        for c in convs
    ]


def get_conversation_messages(conversation_id: str, owner_id: str) -> list[Dict[str, Any]]:
    """加载会话历史并设为当前会话，返回按创建时间排序的消息列表。"""
    session = get_session(owner_id)
    if not session.load_conversation(conversation_id):
        return []
    return [_message_dict(m) for m in session.messages]


def delete_conversation(conversation_id: str, owner_id: str) -> bool:
    return get_session(owner_id).delete_conversation(conversation_id)


def suggested_prompts() -> list[str]:
    """空会话时展示的起始问题。"""
    return list(SUGGESTED_PROMPTS)
