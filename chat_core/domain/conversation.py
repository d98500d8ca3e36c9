from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from .models import Role


TITLE_MAX_CHARS = 50


def make_title(first_message: str) -> str:
    """由首条用户消息生成会话标题，超过 50 字符时截断并补省略号。"""
    if len(first_message) > TITLE_MAX_CHARS:
        return first_message[: TITLE_MAX_CHARS - 3] + "..."
    return first_message


@dataclass
class Conversation:
    id: str
    title: str
    owner_id: Optional[str]
    created_at: datetime
    updated_at: datetime
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MessageRecord:
    id: str
    conversation_id: str
    role: Role
    content: str
    created_at: datetime
    meta: Dict[str, Any] = field(default_factory=dict)


class ConversationStore(Protocol):
    def create_conversation(self, title: str, owner_id: Optional[str] = None) -> Conversation:
        ...

    def get_conversation(self, conversation_id: str) -> Conversation:
        ...

    def list_conversations(self, owner_id: Optional[str] = None) -> List[Conversation]:
        ...

    def append_message(self, conversation_id: str, role: Role, content: str) -> MessageRecord:
        ...

    def load_messages(self, conversation_id: str) -> List[MessageRecord]:
        ...

    def touch_conversation(self, conversation_id: str) -> None:
        ...

    def delete_conversation(self, conversation_id: str) -> None:
        ...
