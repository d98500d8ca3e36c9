"""统一的消息与请求数据模型。

- Message: 界面上可见的一条消息（user/assistant），流式期间 content 可变。
- ChatMessage: 发往上游网关的 {role, content} 结构。
- ChatRequest: 一次完整的流式请求（逻辑模型名 + 消息列表）。
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal
from uuid import uuid4


# 界面可见的消息角色
Role = Literal["user", "assistant"]

# 发给上游时额外允许 system
WireRole = Literal["system", "user", "assistant"]


def new_message_id() -> str:
    return f"m-{uuid4().hex}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Message:
    """一条可见消息。

    助手消息在流式过程中只有一个实例，content 随增量被整体替换；
    流结束后不再修改。
    """

    role: Role
    content: str
    id: str = field(default_factory=new_message_id)
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class ChatMessage:
    """发往上游的一条消息。"""

    role: WireRole
    content: str

    def to_payload(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatRequest:
    """一次流式聊天请求。

    messages 不含 system 提示词，由 GatewayClient 在发送前补上。
    """

    model: str
    messages: List[ChatMessage]
    stream: bool = True
