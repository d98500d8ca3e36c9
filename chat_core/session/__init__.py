"""会话编排层：状态机、乐观更新与流式交换的生命周期。"""

from chat_core.session.notifications import Notification
from chat_core.session.orchestrator import ChatSession
from chat_core.session.state import StreamState

__all__ = ["ChatSession", "Notification", "StreamState"]
