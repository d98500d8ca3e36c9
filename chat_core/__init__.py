"""Chat Core 顶层包。

该包提供 ThreatDoctor 助手的流式聊天核心实现，
包括配置加载、领域模型、网关适配、SSE 流式解析、
会话编排与持久化存储等能力。
"""

from chat_core.session import ChatSession, Notification, StreamState

__all__ = ["ChatSession", "Notification", "StreamState"]
