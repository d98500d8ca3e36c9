"""会话编排核心模块。

ChatSession 持有界面可见的消息列表，负责一次流式交换的完整生命周期：

1. 乐观追加用户消息，必要时按首条消息懒创建会话，尽力持久化用户消息；
2. 携带历史发起上游请求；建立连接前失败（非 2xx、缺少响应体、网络错误）时
   撤销用户消息并提示；
3. 解码器 → 提取器 → 累加器逐块推进，界面上始终只有一条助手消息；
   进入流式阶段后再出错只提示，不撤销用户消息，已显示的部分回答也保留；
4. 正常结束后尽力持久化助手消息，持久化失败只记日志。

同一时刻最多只有一个流在进行，忙碌期间的发送请求直接拒绝。
加载、删除会话前会核对会话属于当前 owner_id。
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from chat_core.config.settings import settings
from chat_core.domain.conversation import Conversation, ConversationStore, make_title
from chat_core.domain.exceptions import BusinessError, StoreError
from chat_core.domain.models import ChatMessage, ChatRequest, Message, Role
from chat_core.infrastructure.logging.logger import logger
from chat_core.providers.base import StreamingClient
from chat_core.session.notifications import Notification, Notifier, error_notification
from chat_core.session.patch import AppendMessagePatch
from chat_core.session.state import StreamSession, StreamState
from chat_core.streaming.decoder import SseLineDecoder
from chat_core.streaming.extractor import extract_delta


Listener = Callable[[List[Message]], None]


class ChatSession:
    def __init__(
        self,
        client: StreamingClient,
        store: Optional[ConversationStore] = None,
        owner_id: Optional[str] = None,
        notifier: Optional[Notifier] = None,
        cfg=settings,
        model: Optional[str] = None,
    ):
        self._client = client
        self._store = store
        self._owner_id = owner_id
        self._notifier = notifier
        self._settings = cfg
        self._model = model or getattr(cfg, "default_model", "threat-doctor")
        self._listeners: List[Listener] = []
        self._assistant: Optional[Message] = None

        self.messages: List[Message] = []
        self.conversations: List[Conversation] = []
        self.current_conversation_id: Optional[str] = None
        self.notifications: List[Notification] = []
        self.state = StreamState.IDLE

    @property
    def is_busy(self) -> bool:
        return self.state.is_busy

    def add_listener(self, listener: Listener) -> None:
        """注册界面回调，每次可见消息列表变化后调用。"""
        self._listeners.append(listener)

    # ---- 发送与流式 ----

    def send_message(self, content: str) -> bool:
        """发送一条用户消息并把回答流式写入 messages。

        Returns:
            本次交换是否以 COMPLETED 结束；被拒绝或失败时返回 False。
        """
        text = content.strip()
        if not text or self.is_busy:
            return False

        start_time = time.time()
        log_ctx: Dict[str, Any] = {"trace_id": f"tr-{uuid4().hex}"}

        self.state = StreamState.SENDING
        history = list(self.messages)
        user_message = Message(role="user", content=text)
        patch = AppendMessagePatch(user_message)
        patch.apply(self.messages)
        self._assistant = None
        self._publish()

        conversation_id = self.current_conversation_id
        if not conversation_id and self._owner_id:
            conversation_id = self._create_conversation(text, log_ctx)
        log_ctx["conversation_id"] = conversation_id
        if conversation_id:
            self._save_message(conversation_id, "user", text, log_ctx)

        req = ChatRequest(model=self._model, messages=self._build_history(history, user_message))
        self._log(logging.INFO, "Calling gateway", log_ctx, message_count=len(req.messages))

        stream = StreamSession(decoder=SseLineDecoder(self._settings.sse_max_buffer_chars))
        stream.accumulator.subscribe(self._on_assistant_update)
        try:
            with self._client.open_stream(req) as chunks:
                self.state = StreamState.STREAMING
                self._consume(stream, chunks)
        except BusinessError as e:
            self._fail(e.message, patch, log_ctx, error_code=e.code)
            return False
        except Exception as e:
            self._fail(str(e) or "Failed to send message", patch, log_ctx, error_code="UNEXPECTED")
            raise

        patch.commit()
        self.state = StreamState.COMPLETED
        if conversation_id and stream.content:
            self._save_message(conversation_id, "assistant", stream.content, log_ctx)
        self._log(
            logging.INFO,
            "Completed stream",
            log_ctx,
            fragments=stream.accumulator.fragment_count,
            chars=len(stream.content),
            elapsed_seconds=round(time.time() - start_time, 2),
        )
        return True

    def _consume(self, stream: StreamSession, chunks) -> None:
        decoder = stream.decoder
        for chunk in chunks:
            decoder.push(chunk)
            self._drain(stream)
            if stream.terminal:
                return
            decoder.check_capacity()

        # 上游关闭连接：最后一次按行切分剩余内容，不完整的片段直接丢弃
        for line in decoder.flush():
            delta = extract_delta(line)
            if delta.kind == "fragment":
                stream.accumulator.append(delta.text)
            elif delta.kind == "done":
                break
        stream.terminal = True

    @staticmethod
    def _drain(stream: StreamSession) -> None:
        decoder = stream.decoder
        while True:
            line = decoder.next_line()
            if line is None:
                return
            delta = extract_delta(line)
            if delta.kind == "done":
                stream.terminal = True
                return
            if delta.kind == "partial":
                # 视为不完整的行，放回缓冲区等待下一个数据块
                decoder.requeue(line)
                return
            if delta.kind == "fragment":
                stream.accumulator.append(delta.text)

    def _on_assistant_update(self, content: str) -> None:
        if self._assistant is None:
            self._assistant = Message(role="assistant", content=content)
            self.messages.append(self._assistant)
        else:
            self._assistant.content = content
        self._publish()

    def _fail(self, description: str, patch: AppendMessagePatch, log_ctx: Dict[str, Any], **fields: Any) -> None:
        phase = self.state
        self.state = StreamState.FAILED
        self._log(logging.ERROR, "Chat stream failed", log_ctx, phase=phase.value, error=description, **fields)
        self._notify(error_notification(description))
        # 已经开始流式输出时保留用户消息和部分回答
        if phase == StreamState.SENDING:
            patch.revert(self.messages)
            self._publish()

    def _build_history(self, history: List[Message], user_message: Message) -> List[ChatMessage]:
        limit = getattr(self._settings, "max_history_messages", 0)
        if limit:
            # 新的用户消息占一个名额
            keep = limit - 1
            history = history[-keep:] if keep else []
        msgs = [ChatMessage(role=m.role, content=m.content) for m in history]
        msgs.append(ChatMessage(role="user", content=user_message.content))
        return msgs

    # ---- 会话管理 ----

    def load_conversations(self) -> List[Conversation]:
        if not self._owner_id or self._store is None:
            self.conversations = []
            return self.conversations
        try:
            self.conversations = self._store.list_conversations(self._owner_id)
        except Exception as e:
            self._log(logging.ERROR, "Failed to load conversations", {}, error=str(e))
        return self.conversations

    def load_conversation(self, conversation_id: str) -> bool:
        if not self._owner_id or self._store is None or self.is_busy:
            return False
        try:
            self._check_owner(conversation_id)
            records = self._store.load_messages(conversation_id)
        except Exception as e:
            self._log(logging.ERROR, "Failed to load conversation", {"conversation_id": conversation_id}, error=str(e))
            self._notify(error_notification("Failed to load conversation"))
            return False
        self.messages = [
            Message(id=r.id, role=r.role, content=r.content, timestamp=r.created_at)
            for r in records
        ]
        self.current_conversation_id = conversation_id
        self._assistant = None
        self.state = StreamState.IDLE
        self._publish()
        return True

    def delete_conversation(self, conversation_id: str) -> bool:
        if not self._owner_id or self._store is None:
            return False
        try:
            self._check_owner(conversation_id)
            self._store.delete_conversation(conversation_id)
        except Exception as e:
            self._log(logging.ERROR, "Failed to delete conversation", {"conversation_id": conversation_id}, error=str(e))
            self._notify(error_notification("Failed to delete conversation"))
            return False
        self.conversations = [c for c in self.conversations if c.id != conversation_id]
        if self.current_conversation_id == conversation_id:
            self.current_conversation_id = None
            self.messages = []
            self._publish()
        self._notify(Notification(title="Conversation deleted", description="The conversation has been removed."))
        return True

    def start_new_chat(self) -> None:
        self.current_conversation_id = None
        self.messages = []
        self._assistant = None
        self._publish()

    clear_chat = start_new_chat

    def _check_owner(self, conversation_id: str) -> None:
        conv = self._store.get_conversation(conversation_id)
        if conv.owner_id != self._owner_id:
            raise StoreError(code="CONVERSATION_FORBIDDEN", message=conversation_id, http_status=403)

    # ---- 持久化（尽力而为） ----

    def _create_conversation(self, first_message: str, log_ctx: Dict[str, Any]) -> Optional[str]:
        if self._store is None:
            return None
        try:
            conv = self._store.create_conversation(make_title(first_message), self._owner_id)
        except Exception as e:
            self._log(logging.ERROR, "Failed to create conversation", log_ctx, error=str(e))
            self._notify(error_notification("Failed to create conversation"))
            return None
        self.conversations.insert(0, conv)
        self.current_conversation_id = conv.id
        self._log(logging.INFO, "Created new conversation", log_ctx, conversation_id=conv.id)
        return conv.id

    def _save_message(self, conversation_id: str, role: Role, content: str, log_ctx: Dict[str, Any]) -> None:
        if self._store is None:
            return
        try:
            record = self._store.append_message(conversation_id, role, content)
        except Exception as e:
            self._log(logging.WARNING, "Failed to save message", log_ctx, role=role, error=str(e))
            return
        self._log(logging.INFO, "Stored message", log_ctx, role=role, message_id=record.id)

    # ---- 工具方法 ----

    def _publish(self) -> None:
        for listener in self._listeners:
            listener(self.messages)

    def _notify(self, notification: Notification) -> None:
        self.notifications.append(notification)
        if self._notifier is not None:
            self._notifier(notification)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
