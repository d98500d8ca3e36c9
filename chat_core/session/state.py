"""流式交换的状态机与单次交换的临时状态。"""

from dataclasses import dataclass, field
from enum import Enum

from chat_core.streaming.accumulator import MessageAccumulator
from chat_core.streaming.decoder import SseLineDecoder


class StreamState(str, Enum):
    """IDLE → SENDING → STREAMING → {COMPLETED, FAILED}。

    COMPLETED / FAILED 是一次交换的终态，之后可以开始下一次发送。
    """

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_busy(self) -> bool:
        return self in (StreamState.SENDING, StreamState.STREAMING)


@dataclass
class StreamSession:
    """一次请求/响应交换期间的状态，交换结束即丢弃，不做持久化。"""

    decoder: SseLineDecoder
    accumulator: MessageAccumulator = field(default_factory=MessageAccumulator)
    terminal: bool = False

    @property
    def content(self) -> str:
        return self.accumulator.content
