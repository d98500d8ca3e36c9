"""流式解析层。

- decoder: 字节块 → SSE 文本行（跨块容错）。
- extractor: SSE 行 → 文本增量 / 结束标记。
- accumulator: 文本增量 → 单条不断增长的助手消息。
"""

from chat_core.streaming.accumulator import MessageAccumulator
from chat_core.streaming.decoder import SseLineDecoder
from chat_core.streaming.extractor import Delta, extract_delta

__all__ = ["Delta", "MessageAccumulator", "SseLineDecoder", "extract_delta"]
