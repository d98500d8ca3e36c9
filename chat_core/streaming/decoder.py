"""SSE 行解码器。

把传输层交付的任意字节块切分成以 ``\\n`` 结尾的文本行：

- UTF-8 解码是有状态的，跨块拆开的多字节字符不会被损坏；
- 每次 feed 之后，缓冲区里最多只剩一行尚未结束的文本；
- 行尾的 ``\\r`` 会被去掉，兼容 ``\\r\\n``。
"""

import codecs
from typing import List

from chat_core.domain.exceptions import StreamBufferOverflowError


DEFAULT_MAX_BUFFER_CHARS = 1024 * 1024


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


class SseLineDecoder:
    """字节块 → 文本行。"""

    def __init__(self, max_buffer_chars: int = DEFAULT_MAX_BUFFER_CHARS):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._max_buffer_chars = max_buffer_chars

    @property
    def pending(self) -> str:
        """尚未组成完整行的缓冲文本。"""
        return self._buffer

    def push(self, chunk: bytes) -> None:
        """只追加数据块，不切分；配合 next_line / requeue 逐行消费。"""
        self._buffer += self._decoder.decode(chunk, final=False)

    def feed(self, chunk: bytes) -> List[str]:
        """追加一个数据块，返回其中所有完整的行。"""
        self.push(chunk)
        lines = self._drain()
        self.check_capacity()
        return lines

    def check_capacity(self) -> None:
        """在挂起点调用：积压超过上限说明上游一直没有给出可解析的行。"""
        if len(self._buffer) > self._max_buffer_chars:
            raise StreamBufferOverflowError(
                code="SSE_BUFFER_OVERFLOW",
                message=f"SSE buffer exceeded {self._max_buffer_chars} characters",
                pending_chars=len(self._buffer),
            )

    def requeue(self, line: str) -> None:
        """把一行放回缓冲区头部，等待更多数据后再解析。"""
        self._buffer = line + "\n" + self._buffer

    def next_line(self) -> str | None:
        """取出缓冲区中的下一行完整文本；没有完整行时返回 None。"""
        idx = self._buffer.find("\n")
        if idx == -1:
            return None
        line = self._buffer[:idx]
        self._buffer = self._buffer[idx + 1:]
        return _strip_cr(line)

    def flush(self) -> List[str]:
        """流结束时调用：返回缓冲区里剩余的全部非空片段并清空缓冲区。"""
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        lines = []
        for raw in rest.split("\n"):
            line = _strip_cr(raw)
            if line:
                lines.append(line)
        return lines

    def _drain(self) -> List[str]:
        lines = []
        while True:
            line = self.next_line()
            if line is None:
                return lines
            lines.append(line)
