"""上游客户端抽象接口。

会话层不直接依赖 httpx，而是依赖此协议，测试时可以换成
按预设字节块回放的假客户端。
"""

from typing import ContextManager, Iterator, Protocol

from chat_core.domain.models import ChatRequest


class StreamingClient(Protocol):
    """流式聊天客户端协议。

    实现者需要提供：
    - name: 名称，用于日志。
    - open_stream(req): 发出请求并在响应成功时返回字节块迭代器的上下文；
      非 2xx 状态、缺少响应体或网络错误应在进入上下文时以
      domain.exceptions 中的异常抛出。
    """

    name: str

    def open_stream(self, req: ChatRequest) -> ContextManager[Iterator[bytes]]:
        ...
