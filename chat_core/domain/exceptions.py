"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在会话层或 API 层做统一捕获与用户提示。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_READ_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 trace_id、conversation_id 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """上游网关返回非 2xx 错误（或没有响应体）时抛出。"""


class RateLimitError(ApiError):
    """上游限流（HTTP 429）。"""


class QuotaExceededError(ApiError):
    """上游额度不足 / 需要付费（HTTP 402）。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class StreamError(BusinessError):
    """读取流式响应过程中出现的硬错误（连接中断、空闲超时等）。"""


class StreamBufferOverflowError(StreamError):
    """SSE 缓冲区积压超过上限，上游一直没有发送完整的行。"""


class StoreError(BusinessError):
    """会话存储读写失败。"""
