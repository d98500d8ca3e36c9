"""LLM 网关适配器。

网关接口与 OpenAI 兼容，使用 chat/completions 端点：
- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>
- 请求体: {model, messages: [system, ...history], stream: true}

响应为 text/event-stream；本模块只负责建立连接、映射错误并交出原始字节块，
SSE 的解析由 chat_core.streaming 完成。
"""

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

import httpx

from chat_core.config.settings import settings
from chat_core.domain.exceptions import (
    ApiError,
    NetworkError,
    QuotaExceededError,
    RateLimitError,
    StreamError,
    ValidationError,
)
from chat_core.domain.models import ChatMessage, ChatRequest
from chat_core.prompts import load_system_prompt
from chat_core.providers.registry import GATEWAY_CONFIG, resolve_model


RATE_LIMIT_MESSAGE = "Rate limits exceeded, please try again later."
PAYMENT_REQUIRED_MESSAGE = "Payment required, please add credits to your workspace."


class GatewayClient:
    """流式聊天网关客户端。"""

    name = "gateway"

    def __init__(self, cfg=settings, system_prompt: str | None = None):
        self._settings = cfg
        self._system_prompt = system_prompt

    @contextmanager
    def open_stream(self, req: ChatRequest) -> Iterator[Iterator[bytes]]:
        if not getattr(self._settings, "gateway_api_key", None):
            raise ValidationError(code="MISSING_API_KEY", message="GATEWAY_API_KEY is not configured")
        payload = self._build_payload(req)
        base = getattr(self._settings, "gateway_base_url", None) or GATEWAY_CONFIG.base_url
        # 读超时即两个数据块之间的最长空闲时间
        timeout = httpx.Timeout(
            self._settings.http_timeout,
            read=getattr(self._settings, "stream_idle_timeout", self._settings.http_timeout),
        )
        try:
            with httpx.Client(timeout=timeout, trust_env=False) as client:
                with client.stream(
                    "POST",
                    f"{base.rstrip('/')}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self._settings.gateway_api_key}",
                        "Content-Type": "application/json",
                        "Accept": "text/event-stream",
                    },
                ) as resp:
                    self._raise_for_status(resp)
                    yield self._iter_chunks(resp)
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or "Network request failed")

    # ---- 辅助方法 ----

    def _build_payload(self, req: ChatRequest) -> Dict[str, Any]:
        system_prompt = self._system_prompt if self._system_prompt is not None else load_system_prompt()
        msgs: List[ChatMessage] = [ChatMessage(role="system", content=system_prompt), *req.messages]
        return {
            "model": resolve_model(GATEWAY_CONFIG, req.model),
            "messages": [m.to_payload() for m in msgs],
            "stream": req.stream,
        }

    def _raise_for_status(self, resp) -> None:
        status = resp.status_code
        if status == 429:
            raise RateLimitError(code="RATE_LIMIT", message=RATE_LIMIT_MESSAGE, http_status=429)
        if status == 402:
            raise QuotaExceededError(code="PAYMENT_REQUIRED", message=PAYMENT_REQUIRED_MESSAGE, http_status=402)
        if not resp.is_success:
            raise ApiError(
                code="API_ERROR",
                message=self._error_message(resp) or f"Request failed with status {status}",
                http_status=status,
            )
        if status == 204 or resp.headers.get("content-length") == "0":
            raise ApiError(code="NO_RESPONSE_BODY", message="No response body", http_status=502)

    @staticmethod
    def _error_message(resp) -> str | None:
        """读取网关的错误信封 {"error": "..."}，读不到时返回 None。"""
        try:
            resp.read()
            data = json.loads(resp.text)
        except (httpx.HTTPError, ValueError):
            return None
        if isinstance(data, dict):
            err = data.get("error")
            if isinstance(err, str) and err:
                return err
            if isinstance(err, dict) and isinstance(err.get("message"), str):
                return err["message"]
        return None

    @staticmethod
    def _iter_chunks(resp) -> Iterator[bytes]:
        try:
            for chunk in resp.iter_bytes():
                if chunk:
                    yield chunk
        except httpx.ReadTimeout as e:
            raise StreamError(code="STREAM_IDLE_TIMEOUT", message=f"Stream idle timeout: {e}")
        except httpx.HTTPError as e:
            raise StreamError(code="STREAM_READ_ERROR", message=str(e) or "Stream interrupted")
