"""上游 LLM 集成层。

该包下的模块负责：
- 定义流式客户端抽象接口 (base)。
- 维护网关与模型配置 (registry)。
- 提供网关的具体实现 (gateway_client)。
"""

from typing import Optional

from chat_core.config.settings import settings
from chat_core.providers.base import StreamingClient
from chat_core.providers.gateway_client import GatewayClient


def create_provider(name: Optional[str] = None) -> StreamingClient:
    """根据名称创建客户端实例；目前只有 gateway 一种。"""

    provider_name = (name or "gateway").lower()
    if provider_name != "gateway":
        raise KeyError(f"Unknown provider: {name!r}")
    return GatewayClient(settings)
