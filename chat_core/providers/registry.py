"""网关与模型配置。

本模块将“逻辑模型名”与“网关实际模型名”解耦：

- 逻辑名（logical_name）：在代码里使用的统一名称，例如 "threat-doctor"。
- provider_model：网关实际路由的模型 ID，例如 "google/gemini-2.5-flash"。

上层只关心逻辑名，具体用哪个底层模型由这里集中配置。"""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str


@dataclass
class ProviderConfig:
    """某个网关的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]


GATEWAY_CONFIG = ProviderConfig(
    name="gateway",
    base_url="https://ai.gateway.lovable.dev/v1",
    models={
        "threat-doctor": ModelConfig(
            logical_name="threat-doctor",
            provider_model="google/gemini-2.5-flash",
        )
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "gateway": GATEWAY_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")


def resolve_model(cfg: ProviderConfig, logical_name: str) -> str:
    """逻辑名 → 网关模型 ID；未登记的名字原样透传给网关。"""

    model = cfg.models.get(logical_name)
    return model.provider_model if model else logical_name
