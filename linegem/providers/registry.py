"""
模型服务商注册表。

LiteLLM 通过模型名前缀路由请求（如 "gemini/gemini-1.5-flash"），并从环境变量读取各家的 API Key。
这里集中记录每家服务商的前缀与环境变量名，LiteLLMProvider 据此补全模型名、设置 Key。

匹配顺序即 PROVIDERS 中的顺序；网关（OpenRouter）只能通过 Key 前缀或 api_base 识别。
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderSpec:
    """
    服务商元数据。

    属性：
        name: 服务商标识（如 "gemini"）
        keywords: 模型名中出现即判定为该服务商的关键词（小写）
        env_key: LiteLLM 读取 API Key 的环境变量名
        display_name: `linegem status` 中显示的名称
        litellm_prefix: 需要补在模型名前的路由前缀，为空表示 LiteLLM 可直接识别
        skip_prefixes: 模型名已带这些前缀时不再补全
        is_gateway: 是否为可转发任意模型的网关
        detect_by_key_prefix: 网关 API Key 的固定前缀
        detect_by_base_keyword: 网关 api_base 中包含的关键词
    """

    name: str
    keywords: tuple[str, ...]
    env_key: str
    display_name: str = ""
    litellm_prefix: str = ""
    skip_prefixes: tuple[str, ...] = ()
    is_gateway: bool = False
    detect_by_key_prefix: str = ""
    detect_by_base_keyword: str = ""


PROVIDERS: tuple[ProviderSpec, ...] = (
    ProviderSpec(
        name="openrouter",
        keywords=("openrouter",),
        env_key="OPENROUTER_API_KEY",
        display_name="OpenRouter",
        litellm_prefix="openrouter",
        is_gateway=True,
        detect_by_key_prefix="sk-or-",
        detect_by_base_keyword="openrouter",
    ),
    # 默认服务商；Gemini 模型在 LiteLLM 中必须带 "gemini/" 前缀
    ProviderSpec(
        name="gemini",
        keywords=("gemini",),
        env_key="GEMINI_API_KEY",
        display_name="Google Gemini",
        litellm_prefix="gemini",
        skip_prefixes=("gemini/",),
    ),
    ProviderSpec(
        name="anthropic",
        keywords=("anthropic", "claude"),
        env_key="ANTHROPIC_API_KEY",
        display_name="Anthropic",
    ),
    ProviderSpec(
        name="openai",
        keywords=("openai", "gpt"),
        env_key="OPENAI_API_KEY",
        display_name="OpenAI",
    ),
)


def find_by_model(model: str) -> ProviderSpec | None:
    """按模型名关键词查找直连服务商（忽略网关），找不到返回 None。"""
    lowered = model.lower()
    return next(
        (spec for spec in PROVIDERS if not spec.is_gateway and any(kw in lowered for kw in spec.keywords)),
        None,
    )


def find_gateway(api_key: str | None = None, api_base: str | None = None) -> ProviderSpec | None:
    """根据 API Key 前缀或 api_base 判断是否经由网关访问模型。"""
    for spec in PROVIDERS:
        if not spec.is_gateway:
            continue
        if api_key and spec.detect_by_key_prefix and api_key.startswith(spec.detect_by_key_prefix):
            return spec
        if api_base and spec.detect_by_base_keyword and spec.detect_by_base_keyword in api_base:
            return spec
    return None


def resolve_provider(model: str, api_key: str | None = None, api_base: str | None = None) -> ProviderSpec | None:
    """实际处理请求的服务商：网关优先，其次按模型名匹配。"""
    return find_gateway(api_key, api_base) or find_by_model(model)
