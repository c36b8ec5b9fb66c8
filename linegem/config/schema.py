"""
配置数据模型定义 (config/schema.py)
=================================
本模块使用 Pydantic 定义 linegem 的完整配置结构。
所有配置项都有默认值，用户只需在 config.json 中覆盖需要修改的部分。

整体配置结构（树形）：
Config (根配置)
├── line          - LINE Messaging API 连接参数（Channel Secret / Access Token）
├── provider      - 生成式模型配置（API Key、模型名、温度等）
├── bot           - 对话行为配置（命令前缀、引导语、问候语、失败提示）
├── recorder      - 本地消息记录配置
└── gateway       - Webhook HTTP 服务配置（主机、端口、回调路径）
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings


class LineConfig(BaseModel):
    """LINE Messaging API 配置。"""
    channel_secret: str = ""  # 用于校验 X-Line-Signature
    channel_access_token: str = ""  # 调用回复/内容接口的 Bearer Token
    api_base: str = "https://api.line.me"  # 回复接口所在域名
    data_api_base: str = "https://api-data.line.me"  # 媒体内容接口所在域名
    timeout: float = 30.0  # HTTP 请求超时（秒）


class ProviderConfig(BaseModel):
    """
    生成式模型配置。

    通过 LiteLLM 调用，model 可以是任意 LiteLLM 支持的模型名，
    不带前缀时会根据 providers/registry.py 自动补全（如 "gemini-1.5-flash" → "gemini/gemini-1.5-flash"）。
    """
    api_key: str = ""  # 模型服务的 API Key
    api_base: str | None = None  # 自定义 API 基础 URL（代理或网关）
    extra_headers: dict[str, str] | None = None  # 额外请求头
    model: str = "gemini/gemini-1.5-flash"  # 对话使用的模型
    vision_model: str = ""  # 图片描述使用的模型，留空则与 model 相同
    chat_temperature: float = 0.1  # 对话温度
    image_temperature: float = 0.8  # 图片描述温度
    max_tokens: int = 4096  # 单次回复的最大 token 数
    image_prompt: str = (
        "Describe this image with percise detail. Reply in zh-TW. "
        "如果圖片中辨識出文字則翻譯為繁體中文. :"
    )


class BotConfig(BaseModel):
    """
    对话行为配置。

    - command_prefix: 只有以此前缀开头的文字消息才会被处理，其余一律忽略
    - priming_preamble: 新会话第一次对话时附加在最前面的引导语
    """
    command_prefix: str = "@#"
    reset_command: str = "reset"
    priming_preamble: str = "You are a helpful assistant with precise and logical thinking. "
    greeting: str = "很高興初次見到你，我是Gemini，請問有什麼想了解的嗎？"
    image_failure_text: str = "無法辨識圖片內容，請重新輸入:"
    conversation_failure_text: str = "抱歉，目前無法取得回覆，請稍後再試:"


class RecorderConfig(BaseModel):
    """本地消息记录配置（默认关闭）。"""
    enabled: bool = False
    directory: str = "~/.linegem/conversations"


class GatewayConfig(BaseModel):
    """Webhook HTTP 服务配置。"""
    host: str = "0.0.0.0"  # 监听地址（0.0.0.0 表示监听所有网卡）
    port: int = 8080  # 监听端口
    path: str = "/callback"  # LINE 后台填写的 Webhook 路径


class Config(BaseSettings):
    """
    linegem 根配置类。

    继承自 Pydantic 的 BaseSettings，除了支持从 JSON 文件加载外，
    还支持从环境变量读取配置：
    - 环境变量前缀: LINEGEM_
    - 嵌套分隔符: __ (双下划线)
    - 示例: LINEGEM_PROVIDER__MODEL=openai/gpt-4o 可覆盖 provider.model
    """
    line: LineConfig = Field(default_factory=LineConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    bot: BotConfig = Field(default_factory=BotConfig)
    recorder: RecorderConfig = Field(default_factory=RecorderConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    @property
    def recorder_path(self) -> Path:
        """获取展开后的消息记录目录（将 ~ 展开为用户主目录）。"""
        return Path(self.recorder.directory).expanduser()

    @property
    def vision_model(self) -> str:
        """图片描述实际使用的模型名。"""
        return self.provider.vision_model or self.provider.model

    model_config = ConfigDict(
        env_prefix="LINEGEM_",
        env_nested_delimiter="__",
    )
