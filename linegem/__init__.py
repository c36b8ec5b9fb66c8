"""
linegem - LINE 聊天机器人与生成式模型之间的对话中继

模块概述：
    本文件是 linegem 包的入口文件（__init__.py），定义了包的元信息。
    linegem 接收 LINE 平台的 Webhook 事件，按事件类型和内容进行路由，
    为每个用户（或群组/聊天室）维护一段独立的多轮对话，
    并把用户输入转发给生成式模型（默认 Gemini，经 LiteLLM 适配）后回复。

    核心功能包括：
    - Webhook 事件分类（文字、图片、贴图、影片、关注、Postback、Beacon）
    - 每个身份一个对话会话，支持 "@#reset" 重置
    - 首轮对话的引导语（priming）注入
    - 图片内容描述
    - 可选的本地消息记录
"""

# 版本号，遵循语义化版本规范（主版本.次版本.修订号）
__version__ = "0.1.0"

# 项目 logo 表情符号，用于 CLI 输出等场景的品牌标识
__logo__ = "💬"
