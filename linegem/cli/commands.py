"""
CLI 命令模块 - linegem 的所有命令行命令定义。

本模块使用 Typer 框架定义 linegem 的命令体系：
- onboard：初始化默认配置文件
- gateway：启动 LINE Webhook 服务
- chat：在终端里模拟 LINE 文字消息，直接驱动 Dispatcher（单条消息或交互式）
- status：查看配置状态

技术栈：
- Typer：CLI 框架
- Rich：终端美化输出
- prompt_toolkit：交互式输入（历史记录）
- uvicorn：运行 FastAPI Webhook 服务
"""

import asyncio
import sys
import uuid

import typer
from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.text import Text

from linegem import __logo__, __version__
from linegem.channels.base import BlobFetcher, ContentUnavailableError, ReplySink
from linegem.utils.helpers import ensure_dir, get_data_path

app = typer.Typer(
    name="linegem",
    help=f"{__logo__} linegem - LINE conversational relay",
    no_args_is_help=True,
)

console = Console()
EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit", ":q"}


def version_callback(value: bool):
    """当用户传入 --version 参数时，打印版本号并退出。"""
    if value:
        console.print(f"{__logo__} linegem v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
):
    """linegem CLI 根命令回调。"""
    pass


# ============================================================================
# 组装
# ============================================================================


def _make_provider(config):
    """
    根据配置创建 LiteLLM 提供者实例。未配置 API Key 时打印错误并退出。
    """
    from linegem.providers.litellm_provider import LiteLLMProvider

    p = config.provider
    if not p.api_key:
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Set provider.apiKey in ~/.linegem/config.json or GOOGLE_GEMINI_API_KEY")
        raise typer.Exit(1)
    return LiteLLMProvider(
        api_key=p.api_key,
        api_base=p.api_base,
        model=p.model,
        vision_model=config.vision_model,
        chat_temperature=p.chat_temperature,
        image_temperature=p.image_temperature,
        max_tokens=p.max_tokens,
        image_prompt=p.image_prompt,
        extra_headers=p.extra_headers,
    )


def build_dispatcher(config, provider, channel):
    """
    按配置组装 Dispatcher。

    参数:
        config: 全局配置
        provider: 同时实现 ConversationProvider 与 ImageDescriber 的提供者
        channel: 同时实现 ReplySink 与 BlobFetcher 的渠道
    """
    from linegem.agent.commands import CommandInterpreter
    from linegem.agent.composer import ReplyComposer
    from linegem.agent.dispatcher import Dispatcher
    from linegem.session.recorder import MessageRecorder
    from linegem.session.store import SessionStore

    bot = config.bot
    recorder = MessageRecorder(config.recorder_path) if config.recorder.enabled else None
    return Dispatcher(
        store=SessionStore(provider.start_session),
        replies=channel,
        blobs=channel,
        describer=provider,
        interpreter=CommandInterpreter(bot.command_prefix, bot.reset_command),
        composer=ReplyComposer(
            preamble=bot.priming_preamble,
            greeting=bot.greeting,
            image_failure_text=bot.image_failure_text,
            conversation_failure_text=bot.conversation_failure_text,
        ),
        recorder=recorder,
    )


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


# ============================================================================
# Onboard / Status
# ============================================================================


@app.command()
def onboard():
    """在 ~/.linegem/ 下创建默认配置文件 config.json。"""
    from linegem.config.loader import get_config_path, save_config
    from linegem.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config(), config_path)
    console.print(f"[green]✓[/green] Created config at {config_path}")

    console.print(f"\n{__logo__} linegem is ready!")
    console.print("\nNext steps:")
    console.print("  1. Add your LINE channel secret / access token and model API key to [cyan]~/.linegem/config.json[/cyan]")
    console.print("  2. Try it locally: [cyan]linegem chat -m \"Hello!\"[/cyan]")
    console.print("  3. Serve the webhook: [cyan]linegem gateway[/cyan]")


@app.command()
def status():
    """显示配置文件路径、模型和各项密钥的配置状态。"""
    from linegem.config.loader import get_config_path, load_config
    from linegem.providers.registry import resolve_provider

    config_path = get_config_path()
    config = load_config()
    ok, missing = "[green]✓[/green]", "[dim]not set[/dim]"

    console.print(f"{__logo__} linegem Status\n")
    console.print(f"Config: {config_path} {ok if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Model: {config.provider.model}")
    spec = resolve_provider(config.provider.model, config.provider.api_key, config.provider.api_base)
    console.print(f"Provider: {spec.display_name if spec else '[dim]unknown[/dim]'}")
    console.print(f"Vision model: {config.vision_model}")
    console.print(f"Model API key: {ok if config.provider.api_key else missing}")
    console.print(f"LINE channel secret: {ok if config.line.channel_secret else missing}")
    console.print(f"LINE access token: {ok if config.line.channel_access_token else missing}")
    recorder = f"[green]{config.recorder_path}[/green]" if config.recorder.enabled else "[dim]off[/dim]"
    console.print(f"Recorder: {recorder}")


# ============================================================================
# Gateway / Server
# ============================================================================


@app.command()
def gateway(
    port: int = typer.Option(None, "--port", "-p", help="Gateway port (defaults to config / $PORT)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    启动 LINE Webhook 服务。

    执行流程：
    1. 加载配置，创建模型提供者和 LINE 渠道
    2. 组装 Dispatcher（会话存储、命令解释器、回复组装器、可选的消息记录器）
    3. 用 uvicorn 运行 FastAPI 应用
    """
    import uvicorn

    from linegem.channels.line import LineChannel
    from linegem.channels.server import create_app
    from linegem.config.loader import load_config

    _configure_logging(verbose)
    config = load_config()

    if not config.line.channel_secret or not config.line.channel_access_token:
        console.print("[red]Error: LINE channel secret and access token are required.[/red]")
        raise typer.Exit(1)

    provider = _make_provider(config)
    channel = LineChannel(config.line)
    dispatcher = build_dispatcher(config, provider, channel)
    web_app = create_app(dispatcher, channel, config.gateway.path)

    listen_port = port or config.gateway.port
    console.print(f"{__logo__} Starting linegem gateway on {config.gateway.host}:{listen_port}{config.gateway.path}")
    uvicorn.run(web_app, host=config.gateway.host, port=listen_port, log_level="debug" if verbose else "info")


# ============================================================================
# Chat
# ============================================================================


class ConsoleChannel(ReplySink, BlobFetcher):
    """把回复打印到终端的渠道（本地调试用）。

    终端里没有 LINE 的媒体内容接口，fetch_content 总是抛出 ContentUnavailableError，
    图片事件因此会得到失败提示。
    """

    async def reply(self, reply_token: str, text: str) -> None:
        console.print()
        console.print(f"[cyan]{__logo__} linegem[/cyan]")
        console.print(Text(text))
        console.print()

    async def fetch_content(self, message_id: str) -> bytes:
        raise ContentUnavailableError(f"media content {message_id} is not available in the console")


def text_event(identity: str, text: str) -> dict:
    """构造一条与 LINE Webhook 格式相同的文字消息事件。"""
    return {
        "type": "message",
        "replyToken": uuid.uuid4().hex,
        "source": {"type": "user", "userId": identity},
        "message": {"type": "text", "id": uuid.uuid4().hex[:12], "text": text},
    }


@app.command()
def chat(
    message: str = typer.Option(None, "--message", "-m", help="Message to send"),
    identity: str = typer.Option("Ucli", "--identity", "-i", help="Simulated LINE user id"),
    logs: bool = typer.Option(False, "--logs/--no-logs", help="Show runtime logs during chat"),
):
    """
    在终端里与机器人对话。

    输入内容缺少命令前缀时会自动补上，因此输入 "reset" 即可重置会话。
    不带 -m 时进入交互模式（输入 exit 或 Ctrl+C 退出）。
    """
    from linegem.config.loader import load_config

    config = load_config()
    provider = _make_provider(config)
    dispatcher = build_dispatcher(config, provider, ConsoleChannel())
    prefix = config.bot.command_prefix

    if logs:
        logger.enable("linegem")
    else:
        logger.disable("linegem")

    def _prefixed(text: str) -> str:
        return text if text.startswith(prefix) else prefix + text

    if message:
        asyncio.run(dispatcher.dispatch([text_event(identity, _prefixed(message))]))
        return

    history_file = ensure_dir(get_data_path() / "history") / "chat_history"
    session = PromptSession(history=FileHistory(str(history_file)))
    console.print(f"{__logo__} Interactive mode (type [bold]exit[/bold] or [bold]Ctrl+C[/bold] to quit)\n")

    async def run_interactive():
        while True:
            try:
                with patch_stdout():
                    user_input = await session.prompt_async(HTML("<b fg='ansiblue'>You:</b> "))
            except (KeyboardInterrupt, EOFError):
                console.print("\nGoodbye!")
                break

            command = user_input.strip()
            if not command:
                continue
            if command.lower() in EXIT_COMMANDS:
                console.print("\nGoodbye!")
                break

            with console.status("[dim]linegem is thinking...[/dim]", spinner="dots"):
                await dispatcher.dispatch([text_event(identity, _prefixed(command))])

    asyncio.run(run_interactive())


if __name__ == "__main__":
    app()
