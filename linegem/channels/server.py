"""
Webhook HTTP 服务 - 接收 LINE 平台的回调请求。

处理流程：
1. 校验 X-Line-Signature（无效时返回 400）
2. 解析 JSON 请求体（无效时返回 400）
3. 把 events 列表交给 Dispatcher，全部处理完成后返回 200

不同请求之间并发处理；同一请求中的事件按顺序处理。
"""

import json
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Request
from loguru import logger

from linegem import __version__
from linegem.agent.dispatcher import Dispatcher
from linegem.channels.line import LineChannel


def create_app(dispatcher: Dispatcher, channel: LineChannel, path: str = "/callback") -> FastAPI:
    """
    构建 FastAPI 应用。

    参数:
        dispatcher: 事件调度器
        channel: LINE 渠道（用于签名校验，并随应用启动/关闭）
        path: Webhook 回调路径

    返回:
        FastAPI 应用实例
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await channel.start()
        try:
            yield
        finally:
            await channel.stop()

    app = FastAPI(title="linegem", version=__version__, lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.post(path)
    async def callback(request: Request, x_line_signature: str | None = Header(None)) -> dict:
        body = await request.body()
        if not channel.verify_signature(body, x_line_signature):
            logger.warning("Rejected webhook request with invalid signature")
            raise HTTPException(status_code=400, detail="Invalid signature")

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise HTTPException(status_code=400, detail="Invalid JSON")

        events = payload.get("events") if isinstance(payload, dict) else None
        if not isinstance(events, list):
            raise HTTPException(status_code=400, detail="Missing events")

        await dispatcher.dispatch(events)
        return {"status": "ok"}

    return app
