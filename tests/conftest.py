"""Shared fakes for the dispatcher, store and server tests."""

import asyncio

import pytest

from linegem.agent.dispatcher import Dispatcher
from linegem.channels.base import BlobFetcher, ReplySink
from linegem.providers.base import ChatSession, ConversationProvider, ImageDescriber, LLMResponse
from linegem.session.store import SessionStore

PREAMBLE = "PRIME: "
GREETING = "hello there"


class FakeSession(ChatSession):
    """Echoes every message back and remembers what it was sent.

    Like LiteLLMChatSession, a failed or empty turn is rolled out of `history`.
    """

    def __init__(self, provider: "FakeProvider"):
        self.provider = provider
        self.sent: list[str] = []
        self.history: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def send(self, text: str) -> LLMResponse:
        self.sent.append(text)
        self.history.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # yield to the loop so concurrent sends can interleave
            await asyncio.sleep(0)
            await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
        if self.provider.fail_with:
            self.history.pop()
            return LLMResponse(content=self.provider.fail_with, finish_reason="error")
        if self.provider.empty_reason:
            self.history.pop()
            return LLMResponse(content=None, finish_reason=self.provider.empty_reason)
        return LLMResponse(content=f"model says: {text}")


class FakeProvider(ConversationProvider, ImageDescriber):
    def __init__(self):
        self.sessions: list[FakeSession] = []
        self.fail_with: str | None = None
        self.empty_reason: str | None = None
        self.describe_error: str | None = None
        self.described: list[bytes] = []

    def start_session(self) -> FakeSession:
        session = FakeSession(self)
        self.sessions.append(session)
        return session

    async def describe(self, data: bytes) -> LLMResponse:
        self.described.append(data)
        if self.describe_error:
            return LLMResponse(content=self.describe_error, finish_reason="error")
        return LLMResponse(content=f"an image of {len(data)} bytes")


class FakeChannel(ReplySink, BlobFetcher):
    def __init__(self):
        self.replies: list[tuple[str, str]] = []
        self.contents: dict[str, bytes] = {}
        self.fail_reply_tokens: set[str] = set()

    async def reply(self, reply_token: str, text: str) -> None:
        if reply_token in self.fail_reply_tokens:
            raise RuntimeError(f"reply token {reply_token} expired")
        self.replies.append((reply_token, text))

    async def fetch_content(self, message_id: str) -> bytes:
        if message_id not in self.contents:
            raise RuntimeError(f"content {message_id} not found")
        return self.contents[message_id]

    def text_for(self, reply_token: str) -> str | None:
        for token, text in self.replies:
            if token == reply_token:
                return text
        return None


def text_event(text: str, token: str = "t1", user_id: str = "U1", source: dict | None = None) -> dict:
    return {
        "type": "message",
        "replyToken": token,
        "source": source if source is not None else {"type": "user", "userId": user_id},
        "message": {"type": "text", "id": f"m-{token}", "text": text},
    }


def image_event(message_id: str, token: str = "img", user_id: str = "U1") -> dict:
    return {
        "type": "message",
        "replyToken": token,
        "source": {"type": "user", "userId": user_id},
        "message": {"type": "image", "id": message_id},
    }


def sticker_event(token: str = "st", user_id: str = "U1") -> dict:
    return {
        "type": "message",
        "replyToken": token,
        "source": {"type": "user", "userId": user_id},
        "message": {
            "type": "sticker",
            "id": "s1",
            "packageId": "1",
            "stickerId": "2",
            "keywords": ["fun", "wow"],
        },
    }


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def store(provider):
    return SessionStore(provider.start_session)


@pytest.fixture
def dispatcher(store, channel, provider):
    from linegem.agent.composer import ReplyComposer

    return Dispatcher(
        store=store,
        replies=channel,
        blobs=channel,
        describer=provider,
        composer=ReplyComposer(preamble=PREAMBLE, greeting=GREETING),
    )
