"""Tests for the dispatcher state machine."""

import asyncio

from linegem.agent.dispatcher import Dispatcher
from linegem.events import EVENT_TYPES, OtherEvent
from linegem.providers.base import LLMResponse
from linegem.session.recorder import MessageRecorder
from tests.conftest import GREETING, PREAMBLE, image_event, sticker_event, text_event


class TestTextContent:

    def test_first_message_is_primed_second_is_not(self, dispatcher, channel, provider):
        asyncio.run(dispatcher.dispatch([
            text_event("@#hello", token="t1"),
            text_event("@#again", token="t2"),
        ]))

        assert len(provider.sessions) == 1
        assert provider.sessions[0].sent == [PREAMBLE + "hello", "again"]
        assert channel.text_for("t1") == f"model says: {PREAMBLE}hello"
        assert channel.text_for("t2") == "model says: again"

    def test_text_without_prefix_is_dropped(self, dispatcher, channel, store):
        asyncio.run(dispatcher.dispatch([text_event("hello", token="t1")]))

        assert channel.replies == []
        assert len(store) == 0

    def test_ignored_text_does_not_stop_the_batch(self, dispatcher, channel):
        asyncio.run(dispatcher.dispatch([
            text_event("no prefix", token="t1"),
            text_event("@#hi", token="t2"),
        ]))
        assert [token for token, _ in channel.replies] == ["t2"]

    def test_each_identity_gets_its_own_session(self, dispatcher, provider):
        asyncio.run(dispatcher.dispatch([
            text_event("@#a", token="t1", user_id="U1"),
            text_event("@#b", token="t2", user_id="U2"),
        ]))

        assert len(provider.sessions) == 2
        assert provider.sessions[0].sent == [PREAMBLE + "a"]
        assert provider.sessions[1].sent == [PREAMBLE + "b"]

    def test_conversation_failure_becomes_reply_and_batch_continues(self, dispatcher, channel, provider):
        provider.fail_with = "quota exceeded"
        asyncio.run(dispatcher.dispatch([
            text_event("@#one", token="t1", user_id="U1"),
            sticker_event(token="t2", user_id="U2"),
        ]))

        failure = channel.text_for("t1")
        assert failure is not None
        assert "quota exceeded" in failure
        assert channel.text_for("t2") is not None

    def test_failure_does_not_poison_other_identities(self, dispatcher, channel, provider):
        asyncio.run(dispatcher.dispatch([text_event("@#hi", token="t1", user_id="U1")]))
        provider.fail_with = "boom"
        asyncio.run(dispatcher.dispatch([text_event("@#hi", token="t2", user_id="U2")]))
        provider.fail_with = None
        asyncio.run(dispatcher.dispatch([text_event("@#still there?", token="t3", user_id="U1")]))

        assert channel.text_for("t3") == "model says: still there?"

    def test_missing_identity_skips_session(self, dispatcher, channel, store):
        event = text_event("@#hi", token="t1", source={"type": "user"})
        asyncio.run(dispatcher.dispatch([event]))

        assert len(store) == 0
        assert channel.replies == []

    def test_reply_failure_is_logged_and_batch_continues(self, dispatcher, channel):
        channel.fail_reply_tokens.add("t1")
        asyncio.run(dispatcher.dispatch([
            text_event("@#one", token="t1"),
            text_event("@#two", token="t2"),
        ]))
        assert channel.text_for("t2") == "model says: two"


class TestReset:

    def test_reset_without_prior_session_sends_primed_greeting(self, dispatcher, channel, store):
        asyncio.run(dispatcher.dispatch([text_event("@#reset", token="t1")]))

        assert channel.text_for("t1") == PREAMBLE + GREETING
        assert "U1" in store

    def test_reset_with_prior_session_sends_plain_greeting(self, dispatcher, channel, store, provider):
        asyncio.run(dispatcher.dispatch([text_event("@#hi", token="t1")]))
        old, _ = store.get("U1")

        asyncio.run(dispatcher.dispatch([text_event("@#RESET", token="t2")]))
        new, _ = store.get("U1")

        assert channel.text_for("t2") == GREETING
        assert new is not old
        assert len(provider.sessions) == 2

    def test_message_after_reset_uses_new_session_unprimed(self, dispatcher, store, provider):
        asyncio.run(dispatcher.dispatch([
            text_event("@#hi", token="t1"),
            text_event("@#reset", token="t2"),
            text_event("@#fresh start", token="t3"),
        ]))

        old, new = provider.sessions
        assert old.sent == [PREAMBLE + "hi"]
        assert new.sent == ["fresh start"]
        assert store.get("U1")[0] is new

    def test_reset_does_not_call_the_model(self, dispatcher, provider):
        asyncio.run(dispatcher.dispatch([text_event("@#reset", token="t1")]))
        assert provider.sessions[0].sent == []


class TestConcurrency:

    def test_concurrent_first_contact_creates_one_session(self, dispatcher, provider, channel):
        async def run():
            await asyncio.gather(
                dispatcher.dispatch([text_event("@#a", token="t1")]),
                dispatcher.dispatch([text_event("@#b", token="t2")]),
                dispatcher.dispatch([text_event("@#c", token="t3")]),
            )

        asyncio.run(run())

        assert len(provider.sessions) == 1
        sent = provider.sessions[0].sent
        assert sum(1 for text in sent if text.startswith(PREAMBLE)) == 1
        assert len(channel.replies) == 3

    def test_sends_to_one_identity_are_serialized(self, dispatcher, provider):
        async def run():
            await asyncio.gather(*(
                dispatcher.dispatch([text_event(f"@#msg {i}", token=f"t{i}")]) for i in range(5)
            ))

        asyncio.run(run())

        session = provider.sessions[0]
        assert len(session.sent) == 5
        assert session.max_in_flight == 1

    def test_different_identities_are_not_serialized_together(self, dispatcher, provider):
        async def run():
            await asyncio.gather(*(
                dispatcher.dispatch([text_event("@#hi", token=f"t{i}", user_id=f"U{i}")]) for i in range(3)
            ))

        asyncio.run(run())
        assert len(provider.sessions) == 3


class TestMediaAndOtherEvents:

    def test_sticker_summary(self, dispatcher, channel, store):
        asyncio.run(dispatcher.dispatch([sticker_event(token="st")]))

        text = channel.text_for("st")
        for value in ("fun", "wow", "1", "2"):
            assert value in text
        assert len(store) == 0

    def test_image_is_described(self, dispatcher, channel, provider):
        channel.contents["m1"] = b"\x89PNG\r\n\x1a\nabc"
        asyncio.run(dispatcher.dispatch([image_event("m1", token="img")]))

        assert provider.described == [b"\x89PNG\r\n\x1a\nabc"]
        assert channel.text_for("img") == "an image of 11 bytes"

    def test_image_fetch_failure_replies_and_continues(self, dispatcher, channel):
        asyncio.run(dispatcher.dispatch([
            image_event("missing", token="img"),
            text_event("@#next", token="t2"),
        ]))

        failure = channel.text_for("img")
        assert failure
        assert "content missing not found" in failure
        assert channel.text_for("t2") == f"model says: {PREAMBLE}next"

    def test_image_description_failure_embeds_error(self, dispatcher, channel, provider):
        channel.contents["m1"] = b"data"
        provider.describe_error = "vision model unavailable"
        asyncio.run(dispatcher.dispatch([image_event("m1", token="img")]))

        assert "vision model unavailable" in channel.text_for("img")

    def test_log_only_events_send_nothing(self, dispatcher, channel, store):
        source = {"type": "user", "userId": "U1"}
        asyncio.run(dispatcher.dispatch([
            {"type": "message", "replyToken": "v", "source": source, "message": {"type": "video", "id": "1"}},
            {"type": "follow", "replyToken": "f", "source": source},
            {"type": "postback", "replyToken": "p", "source": source, "postback": {"data": "x"}},
            {"type": "beacon", "replyToken": "b", "source": source, "beacon": {"hwid": "h", "type": "enter"}},
            {"type": "unfollow", "source": source},
            {"type": "message", "replyToken": "a", "source": source, "message": {"type": "audio", "id": "2"}},
            "garbage",
        ]))

        assert channel.replies == []
        assert len(store) == 0

    def test_every_event_type_has_a_handler(self, dispatcher):
        assert set(dispatcher.handlers) == set(EVENT_TYPES)

    def test_handler_error_is_contained(self, dispatcher, channel):
        async def broken(event):
            raise ValueError("handler bug")

        dispatcher.handlers[OtherEvent] = broken
        asyncio.run(dispatcher.dispatch(["garbage", text_event("@#ok", token="t1")]))
        assert channel.text_for("t1") is not None


class TestRecording:

    def test_content_and_reply_are_recorded(self, store, channel, provider, tmp_path):
        recorder = MessageRecorder(tmp_path)
        dispatcher = Dispatcher(store, channel, channel, provider, recorder=recorder)

        asyncio.run(dispatcher.dispatch([
            text_event("@#hello", token="t1"),
            text_event("ignored", token="t2"),
        ]))

        lines = recorder.read("U1")
        assert lines[0] == "hello"
        assert lines[1].startswith("model says:")
        assert len(lines) == 2


class TestPrimingAfterFailure:

    def test_failed_first_turn_keeps_session_unprimed(self, dispatcher, channel, provider):
        provider.fail_with = "temporarily unavailable"
        asyncio.run(dispatcher.dispatch([text_event("@#one", token="t1")]))
        provider.fail_with = None
        asyncio.run(dispatcher.dispatch([
            text_event("@#two", token="t2"),
            text_event("@#three", token="t3"),
        ]))

        session = provider.sessions[0]
        assert session.sent == [PREAMBLE + "one", PREAMBLE + "two", "three"]
        assert session.history == [PREAMBLE + "two", "three"]
        assert channel.text_for("t2") == f"model says: {PREAMBLE}two"

    def test_empty_first_turn_keeps_session_unprimed(self, dispatcher, provider):
        provider.empty_reason = "content_filter"
        asyncio.run(dispatcher.dispatch([text_event("@#one", token="t1")]))
        provider.empty_reason = None
        asyncio.run(dispatcher.dispatch([text_event("@#two", token="t2")]))

        assert provider.sessions[0].sent == [PREAMBLE + "one", PREAMBLE + "two"]

    def test_reset_after_failed_first_turn_starts_unprimed(self, dispatcher, provider):
        provider.fail_with = "boom"
        asyncio.run(dispatcher.dispatch([text_event("@#one", token="t1")]))
        provider.fail_with = None
        asyncio.run(dispatcher.dispatch([
            text_event("@#reset", token="t2"),
            text_event("@#two", token="t3"),
        ]))

        assert provider.sessions[1].sent == ["two"]


class TestEmptyReplies:

    def test_empty_model_reply_informs_user(self, dispatcher, channel, provider):
        provider.empty_reason = "content_filter"
        asyncio.run(dispatcher.dispatch([text_event("@#hi", token="t1")]))

        reply = channel.text_for("t1")
        assert reply is not None
        assert reply.startswith(dispatcher.composer.conversation_failure_text)
        assert "content_filter" in reply

    def test_empty_reply_is_not_recorded(self, store, channel, provider, tmp_path):
        recorder = MessageRecorder(tmp_path)
        dispatcher = Dispatcher(store, channel, channel, provider, recorder=recorder)
        provider.empty_reason = "content_filter"

        asyncio.run(dispatcher.dispatch([text_event("@#hi", token="t1")]))

        assert recorder.read("U1") == ["hi"]

    def test_empty_image_description_informs_user(self, dispatcher, channel, provider):
        async def empty_description(data: bytes) -> LLMResponse:
            return LLMResponse(content="", finish_reason="content_filter")

        provider.describe = empty_description
        channel.contents["m1"] = b"data"
        asyncio.run(dispatcher.dispatch([image_event("m1", token="img")]))

        reply = channel.text_for("img")
        assert reply.startswith(dispatcher.composer.image_failure_text)
        assert "content_filter" in reply


def test_send_lock_is_shared_per_identity(dispatcher):
    assert dispatcher._lock_for("U1") is dispatcher._lock_for("U1")
    assert dispatcher._lock_for("U1") is not dispatcher._lock_for("U2")
    assert len(dispatcher._send_locks) == 2
