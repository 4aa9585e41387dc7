import json
import logging

import anyio
import pytest

from natsjs import AckPolicy, JetStreamOptions, SubscribeOptions
from natsjs.aio import JetStream, MemoryConnection, Msg, jetstream
from natsjs.errors import (
    APIResponseError,
    DirectModeRequiredError,
    NoMatchingStreamError,
    NotJetStreamMsgError,
    PullModeNotAllowedError,
    SubjectMismatchError,
    SubscriptionTypeError,
)
from natsjs.protocol.constant import DEFAULT_SUB_PENDING_MSGS_LIMIT

pytestmark = pytest.mark.anyio

ACK_REPLY = "$JS.ACK.S.C.1.1.1.1609459200000000000.0"


async def noop(msg: Msg) -> None:
    pass


class TestPullSubscribe:
    async def test_attach_sends_first_pull_request(
        self, js: JetStream, connection: MemoryConnection, server
    ):
        server.add_consumer("S", "C", filter_subject="foo")
        pulls = await connection.subscribe("$JS.API.CONSUMER.MSG.NEXT.>")
        sub = await js.pull_subscribe(
            "foo", 10, options=SubscribeOptions().attach("S", "C")
        )
        # The pull request is sent before the subscription is returned
        assert pulls.statistics().pending_msgs == 1
        request = await pulls.next_message(timeout=1)
        assert request.subject() == "$JS.API.CONSUMER.MSG.NEXT.S.C"
        assert request.data() == b'{"batch":10}'
        assert request.reply() == sub.subject()
        assert server.request_subjects() == ["$JS.API.CONSUMER.INFO.S.C"]
        assert sub.is_pull_mode()
        assert sub.deliver_subject() == ""
        assert sub.stream() == "S"
        assert sub.consumer() == "C"
        binding = sub.binding()
        assert binding is not None
        assert binding.is_created() is False

    async def test_create_pull_consumer(self, js: JetStream, server):
        server.add_stream("S", ["foo"])
        sub = await js.pull_subscribe("foo", 5)
        subjects = server.request_subjects()
        assert subjects == ["$JS.API.STREAM.NAMES", "$JS.API.CONSUMER.CREATE.S"]
        config = json.loads(server.requests[1][1])["config"]
        assert "deliver_subject" not in config
        assert config["filter_subject"] == "foo"
        assert config["ack_policy"] == "explicit"
        assert config["max_ack_pending"] == DEFAULT_SUB_PENDING_MSGS_LIMIT
        assert sub.consumer() == "EPH1"
        assert sub.deliver_subject() == ""
        binding = sub.binding()
        assert binding is not None
        assert binding.is_created()

    async def test_create_durable_pull_consumer(self, js: JetStream, server):
        server.add_stream("S", ["foo.>"])
        options = SubscribeOptions(pending_msgs_limit=64).with_durable("dur")
        sub = await js.pull_subscribe("foo.bar", 1, options=options)
        assert server.request_subjects()[1] == "$JS.API.CONSUMER.DURABLE.CREATE.S.dur"
        config = json.loads(server.requests[1][1])["config"]
        assert config["max_ack_pending"] == 64
        assert sub.consumer() == "dur"
        assert sub.pending_limits()[0] == 64

    async def test_pull_from_push_consumer(self, js: JetStream, server):
        server.add_consumer("S", "C", deliver_subject="push.C")
        with pytest.raises(SubscriptionTypeError):
            await js.pull_subscribe("foo", 1, options=SubscribeOptions().attach("S", "C"))

    async def test_pull_with_callback(self, js: JetStream, server):
        with pytest.raises(PullModeNotAllowedError):
            await js.subscribe("foo", noop, options=SubscribeOptions().with_pull(1))
        assert server.requests == []

    async def test_set_pull_batch(
        self, js: JetStream, connection: MemoryConnection, server
    ):
        server.add_consumer("S", "C")
        pulls = await connection.subscribe("$JS.API.CONSUMER.MSG.NEXT.>")
        sub = await js.pull_subscribe("foo", 1, options=SubscribeOptions().attach("S", "C"))
        sub.set_pull_batch(3)
        await sub.poll()
        first = await pulls.next_message(timeout=1)
        second = await pulls.next_message(timeout=1)
        assert first.data() == b'{"batch":1}'
        assert second.data() == b'{"batch":3}'

    async def test_direct_mode_sends_no_request(self, connection: MemoryConnection):
        api = await connection.subscribe("$JS.API.>")
        js = await jetstream(connection, JetStreamOptions(direct=True))
        sub = await js.pull_subscribe(
            "foo", 10, options=SubscribeOptions().attach("S", "C")
        )
        # Only the pull request reaches the API
        assert api.statistics().pending_msgs == 1
        request = await api.next_message(timeout=1)
        assert request.subject() == "$JS.API.CONSUMER.MSG.NEXT.S.C"
        assert sub.consumer() == "C"

    async def test_direct_mode_can_not_create(self, connection: MemoryConnection):
        api = await connection.subscribe("$JS.API.>")
        js = await jetstream(connection, JetStreamOptions(direct=True))
        with pytest.raises(DirectModeRequiredError):
            await js.pull_subscribe("foo", 10)
        assert api.statistics().pending_msgs == 0


class TestPushSubscribe:
    async def test_create_push_consumer(self, js: JetStream, server):
        server.add_stream("S", ["foo"])
        sub = await js.subscribe("foo", noop)
        config = json.loads(server.requests[1][1])["config"]
        assert config["deliver_subject"] == sub.subject()
        assert config["filter_subject"] == "foo"
        assert sub.deliver_subject() == sub.subject()
        assert sub.deliver_subject() != ""
        assert sub.is_pull_mode() is False
        assert sub.auto_ack() is True

    async def test_ack_policy_none_has_no_max_ack_pending(self, js: JetStream, server):
        server.add_stream("S", ["foo"])
        await js.subscribe("foo", noop, options=SubscribeOptions(ack_policy=AckPolicy.NONE))
        config = json.loads(server.requests[1][1])["config"]
        assert config["ack_policy"] == "none"
        assert "max_ack_pending" not in config

    async def test_attach_to_push_consumer(self, js: JetStream, server):
        server.add_consumer("S", "C", deliver_subject="push.C", filter_subject="foo")
        sub = await js.subscribe("foo", noop, options=SubscribeOptions().attach("S", "C"))
        assert sub.subject() == "push.C"
        assert sub.deliver_subject() == "push.C"
        assert server.request_subjects() == ["$JS.API.CONSUMER.INFO.S.C"]

    async def test_attach_by_deliver_subject(self, js: JetStream, server):
        options = SubscribeOptions().push_direct("push.C")
        sub = await js.subscribe("foo", noop, options=options)
        assert sub.subject() == "push.C"
        assert server.requests == []
        with pytest.raises(SubscriptionTypeError):
            await sub.consumer_info()

    async def test_attach_to_pull_consumer_is_rejected(self, js: JetStream, server):
        server.add_consumer("S", "C", filter_subject="foo")
        with pytest.raises(SubscriptionTypeError):
            await js.subscribe("foo", noop, options=SubscribeOptions().attach("S", "C"))
        assert server.request_subjects() == ["$JS.API.CONSUMER.INFO.S.C"]

    async def test_direct_push_without_deliver_subject(
        self, connection: MemoryConnection
    ):
        api = await connection.subscribe("$JS.API.>")
        js = await jetstream(connection, JetStreamOptions(direct=True))
        with pytest.raises(SubscriptionTypeError):
            await js.subscribe("foo", noop, options=SubscribeOptions().attach("S", "C"))
        assert api.statistics().pending_msgs == 0

    async def test_filter_mismatch(self, js: JetStream, server):
        server.add_consumer("S", "C", deliver_subject="push.C", filter_subject="bar")
        with pytest.raises(SubjectMismatchError):
            await js.subscribe("foo", noop, options=SubscribeOptions().attach("S", "C"))
        assert server.request_subjects() == ["$JS.API.CONSUMER.INFO.S.C"]
        assert ("S", "EPH1") not in server.consumers

    async def test_unknown_consumer(self, js: JetStream, server):
        with pytest.raises(APIResponseError) as exc_info:
            await js.subscribe("foo", noop, options=SubscribeOptions().attach("S", "C"))
        assert exc_info.value.code == 404

    async def test_no_matching_stream(self, js: JetStream, server):
        server.add_stream("S", ["bar"])
        with pytest.raises(NoMatchingStreamError):
            await js.subscribe("foo", noop)

    async def test_ambiguous_stream(self, js: JetStream, server):
        server.add_stream("A", ["foo.*"])
        server.add_stream("B", ["foo.bar"])
        with pytest.raises(NoMatchingStreamError):
            await js.subscribe("foo.bar", noop)

    async def test_failed_creation_removes_subscription(
        self, js: JetStream, connection: MemoryConnection, server
    ):
        server.add_stream("S", ["foo"])
        server.responses["CONSUMER.CREATE.S"] = (
            b'{"error":{"code":400,"description":"consumer limit reached"}}'
        )
        before = len(connection._subscriptions.values())
        with pytest.raises(APIResponseError):
            await js.subscribe("foo", noop)
        assert len(connection._subscriptions.values()) == before

    async def test_direct_mode_requires_existing_consumer(
        self, connection: MemoryConnection
    ):
        js = await jetstream(connection, JetStreamOptions(direct=True))
        with pytest.raises(DirectModeRequiredError):
            await js.subscribe("foo", noop)

    async def test_queue_subscribe(self, js: JetStream, server):
        server.add_stream("S", ["foo"])
        sub = await js.queue_subscribe("foo", "workers", noop)
        assert sub.queue() == "workers"

    async def test_poll_push_subscription(self, js: JetStream, server):
        server.add_stream("S", ["foo"])
        sub = await js.subscribe("foo", noop)
        with pytest.raises(SubscriptionTypeError):
            await sub.poll()
        with pytest.raises(SubscriptionTypeError):
            sub.set_pull_batch(1)

    async def test_consumer_info(self, js: JetStream, server):
        server.add_stream("S", ["foo"])
        sub = await js.subscribe("foo", noop, options=SubscribeOptions().with_durable("d"))
        info = await sub.consumer_info()
        assert info.name == "d"
        assert info.config.deliver_subject == sub.subject()


class TestDelivery:
    async def test_auto_ack(self, js: JetStream, connection: MemoryConnection, server):
        server.add_stream("S", ["foo"])
        acks = await connection.subscribe("$JS.ACK.>")
        received: list[bytes] = []

        async def handler(msg: Msg) -> None:
            received.append(msg.data())

        sub = await js.subscribe("foo", handler)
        await connection.publish(sub.subject(), b"hello", reply=ACK_REPLY)
        ack = await acks.next_message(timeout=1)
        assert ack.subject() == ACK_REPLY
        assert ack.data() == b"+ACK"
        assert received == [b"hello"]

    async def test_failed_auto_ack_is_logged(
        self,
        js: JetStream,
        connection: MemoryConnection,
        server,
        caplog: pytest.LogCaptureFixture,
    ):
        server.add_stream("S", ["foo"])
        received: list[bytes] = []
        done = anyio.Event()

        async def handler(msg: Msg) -> None:
            received.append(msg.data())
            if len(received) == 2:
                done.set()

        sub = await js.subscribe("foo", handler)
        with caplog.at_level(logging.ERROR, logger="natsjs.aio.subscription"):
            # Without reply subject the first message can not be acknowledged
            await connection.publish(sub.subject(), b"1")
            await connection.publish(sub.subject(), b"2", reply=ACK_REPLY)
            with anyio.fail_after(1):
                await done.wait()
        assert "Failed to acknowledge message" in caplog.text
        assert received == [b"1", b"2"]

    async def test_manual_ack(self, js: JetStream, connection: MemoryConnection, server):
        server.add_stream("S", ["foo"])
        acks = await connection.subscribe("$JS.ACK.>")
        received: list[Msg] = []
        done = anyio.Event()

        async def handler(msg: Msg) -> None:
            received.append(msg)
            done.set()

        options = SubscribeOptions().with_manual_ack()
        sub = await js.subscribe("foo", handler, options=options)
        assert sub.auto_ack() is False
        await connection.publish(sub.subject(), b"hello", reply=ACK_REPLY)
        with anyio.fail_after(1):
            await done.wait()
        await received[0].nak()
        # No acknowledgment was sent before the explicit one
        ack = await acks.next_message(timeout=1)
        assert ack.data() == b"-NAK"

    async def test_iterate_messages(
        self, js: JetStream, connection: MemoryConnection, server
    ):
        server.add_stream("S", ["foo"])
        sub = await js.subscribe("foo")
        assert sub.auto_ack() is False
        await connection.publish(sub.subject(), b"hello", reply=ACK_REPLY)
        msg = await sub.next_message(timeout=1)
        assert msg.data() == b"hello"
        assert msg.subscription() is sub
        meta = msg.metadata()
        assert meta.stream == "S"
        assert meta.consumer == "C"

    async def test_messages_iterator(
        self, js: JetStream, connection: MemoryConnection, server
    ):
        server.add_stream("S", ["foo"])
        sub = await js.subscribe("foo")
        for idx in range(3):
            await connection.publish(sub.subject(), str(idx).encode(), reply=ACK_REPLY)
        received: list[bytes] = []
        async for msg in sub.messages():
            received.append(msg.data())
            if len(received) == 3:
                break
        assert received == [b"0", b"1", b"2"]

    async def test_unsubscribe_drops_binding(
        self, js: JetStream, connection: MemoryConnection, server
    ):
        server.add_stream("S", ["foo"])
        sub = await js.subscribe("foo")
        await connection.publish(sub.subject(), b"hello", reply=ACK_REPLY)
        msg = await sub.next_message(timeout=1)
        await sub.unsubscribe()
        assert sub.binding() is None
        with pytest.raises(NotJetStreamMsgError):
            await msg.ack()
        with pytest.raises(SubscriptionTypeError):
            sub.stream()
        # The consumer is left untouched
        assert ("S", "EPH1") in server.consumers

    async def test_context_manager(self, js: JetStream, server):
        server.add_stream("S", ["foo"])
        async with await js.subscribe("foo", noop) as sub:
            assert sub.binding() is not None
        assert sub.binding() is None
