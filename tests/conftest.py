from __future__ import annotations

import json
from typing import Any

import pytest

from natsjs.aio import JetStream, MemoryConnection, jetstream
from natsjs.aio.memory import subject_matches
from natsjs.core.msg import Msg

API_PREFIX = "$JS.API."


class FakeJetStreamServer:
    """Answer JetStream API requests sent through a MemoryConnection.

    Streams and consumers are kept in dictionaries. Every request received
    on an API subject is recorded, except pull requests which are recorded
    separately since nobody answers them.
    """

    def __init__(self, connection: MemoryConnection, prefix: str = API_PREFIX) -> None:
        self.connection = connection
        self.prefix = prefix
        self.requests: list[tuple[str, bytes]] = []
        self.pull_requests: list[tuple[str, bytes, str]] = []
        self.responses: dict[str, bytes] = {}
        self.streams: dict[str, dict[str, Any]] = {}
        self.consumers: dict[tuple[str, str], dict[str, Any]] = {}
        self._ephemeral = 0

    async def start(self) -> None:
        await self.connection.subscribe(self.prefix + ">", self._handle)

    def request_subjects(self) -> list[str]:
        return [subject for subject, _ in self.requests]

    def add_stream(self, name: str, subjects: list[str]) -> None:
        self.streams[name] = {"name": name, "subjects": subjects}

    def add_consumer(
        self,
        stream: str,
        name: str,
        deliver_subject: str | None = None,
        filter_subject: str | None = None,
    ) -> None:
        config: dict[str, Any] = {
            "durable_name": name,
            "deliver_policy": "all",
            "ack_policy": "explicit",
            "replay_policy": "instant",
        }
        if deliver_subject:
            config["deliver_subject"] = deliver_subject
        if filter_subject:
            config["filter_subject"] = filter_subject
        self.consumers[(stream, name)] = config

    async def capture(self, name: str, subject: str, last_seq: int = 0) -> list[Msg]:
        """Acknowledge messages published on a subject as if a stream stored them.

        Returns the list of received messages.
        """
        received: list[Msg] = []
        seq = last_seq

        async def store(msg: Msg) -> None:
            nonlocal seq
            received.append(msg)
            expected = msg.headers().get("Nats-Expected-Last-Sequence")
            if expected is not None and int(expected) != seq:
                response = error(400, f"wrong last sequence: {seq}")
            else:
                seq += 1
                response = {"stream": name, "seq": seq}
            await self.connection.publish(msg.reply(), json.dumps(response).encode())

        await self.connection.subscribe(subject, store)
        return received

    async def _handle(self, msg: Msg) -> None:
        suffix = msg.subject()[len(self.prefix) :]
        if suffix.startswith("CONSUMER.MSG.NEXT."):
            self.pull_requests.append((msg.subject(), msg.data(), msg.reply()))
            return
        self.requests.append((msg.subject(), msg.data()))
        if suffix in self.responses:
            response = self.responses[suffix]
        else:
            response = json.dumps(self._respond(suffix, msg.data())).encode()
        if msg.reply():
            await self.connection.publish(msg.reply(), response)

    def _respond(self, suffix: str, data: bytes) -> dict[str, Any]:
        tokens = suffix.split(".")
        if suffix == "INFO":
            return {
                "memory": 0,
                "storage": 0,
                "streams": len(self.streams),
                "consumers": len(self.consumers),
                "limits": {"max_memory": -1, "max_storage": -1},
            }
        if suffix == "STREAM.NAMES":
            subject = json.loads(data)["subject"]
            names = [
                name
                for name, config in self.streams.items()
                if any(subject_matches(pattern, subject) for pattern in config["subjects"])
            ]
            return {"total": len(names), "streams": names or None}
        if tokens[:2] == ["STREAM", "CREATE"]:
            config = json.loads(data)
            self.streams[tokens[2]] = config
            return self._stream_info(tokens[2])
        if tokens[:2] == ["STREAM", "INFO"]:
            if tokens[2] not in self.streams:
                return error(404, "stream not found")
            return self._stream_info(tokens[2])
        if tokens[:2] == ["CONSUMER", "CREATE"]:
            self._ephemeral += 1
            return self._create_consumer(tokens[2], f"EPH{self._ephemeral}", data)
        if tokens[:3] == ["CONSUMER", "DURABLE", "CREATE"]:
            return self._create_consumer(tokens[3], tokens[4], data)
        if tokens[:2] == ["CONSUMER", "INFO"]:
            key = (tokens[2], tokens[3])
            if key not in self.consumers:
                return error(404, "consumer not found")
            return self._consumer_info(*key)
        return error(400, "unknown api subject")

    def _create_consumer(self, stream: str, name: str, data: bytes) -> dict[str, Any]:
        if stream not in self.streams:
            return error(404, "stream not found")
        self.consumers[(stream, name)] = json.loads(data)["config"]
        return self._consumer_info(stream, name)

    def _consumer_info(self, stream: str, name: str) -> dict[str, Any]:
        return {
            "stream_name": stream,
            "name": name,
            "created": "2021-01-01T00:00:00.000000001Z",
            "config": self.consumers[(stream, name)],
            "delivered": {"consumer_seq": 0, "stream_seq": 0},
            "ack_floor": {"consumer_seq": 0, "stream_seq": 0},
            "num_ack_pending": 0,
            "num_redelivered": 0,
            "num_waiting": 0,
            "num_pending": 0,
        }

    def _stream_info(self, name: str) -> dict[str, Any]:
        return {
            "config": self.streams[name],
            "created": "2021-01-01T00:00:00Z",
            "state": {"messages": 0, "bytes": 0, "first_seq": 0, "last_seq": 0},
        }


def error(code: int, description: str) -> dict[str, Any]:
    return {"error": {"code": code, "description": description}}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def connection():
    async with MemoryConnection() as conn:
        yield conn


@pytest.fixture
def make_server(connection: MemoryConnection):
    async def factory(prefix: str = API_PREFIX) -> FakeJetStreamServer:
        server = FakeJetStreamServer(connection, prefix)
        await server.start()
        return server

    return factory


@pytest.fixture
async def server(make_server) -> FakeJetStreamServer:
    return await make_server()


@pytest.fixture
async def js(connection: MemoryConnection, server: FakeJetStreamServer) -> JetStream:
    context = await jetstream(connection)
    # Only keep requests sent by the test itself
    server.requests.clear()
    return context
