from __future__ import annotations


class APIError:
    """Error found in the `error` field of a JetStream API response."""

    __slots__ = ["code", "description"]

    def __init__(self, code: int, description: str) -> None:
        self.code = code
        self.description = description

    def __repr__(self) -> str:
        return f"<jetstream api error code={self.code} description={self.description}>"


class AccountLimits:
    __slots__ = ["max_memory", "max_storage", "max_streams", "max_consumers"]

    def __init__(
        self,
        max_memory: int,
        max_storage: int,
        max_streams: int,
        max_consumers: int,
    ) -> None:
        self.max_memory = max_memory
        self.max_storage = max_storage
        self.max_streams = max_streams
        self.max_consumers = max_consumers


class AccountInfo:
    __slots__ = ["memory", "storage", "streams", "consumers", "limits"]

    def __init__(
        self,
        memory: int,
        storage: int,
        streams: int,
        consumers: int,
        limits: AccountLimits,
    ) -> None:
        self.memory = memory
        self.storage = storage
        self.streams = streams
        self.consumers = consumers
        self.limits = limits


class PubAck:
    """Acknowledgment sent by a stream for a published message."""

    __slots__ = ["stream", "seq", "duplicate"]

    def __init__(self, stream: str, seq: int, duplicate: bool = False) -> None:
        self.stream = stream
        self.seq = seq
        self.duplicate = duplicate

    def __repr__(self) -> str:
        return (
            f"PubAck(stream={self.stream!r}, seq={self.seq}, "
            f"duplicate={self.duplicate})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PubAck):
            return NotImplemented
        return (
            self.stream == other.stream
            and self.seq == other.seq
            and self.duplicate == other.duplicate
        )
