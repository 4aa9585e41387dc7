from __future__ import annotations

import datetime


class Sequence:
    __slots__ = ["stream", "consumer"]

    def __init__(self, stream: int, consumer: int) -> None:
        self.stream = stream
        self.consumer = consumer

    def __repr__(self) -> str:
        return f"Sequence(stream={self.stream}, consumer={self.consumer})"


class Metadata:
    """Delivery metadata found in the reply subject of a JetStream message.

    Integer fields hold -1 when the reply subject token could not be
    parsed. The timestamp is None in that case.
    """

    __slots__ = [
        "stream",
        "consumer",
        "sequence",
        "num_pending",
        "num_delivered",
        "timestamp",
    ]

    def __init__(
        self,
        stream: str,
        consumer: str,
        stream_sequence: int,
        consumer_sequence: int,
        num_pending: int,
        num_delivered: int,
        timestamp: datetime.datetime | None,
    ) -> None:
        self.stream = stream
        self.consumer = consumer
        self.sequence = Sequence(stream_sequence, consumer_sequence)
        self.num_pending = num_pending
        self.num_delivered = num_delivered
        self.timestamp = timestamp

    def __repr__(self) -> str:
        return (
            f"Metadata(stream={self.stream}, consumer={self.consumer}, "
            f"sequence={self.sequence}, delivered={self.num_delivered}, "
            f"pending={self.num_pending})"
        )
