from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum


class RetentionPolicy(str, Enum):
    LIMITS = "limits"
    INTEREST = "interest"
    WORK_QUEUE = "workqueue"


class StorageType(str, Enum):
    FILE = "file"
    MEMORY = "memory"


class DiscardPolicy(str, Enum):
    OLD = "old"
    NEW = "new"


@dataclass(frozen=True)
class StreamConfig:
    """Stream configuration.

    Args:
        `name`: the stream name. Required.
        `subjects`: subjects captured by the stream.
        `retention`: retention policy.
        `max_consumers`: maximum number of consumers (-1 for unlimited).
        `max_msgs`: maximum number of messages (-1 for unlimited).
        `max_bytes`: maximum size in bytes (-1 for unlimited).
        `max_age`: maximum age of messages in seconds (0 for unlimited).
        `max_msg_size`: maximum size of a single message (-1 for unlimited).
        `storage`: storage backend.
        `discard`: discard policy when limits are reached.
        `num_replicas`: number of replicas.
        `no_ack`: disable publish acknowledgments.
        `duplicate_window`: deduplication window in seconds.
    """

    name: str
    subjects: list[str] = field(default_factory=list)
    retention: RetentionPolicy = RetentionPolicy.LIMITS
    max_consumers: int = -1
    max_msgs: int = -1
    max_bytes: int = -1
    max_age: float = 0
    max_msg_size: int = -1
    storage: StorageType = StorageType.FILE
    discard: DiscardPolicy = DiscardPolicy.OLD
    num_replicas: int = 1
    no_ack: bool = False
    duplicate_window: float | None = None


class StreamState:
    __slots__ = [
        "messages",
        "bytes",
        "first_seq",
        "first_ts",
        "last_seq",
        "last_ts",
        "consumer_count",
    ]

    def __init__(
        self,
        messages: int,
        bytes: int,
        first_seq: int,
        first_ts: datetime.datetime | None,
        last_seq: int,
        last_ts: datetime.datetime | None,
        consumer_count: int,
    ) -> None:
        self.messages = messages
        self.bytes = bytes
        self.first_seq = first_seq
        self.first_ts = first_ts
        self.last_seq = last_seq
        self.last_ts = last_ts
        self.consumer_count = consumer_count


class StreamInfo:
    __slots__ = ["config", "created", "state"]

    def __init__(
        self,
        config: StreamConfig,
        created: datetime.datetime | None,
        state: StreamState,
    ) -> None:
        self.config = config
        self.created = created
        self.state = state

    def __repr__(self) -> str:
        return f"<StreamInfo name={self.config.name} messages={self.state.messages}>"
