from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum


class DeliverPolicy(str, Enum):
    """Where a consumer starts delivering messages in a stream."""

    ALL = "all"
    LAST = "last"
    NEW = "new"
    BY_START_SEQUENCE = "by_start_sequence"
    BY_START_TIME = "by_start_time"


class AckPolicy(str, Enum):
    """How messages delivered by a consumer must be acknowledged."""

    NONE = "none"
    ALL = "all"
    EXPLICIT = "explicit"


class ReplayPolicy(str, Enum):
    """How messages are replayed to a consumer."""

    INSTANT = "instant"
    ORIGINAL = "original"


@dataclass(frozen=True)
class ConsumerConfig:
    """Consumer configuration.

    Args:
        `durable_name`: name of a durable consumer. Ephemeral when None.
        `deliver_subject`: subject messages are pushed to. Pull consumers
            do not have a deliver subject.
        `deliver_policy`: where to start delivering messages.
        `opt_start_seq`: first stream sequence to deliver when using
            `DeliverPolicy.BY_START_SEQUENCE`.
        `opt_start_time`: first message time to deliver when using
            `DeliverPolicy.BY_START_TIME`.
        `ack_policy`: acknowledgment policy. None means not set, in which
            case subscriptions default to explicit acknowledgment.
        `ack_wait`: seconds the server waits for an ack before redelivering.
        `max_deliver`: maximum number of delivery attempts.
        `filter_subject`: only deliver messages matching this subject.
        `replay_policy`: replay speed of messages.
        `rate_limit_bps`: delivery rate limit in bits per second.
        `sample_freq`: percentage of acks to sample for observability.
        `max_waiting`: maximum number of outstanding pull requests.
        `max_ack_pending`: maximum number of messages in flight without
            acknowledgment.
    """

    durable_name: str | None = None
    deliver_subject: str | None = None
    deliver_policy: DeliverPolicy = DeliverPolicy.ALL
    opt_start_seq: int | None = None
    opt_start_time: datetime.datetime | None = None
    ack_policy: AckPolicy | None = None
    ack_wait: float | None = None
    max_deliver: int | None = None
    filter_subject: str | None = None
    replay_policy: ReplayPolicy = ReplayPolicy.INSTANT
    rate_limit_bps: int | None = None
    sample_freq: str | None = None
    max_waiting: int | None = None
    max_ack_pending: int | None = None


class SequencePair:
    __slots__ = ["consumer_seq", "stream_seq"]

    def __init__(self, consumer_seq: int, stream_seq: int) -> None:
        self.consumer_seq = consumer_seq
        self.stream_seq = stream_seq

    def __repr__(self) -> str:
        return (
            f"SequencePair(consumer_seq={self.consumer_seq}, "
            f"stream_seq={self.stream_seq})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SequencePair):
            return NotImplemented
        return (
            self.consumer_seq == other.consumer_seq
            and self.stream_seq == other.stream_seq
        )


class ConsumerInfo:
    """Consumer state reported by the server.

    This is a snapshot taken when the info was requested.
    """

    __slots__ = [
        "stream_name",
        "name",
        "created",
        "config",
        "delivered",
        "ack_floor",
        "num_ack_pending",
        "num_redelivered",
        "num_waiting",
        "num_pending",
    ]

    def __init__(
        self,
        stream_name: str,
        name: str,
        created: datetime.datetime | None,
        config: ConsumerConfig,
        delivered: SequencePair,
        ack_floor: SequencePair,
        num_ack_pending: int,
        num_redelivered: int,
        num_waiting: int,
        num_pending: int,
    ) -> None:
        self.stream_name = stream_name
        self.name = name
        self.created = created
        self.config = config
        self.delivered = delivered
        self.ack_floor = ack_floor
        self.num_ack_pending = num_ack_pending
        self.num_redelivered = num_redelivered
        self.num_waiting = num_waiting
        self.num_pending = num_pending

    def __repr__(self) -> str:
        return f"<ConsumerInfo stream={self.stream_name} name={self.name}>"
