from __future__ import annotations

import datetime
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from ..errors import (
    ConfigurationError,
    ContextAndTimeoutError,
    InvalidBatchSizeError,
)
from .constant import JS_DEFAULT_API_PREFIX, JS_DEFAULT_REQUEST_WAIT
from .payload import AckPolicy, ConsumerConfig, DeliverPolicy, ReplayPolicy
from .subject import ApiSubjects, normalize_prefix

if TYPE_CHECKING:
    from anyio import Event


@dataclass
class JetStreamOptions:
    """JetStream context options.

    Args:
        `api_prefix`: prefix of the JetStream API subjects. Use a custom
            prefix to access JetStream imported from another account.
            The prefix always ends with a "." unless it is empty.
        `wait`: seconds to wait for API responses.
        `direct`: only allow direct access to existing consumers. No
            management request is ever sent in direct mode.
    """

    api_prefix: str = JS_DEFAULT_API_PREFIX
    wait: float = JS_DEFAULT_REQUEST_WAIT
    direct: bool = False

    def __post_init__(self) -> None:
        self.api_prefix = normalize_prefix(self.api_prefix)
        if self.wait <= 0:
            raise ValueError("wait must be a positive number of seconds")

    def new_api_subjects(self) -> ApiSubjects:
        return ApiSubjects(self.api_prefix)


@dataclass(frozen=True)
class SubscribeOptions:
    """Options used to bind a subscription to a consumer.

    Args:
        `stream`: name of the stream of an existing consumer (attach).
        `consumer`: name of an existing consumer (attach).
        `pull`: batch size of a pull consumer. None for push consumers.
        `deliver_subject`: deliver subject of an existing push consumer.
            When set, the consumer is expected to exist already.
        `manual_ack`: do not acknowledge messages once the callback returns.
        `pending_msgs_limit`: pending messages limit of the local
            subscription. Also used as max ack pending for new consumers.
        `durable`: durable name of the consumer to create.
        `deliver_policy`, `opt_start_seq`, `opt_start_time`, `ack_policy`,
        `ack_wait`, `max_deliver`, `replay_policy`, `rate_limit_bps`,
        `sample_freq`, `max_waiting`, `max_ack_pending`: see
            `ConsumerConfig`.
    """

    # Attach
    stream: str | None = None
    consumer: str | None = None
    # Delivery
    pull: int | None = None
    deliver_subject: str | None = None
    manual_ack: bool = False
    pending_msgs_limit: int | None = None
    # Consumer creation
    durable: str | None = None
    deliver_policy: DeliverPolicy = DeliverPolicy.ALL
    opt_start_seq: int | None = None
    opt_start_time: datetime.datetime | None = None
    ack_policy: AckPolicy | None = None
    ack_wait: float | None = None
    max_deliver: int | None = None
    replay_policy: ReplayPolicy = ReplayPolicy.INSTANT
    rate_limit_bps: int | None = None
    sample_freq: str | None = None
    max_waiting: int | None = None
    max_ack_pending: int | None = None

    def __post_init__(self) -> None:
        if self.pull is not None and self.pull <= 0:
            raise InvalidBatchSizeError()
        if self.pull and self.deliver_subject:
            raise ConfigurationError("pull consumers do not have a deliver subject")

    def is_pull_mode(self) -> bool:
        return bool(self.pull)

    def should_attach(self) -> bool:
        """Return True when the consumer is expected to exist already."""
        return bool(self.stream and self.consumer) or bool(self.deliver_subject)

    def consumer_config(self) -> ConsumerConfig:
        """Consumer configuration requested by these options."""
        return ConsumerConfig(
            durable_name=self.durable,
            deliver_subject=self.deliver_subject,
            deliver_policy=self.deliver_policy,
            opt_start_seq=self.opt_start_seq,
            opt_start_time=self.opt_start_time,
            ack_policy=self.ack_policy,
            ack_wait=self.ack_wait,
            max_deliver=self.max_deliver,
            replay_policy=self.replay_policy,
            rate_limit_bps=self.rate_limit_bps,
            sample_freq=self.sample_freq,
            max_waiting=self.max_waiting,
            max_ack_pending=self.max_ack_pending,
        )

    # Builders

    def attach(self, stream: str, consumer: str) -> SubscribeOptions:
        return replace(self, stream=stream, consumer=consumer)

    def with_pull(self, batch: int) -> SubscribeOptions:
        if batch <= 0:
            raise InvalidBatchSizeError()
        return replace(self, pull=batch)

    def pull_direct(self, stream: str, consumer: str, batch: int) -> SubscribeOptions:
        return self.attach(stream, consumer).with_pull(batch)

    def push_direct(self, deliver_subject: str) -> SubscribeOptions:
        return replace(self, deliver_subject=deliver_subject)

    def with_durable(self, name: str) -> SubscribeOptions:
        return replace(self, durable=name)

    def with_manual_ack(self) -> SubscribeOptions:
        return replace(self, manual_ack=True)

    def deliver_all(self) -> SubscribeOptions:
        return replace(self, deliver_policy=DeliverPolicy.ALL)

    def deliver_last(self) -> SubscribeOptions:
        return replace(self, deliver_policy=DeliverPolicy.LAST)

    def deliver_new(self) -> SubscribeOptions:
        return replace(self, deliver_policy=DeliverPolicy.NEW)

    def start_sequence(self, seq: int) -> SubscribeOptions:
        return replace(
            self, deliver_policy=DeliverPolicy.BY_START_SEQUENCE, opt_start_seq=seq
        )

    def start_time(self, start: datetime.datetime) -> SubscribeOptions:
        return replace(
            self, deliver_policy=DeliverPolicy.BY_START_TIME, opt_start_time=start
        )


@dataclass(frozen=True)
class PublishOptions:
    """Options used to publish a message to a stream.

    Args:
        `msg_id`: message ID used for de-duplication.
        `expected_stream`: name of the stream expected to store the message.
        `expected_last_seq`: expected last sequence of the stream.
        `expected_last_msg_id`: expected last message ID of the stream.
        `timeout`: seconds to wait for the publish acknowledgment.
        `cancel`: an event which aborts the wait for the acknowledgment
            once set. Can not be used together with `timeout`.
    """

    msg_id: str | None = None
    expected_stream: str | None = None
    expected_last_seq: int | None = None
    expected_last_msg_id: str | None = None
    timeout: float | None = None
    cancel: Event | None = None

    def __post_init__(self) -> None:
        if self.cancel is not None and self.timeout:
            raise ContextAndTimeoutError()
        if self.expected_last_seq is not None and self.expected_last_seq < 0:
            raise ValueError("expected last sequence must not be negative")
