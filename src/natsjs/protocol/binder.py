"""Decisions taken when binding a subscription to a JetStream consumer.

Nothing in this module performs I/O. The functions below decide how a
subscription must be bound, and the asynchronous client executes the
resulting plan.
"""
from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Callable

from ..errors import (
    DirectModeRequiredError,
    PullModeNotAllowedError,
    SubjectMismatchError,
    SubscriptionTypeError,
)
from .options import SubscribeOptions
from .payload import AckPolicy, ConsumerConfig, ConsumerInfo


class BindMode(str, Enum):
    """How a subscription is bound to a consumer."""

    DIRECT = "direct"
    """Bind to an existing consumer without using the management API."""

    ATTACH = "attach"
    """Bind to an existing consumer after looking it up."""

    CREATE = "create"
    """Create a new consumer for the subscription."""


class BindPlan:
    """Resolved binding of a subscription.

    Args:
        mode: how the consumer is bound.
        subject: the subject requested by the user.
        local_subject: the subject of the local subscription.
        deliver: the deliver subject of the consumer, empty for pull consumers.
        stream: the stream name, may be empty when attaching by deliver subject.
        consumer: the consumer name, unknown until created in CREATE mode.
        pull: the batch size of a pull consumer, 0 for push consumers.
        auto_ack: whether messages are acknowledged after the callback returns.
        config: the consumer configuration to create in CREATE mode.
    """

    __slots__ = [
        "mode",
        "subject",
        "local_subject",
        "deliver",
        "stream",
        "consumer",
        "pull",
        "auto_ack",
        "config",
    ]

    def __init__(
        self,
        mode: BindMode,
        subject: str,
        local_subject: str,
        deliver: str,
        stream: str,
        consumer: str,
        pull: int,
        auto_ack: bool,
        config: ConsumerConfig | None = None,
    ) -> None:
        self.mode = mode
        self.subject = subject
        self.local_subject = local_subject
        self.deliver = deliver
        self.stream = stream
        self.consumer = consumer
        self.pull = pull
        self.auto_ack = auto_ack
        self.config = config

    def __repr__(self) -> str:
        return (
            f"<BindPlan mode={self.mode.value} subject={self.subject} "
            f"stream={self.stream} consumer={self.consumer} pull={self.pull}>"
        )

    def should_create(self) -> bool:
        return self.mode == BindMode.CREATE

    def is_pull_mode(self) -> bool:
        return self.pull > 0


def select_bind_mode(
    has_callback: bool,
    options: SubscribeOptions,
    direct: bool,
) -> BindMode:
    """Select how a subscription is bound before any request is sent.

    Raises:
        PullModeNotAllowedError: when a pull subscription has a callback.
        DirectModeRequiredError: when a consumer must be created in direct mode.
    """
    if has_callback and options.is_pull_mode():
        raise PullModeNotAllowedError()
    should_attach = options.should_attach()
    if direct and not should_attach:
        raise DirectModeRequiredError()
    if direct:
        return BindMode.DIRECT
    if should_attach:
        return BindMode.ATTACH
    return BindMode.CREATE


def needs_consumer_lookup(options: SubscribeOptions) -> bool:
    """Return True when attaching requires fetching the consumer info.

    An existing consumer can only be looked up by stream and consumer
    name. Attaching to a deliver subject alone trusts the caller.
    """
    return bool(options.stream and options.consumer)


def _auto_ack(has_callback: bool, options: SubscribeOptions) -> bool:
    return has_callback and not options.manual_ack


def plan_direct(
    subject: str,
    has_callback: bool,
    options: SubscribeOptions,
    new_inbox: Callable[[], str],
) -> BindPlan:
    """Plan a binding built from the options alone.

    Raises:
        SubscriptionTypeError: when neither a batch size nor a deliver
            subject is given.
    """
    deliver = options.deliver_subject or ""
    if not options.is_pull_mode() and not deliver:
        raise SubscriptionTypeError()
    return BindPlan(
        mode=BindMode.DIRECT,
        subject=subject,
        local_subject=deliver or new_inbox(),
        deliver=deliver,
        stream=options.stream or "",
        consumer=options.consumer or "",
        pull=options.pull or 0,
        auto_ack=_auto_ack(has_callback, options),
    )


def plan_attach(
    subject: str,
    has_callback: bool,
    options: SubscribeOptions,
    info: ConsumerInfo | None,
    new_inbox: Callable[[], str],
) -> BindPlan:
    """Plan an attachment to an existing consumer.

    Raises:
        SubjectMismatchError: when the consumer filters another subject.
        SubscriptionTypeError: when pulling from a push consumer, or when
            pushing from a consumer without deliver subject.
    """
    if info is None:
        deliver = options.deliver_subject or ""
    else:
        filter_subject = info.config.filter_subject
        if filter_subject and filter_subject != subject:
            raise SubjectMismatchError(subject, filter_subject)
        deliver = info.config.deliver_subject or ""
    if options.is_pull_mode() == bool(deliver):
        raise SubscriptionTypeError()
    return BindPlan(
        mode=BindMode.ATTACH,
        subject=subject,
        local_subject=deliver or new_inbox(),
        deliver=deliver,
        stream=options.stream or "",
        consumer=options.consumer or "",
        pull=options.pull or 0,
        auto_ack=_auto_ack(has_callback, options),
    )


def plan_create(
    subject: str,
    has_callback: bool,
    options: SubscribeOptions,
    stream: str,
    new_inbox: Callable[[], str],
) -> BindPlan:
    inbox = new_inbox()
    config = options.consumer_config()
    # Always filter, the server clears the filter when it matches the stream
    config = replace(
        config,
        deliver_subject=None if options.is_pull_mode() else inbox,
        filter_subject=subject,
    )
    return BindPlan(
        mode=BindMode.CREATE,
        subject=subject,
        local_subject=inbox,
        deliver=config.deliver_subject or "",
        stream=stream,
        consumer="",
        pull=options.pull or 0,
        auto_ack=_auto_ack(has_callback, options),
        config=config,
    )


def finalize_consumer_config(
    config: ConsumerConfig,
    pending_msgs_limit: int,
) -> ConsumerConfig:
    """Apply defaults which depend on the local subscription.

    Acknowledgment defaults to explicit. Unless acks are disabled, the
    maximum number of messages pending acknowledgment defaults to the
    pending messages limit of the local subscription.
    """
    if config.ack_policy is None:
        config = replace(config, ack_policy=AckPolicy.EXPLICIT)
    if not config.max_ack_pending and config.ack_policy != AckPolicy.NONE:
        config = replace(config, max_ack_pending=pending_msgs_limit)
    return config
