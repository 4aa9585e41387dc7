from .protocol import (
    AckPolicy,
    ConsumerConfig,
    DeliverPolicy,
    JetStreamOptions,
    PublishOptions,
    ReplayPolicy,
    StreamConfig,
    SubscribeOptions,
)

__all__ = [
    "AckPolicy",
    "ConsumerConfig",
    "DeliverPolicy",
    "JetStreamOptions",
    "PublishOptions",
    "ReplayPolicy",
    "StreamConfig",
    "SubscribeOptions",
]
