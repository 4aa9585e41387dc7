from .api import AccountInfo, AccountLimits, APIError, PubAck
from .consumer import (
    AckPolicy,
    ConsumerConfig,
    ConsumerInfo,
    DeliverPolicy,
    ReplayPolicy,
    SequencePair,
)
from .metadata import Metadata, Sequence
from .stream import (
    DiscardPolicy,
    RetentionPolicy,
    StorageType,
    StreamConfig,
    StreamInfo,
    StreamState,
)

__all__ = [
    "AccountInfo",
    "AccountLimits",
    "AckPolicy",
    "APIError",
    "ConsumerConfig",
    "ConsumerInfo",
    "DeliverPolicy",
    "DiscardPolicy",
    "Metadata",
    "PubAck",
    "ReplayPolicy",
    "RetentionPolicy",
    "Sequence",
    "SequencePair",
    "StorageType",
    "StreamConfig",
    "StreamInfo",
    "StreamState",
]
