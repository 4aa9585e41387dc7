from .ack import AckKind, AckReply, encode_ack
from .binder import (
    BindMode,
    BindPlan,
    finalize_consumer_config,
    needs_consumer_lookup,
    plan_attach,
    plan_create,
    plan_direct,
    select_bind_mode,
)
from .binding import ConsumerBinding
from .errors import BindingStateError, InvalidResponseError, ProtocolError
from .options import JetStreamOptions, PublishOptions, SubscribeOptions
from .payload import (
    AccountInfo,
    AckPolicy,
    APIError,
    ConsumerConfig,
    ConsumerInfo,
    DeliverPolicy,
    Metadata,
    PubAck,
    ReplayPolicy,
    Sequence,
    SequencePair,
    StreamConfig,
    StreamInfo,
)
from .serialization import parse_metadata, parse_num
from .subject import ApiSubjects

__all__ = [
    "AccountInfo",
    "AckKind",
    "AckPolicy",
    "AckReply",
    "APIError",
    "ApiSubjects",
    "BindingStateError",
    "BindMode",
    "BindPlan",
    "ConsumerBinding",
    "ConsumerConfig",
    "ConsumerInfo",
    "DeliverPolicy",
    "InvalidResponseError",
    "JetStreamOptions",
    "Metadata",
    "ProtocolError",
    "PubAck",
    "PublishOptions",
    "ReplayPolicy",
    "Sequence",
    "SequencePair",
    "StreamConfig",
    "StreamInfo",
    "SubscribeOptions",
    "encode_ack",
    "finalize_consumer_config",
    "needs_consumer_lookup",
    "parse_metadata",
    "parse_num",
    "plan_attach",
    "plan_create",
    "plan_direct",
    "select_bind_mode",
]
