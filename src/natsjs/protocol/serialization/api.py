from __future__ import annotations

import datetime
import json
import re
from typing import Any

from ..errors import InvalidResponseError
from ..payload import (
    AccountInfo,
    AccountLimits,
    AckPolicy,
    APIError,
    ConsumerConfig,
    ConsumerInfo,
    DeliverPolicy,
    DiscardPolicy,
    PubAck,
    ReplayPolicy,
    RetentionPolicy,
    SequencePair,
    StorageType,
    StreamConfig,
    StreamInfo,
    StreamState,
)

TIME_RE = re.compile(
    r"\A(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})\Z"
)
# Go zero time, sent by the server for unset timestamps
ZERO_TIME_PREFIX = "0001-01-01T00:00:00"
NANOS_PER_SECOND = 1_000_000_000


#############################
# Primitives                #
#############################


def encode_duration(seconds: float) -> int:
    return int(round(seconds * NANOS_PER_SECOND))


def parse_duration(nanos: int | None) -> float | None:
    if not nanos:
        return None
    return nanos / NANOS_PER_SECOND


def encode_time(value: datetime.datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    value = value.astimezone(datetime.timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_time(value: str | None) -> datetime.datetime | None:
    """Parse an RFC3339 timestamp with up to nanosecond precision."""
    if not value or value.startswith(ZERO_TIME_PREFIX):
        return None
    match = TIME_RE.match(value)
    if match is None:
        raise InvalidResponseError(f"invalid timestamp: {value}")
    base, fraction, tz = match.groups()
    micros = (fraction or "")[:6].ljust(6, "0")
    if tz == "Z":
        tz = "+00:00"
    return datetime.datetime.fromisoformat(f"{base}.{micros}{tz}")


def encode_request(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode()


def decode_response(data: bytes) -> dict[str, Any]:
    """Decode a JSON response body sent by the JetStream API."""
    try:
        raw = json.loads(data.decode() if data else "")
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidResponseError(f"invalid JSON response: {exc}") from exc
    if not isinstance(raw, dict):
        raise InvalidResponseError("JSON response is not an object")
    return raw


def parse_api_error(raw: dict[str, Any]) -> APIError | None:
    """Return the error found in a decoded response, if any."""
    err = raw.get("error")
    if not err:
        return None
    if not isinstance(err, dict):
        raise InvalidResponseError("error field is not an object")
    return APIError(code=err.get("code", 0), description=err.get("description", ""))


#############################
# Consumers                 #
#############################


def encode_consumer_config(config: ConsumerConfig) -> dict[str, Any]:
    # Optional fields are omitted when not set, policies are always sent
    cfg: dict[str, Any] = {}
    if config.durable_name:
        cfg["durable_name"] = config.durable_name
    if config.deliver_subject:
        cfg["deliver_subject"] = config.deliver_subject
    cfg["deliver_policy"] = config.deliver_policy.value
    if config.opt_start_seq:
        cfg["opt_start_seq"] = config.opt_start_seq
    if config.opt_start_time is not None:
        cfg["opt_start_time"] = encode_time(config.opt_start_time)
    cfg["ack_policy"] = (config.ack_policy or AckPolicy.EXPLICIT).value
    if config.ack_wait:
        cfg["ack_wait"] = encode_duration(config.ack_wait)
    if config.max_deliver:
        cfg["max_deliver"] = config.max_deliver
    if config.filter_subject:
        cfg["filter_subject"] = config.filter_subject
    cfg["replay_policy"] = config.replay_policy.value
    if config.rate_limit_bps:
        cfg["rate_limit_bps"] = config.rate_limit_bps
    if config.sample_freq:
        cfg["sample_freq"] = config.sample_freq
    if config.max_waiting:
        cfg["max_waiting"] = config.max_waiting
    if config.max_ack_pending:
        cfg["max_ack_pending"] = config.max_ack_pending
    return cfg


def encode_consumer_create_request(stream: str, config: ConsumerConfig) -> bytes:
    return encode_request(
        {"stream_name": stream, "config": encode_consumer_config(config)}
    )


def parse_consumer_config(raw: dict[str, Any]) -> ConsumerConfig:
    return ConsumerConfig(
        durable_name=raw.get("durable_name") or None,
        deliver_subject=raw.get("deliver_subject") or None,
        deliver_policy=DeliverPolicy(raw.get("deliver_policy", "all")),
        opt_start_seq=raw.get("opt_start_seq") or None,
        opt_start_time=parse_time(raw.get("opt_start_time")),
        ack_policy=AckPolicy(raw.get("ack_policy", "explicit")),
        ack_wait=parse_duration(raw.get("ack_wait")),
        max_deliver=raw.get("max_deliver") or None,
        filter_subject=raw.get("filter_subject") or None,
        replay_policy=ReplayPolicy(raw.get("replay_policy", "instant")),
        rate_limit_bps=raw.get("rate_limit_bps") or None,
        sample_freq=raw.get("sample_freq") or None,
        max_waiting=raw.get("max_waiting") or None,
        max_ack_pending=raw.get("max_ack_pending") or None,
    )


def parse_sequence_pair(raw: dict[str, Any] | None) -> SequencePair:
    raw = raw or {}
    return SequencePair(
        consumer_seq=raw.get("consumer_seq", 0),
        stream_seq=raw.get("stream_seq", 0),
    )


def parse_consumer_info(raw: dict[str, Any]) -> ConsumerInfo:
    try:
        return ConsumerInfo(
            stream_name=raw["stream_name"],
            name=raw["name"],
            created=parse_time(raw.get("created")),
            config=parse_consumer_config(raw.get("config") or {}),
            delivered=parse_sequence_pair(raw.get("delivered")),
            ack_floor=parse_sequence_pair(raw.get("ack_floor")),
            num_ack_pending=raw.get("num_ack_pending", 0),
            num_redelivered=raw.get("num_redelivered", 0),
            num_waiting=raw.get("num_waiting", 0),
            num_pending=raw.get("num_pending", 0),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidResponseError(f"invalid consumer info: {exc}") from exc


#############################
# Streams                   #
#############################


def encode_stream_lookup_request(subject: str) -> bytes:
    return encode_request({"subject": subject})


def parse_stream_names(raw: dict[str, Any]) -> list[str]:
    streams = raw.get("streams") or []
    if not isinstance(streams, list):
        raise InvalidResponseError("invalid stream names")
    return streams


def encode_stream_config(config: StreamConfig) -> dict[str, Any]:
    cfg: dict[str, Any] = {
        "name": config.name,
        "subjects": list(config.subjects),
        "retention": config.retention.value,
        "max_consumers": config.max_consumers,
        "max_msgs": config.max_msgs,
        "max_bytes": config.max_bytes,
        "max_age": encode_duration(config.max_age),
        "max_msg_size": config.max_msg_size,
        "storage": config.storage.value,
        "discard": config.discard.value,
        "num_replicas": config.num_replicas,
    }
    if config.no_ack:
        cfg["no_ack"] = True
    if config.duplicate_window:
        cfg["duplicate_window"] = encode_duration(config.duplicate_window)
    return cfg


def encode_stream_create_request(config: StreamConfig) -> bytes:
    return encode_request(encode_stream_config(config))


def parse_stream_config(raw: dict[str, Any]) -> StreamConfig:
    return StreamConfig(
        name=raw["name"],
        subjects=raw.get("subjects") or [],
        retention=RetentionPolicy(raw.get("retention", "limits")),
        max_consumers=raw.get("max_consumers", -1),
        max_msgs=raw.get("max_msgs", -1),
        max_bytes=raw.get("max_bytes", -1),
        max_age=parse_duration(raw.get("max_age")) or 0,
        max_msg_size=raw.get("max_msg_size", -1),
        storage=StorageType(raw.get("storage", "file")),
        discard=DiscardPolicy(raw.get("discard", "old")),
        num_replicas=raw.get("num_replicas", 1),
        no_ack=raw.get("no_ack", False),
        duplicate_window=parse_duration(raw.get("duplicate_window")),
    )


def parse_stream_state(raw: dict[str, Any] | None) -> StreamState:
    raw = raw or {}
    return StreamState(
        messages=raw.get("messages", 0),
        bytes=raw.get("bytes", 0),
        first_seq=raw.get("first_seq", 0),
        first_ts=parse_time(raw.get("first_ts")),
        last_seq=raw.get("last_seq", 0),
        last_ts=parse_time(raw.get("last_ts")),
        consumer_count=raw.get("consumer_count", 0),
    )


def parse_stream_info(raw: dict[str, Any]) -> StreamInfo:
    try:
        return StreamInfo(
            config=parse_stream_config(raw["config"]),
            created=parse_time(raw.get("created")),
            state=parse_stream_state(raw.get("state")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidResponseError(f"invalid stream info: {exc}") from exc


#############################
# Account                   #
#############################


def parse_account_info(raw: dict[str, Any]) -> AccountInfo:
    limits = raw.get("limits") or {}
    return AccountInfo(
        memory=raw.get("memory", 0),
        storage=raw.get("storage", 0),
        streams=raw.get("streams", 0),
        consumers=raw.get("consumers", 0),
        limits=AccountLimits(
            max_memory=limits.get("max_memory", -1),
            max_storage=limits.get("max_storage", -1),
            max_streams=limits.get("max_streams", -1),
            max_consumers=limits.get("max_consumers", -1),
        ),
    )


#############################
# Publish                   #
#############################


def parse_pub_ack(raw: dict[str, Any]) -> PubAck | None:
    """Parse a publish acknowledgment.

    Returns None when the response does not name a stream, in which case
    the publish cannot be considered as confirmed.
    """
    stream = raw.get("stream")
    if not stream or not isinstance(stream, str):
        return None
    seq = raw.get("seq", 0)
    if not isinstance(seq, int):
        return None
    return PubAck(stream=stream, seq=seq, duplicate=bool(raw.get("duplicate")))


def encode_next_request(batch: int) -> bytes:
    return encode_request({"batch": batch})
