from __future__ import annotations

import datetime

from ..constant import (
    JS_ACK_IDX_CON_SEQ,
    JS_ACK_IDX_CONSUMER,
    JS_ACK_IDX_NUM_DELIVERED,
    JS_ACK_IDX_NUM_PENDING,
    JS_ACK_IDX_STREAM,
    JS_ACK_IDX_STREAM_SEQ,
    JS_ACK_IDX_TIME,
    JS_ACK_PREFIX_0,
    JS_ACK_PREFIX_1,
    JS_ACK_TOKEN_COUNT,
    JS_ACK_UNPARSEABLE,
    SUBJECT_SEPARATOR,
)
from ..payload import Metadata


def parse_num(token: str) -> int:
    """Parse a positive number found in an ack reply subject.

    Returns -1 when the token is empty or contains anything else than
    ASCII digits. Callers must not confuse -1 with a valid value.
    """
    if not token:
        return JS_ACK_UNPARSEABLE
    n = 0
    for char in token:
        if char < "0" or char > "9":
            return JS_ACK_UNPARSEABLE
        n = n * 10 + (ord(char) - 48)
    return n


def extract_metadata_fields(reply: str) -> list[str] | None:
    tokens = reply.split(SUBJECT_SEPARATOR)
    if (
        len(tokens) == JS_ACK_TOKEN_COUNT
        and tokens[0] == JS_ACK_PREFIX_0
        and tokens[1] == JS_ACK_PREFIX_1
    ):
        return tokens
    return None


def parse_metadata(reply: str) -> Metadata | None:
    """Construct the metadata from the reply string.

    Returns None when the reply subject is not a JetStream ack subject.
    """
    tokens = extract_metadata_fields(reply)
    if tokens is None:
        return None
    nanos = parse_num(tokens[JS_ACK_IDX_TIME])
    return Metadata(
        stream=tokens[JS_ACK_IDX_STREAM],
        consumer=tokens[JS_ACK_IDX_CONSUMER],
        num_delivered=parse_num(tokens[JS_ACK_IDX_NUM_DELIVERED]),
        stream_sequence=parse_num(tokens[JS_ACK_IDX_STREAM_SEQ]),
        consumer_sequence=parse_num(tokens[JS_ACK_IDX_CON_SEQ]),
        timestamp=parse_nanos(nanos),
        num_pending=parse_num(tokens[JS_ACK_IDX_NUM_PENDING]),
    )


def parse_nanos(nanos: int) -> datetime.datetime | None:
    if nanos == JS_ACK_UNPARSEABLE:
        return None
    seconds, remainder = divmod(nanos, 1_000_000_000)
    return datetime.datetime.fromtimestamp(
        seconds, tz=datetime.timezone.utc
    ) + datetime.timedelta(microseconds=remainder // 1000)
