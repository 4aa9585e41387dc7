from __future__ import annotations

from ..constant import (
    NATS_EXPECTED_LAST_MSG_ID_HDR,
    NATS_EXPECTED_LAST_SEQ_HDR,
    NATS_EXPECTED_STREAM_HDR,
    NATS_MSG_ID_HDR,
)


def encode_publish_headers(
    headers: dict[str, str] | None = None,
    msg_id: str | None = None,
    expected_stream: str | None = None,
    expected_last_seq: int | None = None,
    expected_last_msg_id: str | None = None,
) -> dict[str, str] | None:
    """Merge deduplication and expectation headers into user headers.

    Returns None when no header must be sent at all.
    """
    hdr: dict[str, str] = {}
    if headers:
        for k, v in headers.items():
            key = k.strip()
            if not key:
                # Skip empty keys
                continue
            hdr[key] = v.strip()
    if msg_id:
        hdr[NATS_MSG_ID_HDR] = msg_id
    if expected_last_msg_id:
        hdr[NATS_EXPECTED_LAST_MSG_ID_HDR] = expected_last_msg_id
    if expected_stream:
        hdr[NATS_EXPECTED_STREAM_HDR] = expected_stream
    if expected_last_seq:
        hdr[NATS_EXPECTED_LAST_SEQ_HDR] = str(expected_last_seq)
    return hdr or None
