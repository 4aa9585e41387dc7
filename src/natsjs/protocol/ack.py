from __future__ import annotations

from enum import Enum

from .constant import (
    JS_ACK_OP_ACK,
    JS_ACK_OP_NAK,
    JS_ACK_OP_NEXT,
    JS_ACK_OP_NEXT_ONE,
    JS_ACK_OP_PROGRESS,
    JS_ACK_OP_TERM,
)


class AckKind(bytes, Enum):
    """Acknowledgment signals understood by JetStream consumers."""

    ACK = JS_ACK_OP_ACK
    NAK = JS_ACK_OP_NAK
    PROGRESS = JS_ACK_OP_PROGRESS
    TERM = JS_ACK_OP_TERM


class AckReply:
    """What to publish on the reply subject of a message to acknowledge it.

    Args:
        payload: the bytes to publish.
        request_next: when True, the subject of the subscription must be
            used as reply subject, so that the next message(s) are delivered
            to the subscription.
    """

    __slots__ = ["payload", "request_next"]

    def __init__(self, payload: bytes, request_next: bool = False) -> None:
        self.payload = payload
        self.request_next = request_next

    def __repr__(self) -> str:
        return f"AckReply(payload={self.payload!r}, request_next={self.request_next})"


def encode_ack(kind: AckKind, pull_mode: bool) -> AckReply:
    """Encode an acknowledgment signal.

    Push consumers receive the signal as is. Pull consumers receive a
    request for the next message instead of an ACK, so that the pull
    stays primed. A NAK or a TERM also asks for one more message, since
    the failed message is not redelivered in the current batch.
    """
    if not pull_mode:
        return AckReply(kind.value)
    if kind == AckKind.ACK:
        return AckReply(JS_ACK_OP_NEXT, request_next=True)
    if kind in (AckKind.NAK, AckKind.TERM):
        return AckReply(JS_ACK_OP_NEXT_ONE, request_next=True)
    return AckReply(kind.value)
