from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.msg import Msg as MsgABC
from ..errors import MsgNotBoundError, NoReplySubjectError, NotJetStreamMsgError
from ..protocol import AckKind, Metadata, encode_ack, parse_metadata

if TYPE_CHECKING:
    from ..protocol import ConsumerBinding
    from .subscription import JetStreamSubscription


class Msg(MsgABC):
    """
    Msg represents a message delivered by a JetStream subscription.
    """

    __slots__ = ["_msg", "_sub"]

    def __init__(self, msg: MsgABC, sub: JetStreamSubscription | None = None) -> None:
        self._msg = msg
        self._sub = sub

    def __repr__(self) -> str:
        return (
            f"Msg(subject={self.subject()}, reply={self.reply()}, "
            f"size={self.size()}, headers={self.headers()})"
        )

    def subject(self) -> str:
        return self._msg.subject()

    def reply(self) -> str:
        return self._msg.reply()

    def data(self) -> bytes:
        return self._msg.data()

    def headers(self) -> dict[str, str]:
        return self._msg.headers()

    def subscription(self) -> JetStreamSubscription | None:
        return self._sub

    def metadata(self) -> Metadata:
        """Decode the delivery metadata from the reply subject.

        Sequences and counters are -1 when a token of the reply subject
        is not a number.
        """
        self._check_reply()
        meta = parse_metadata(self.reply())
        if meta is None:
            raise NotJetStreamMsgError()
        return meta

    async def ack(self) -> None:
        """Acknowledge the message.

        Pull subscriptions request the next message at the same time.
        """
        await self._ack_reply(AckKind.ACK, sync=False)

    async def ack_sync(self) -> None:
        """Acknowledge the message and wait for the server to confirm it."""
        await self._ack_reply(AckKind.ACK, sync=True)

    async def nak(self) -> None:
        """Signal that the message could not be processed."""
        await self._ack_reply(AckKind.NAK, sync=False)

    async def term(self) -> None:
        """Stop the redelivery of the message regardless of max deliver."""
        await self._ack_reply(AckKind.TERM, sync=False)

    async def in_progress(self) -> None:
        """Signal that the message is being processed, which resets the
        redelivery timer of the server."""
        await self._ack_reply(AckKind.PROGRESS, sync=False)

    def _check_reply(self) -> tuple[JetStreamSubscription, ConsumerBinding]:
        if not self.reply():
            raise NoReplySubjectError()
        if self._sub is None:
            raise MsgNotBoundError()
        binding = self._sub._jsi
        if binding is None:
            raise NotJetStreamMsgError()
        return self._sub, binding

    async def _ack_reply(self, kind: AckKind, sync: bool) -> None:
        sub, binding = self._check_reply()
        js = sub._js
        is_pull_mode = binding.is_pull_mode()
        ack = encode_ack(kind, is_pull_mode)
        reply = self.reply()
        conn = js._connection
        if ack.request_next:
            # Next messages are delivered to the subscription
            await conn.publish(reply, ack.payload, reply=sub.subject())
        elif is_pull_mode or not sync:
            await conn.publish(reply, ack.payload)
        if not sync:
            return
        if is_pull_mode:
            await conn.request(reply, b"", timeout=js.options.wait)
        else:
            await conn.request(reply, ack.payload, timeout=js.options.wait)
