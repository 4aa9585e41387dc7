"""Messaging connection backed by a `nats-py` client.

Requires the `nats` extra: `pip install natsjs[nats]`.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable

from nats import errors as nats_errors

from ..core.connection import Connection, MsgCallback
from ..core.msg import Msg
from ..core.subscription import Subscription
from ..errors import ConnectionClosedError, NoRespondersError
from ..protocol.constant import DEFAULT_SUB_PENDING_MSGS_LIMIT

if TYPE_CHECKING:
    from nats.aio.client import Client as NatsClient
    from nats.aio.msg import Msg as NatsMsg
    from nats.aio.subscription import Subscription as NatsSubscription

# nats-py always needs a timeout for requests
UNBOUNDED_REQUEST_TIMEOUT = 365 * 24 * 3600.0


class NatsMsgAdapter(Msg):
    __slots__ = ["_msg"]

    def __init__(self, msg: NatsMsg) -> None:
        self._msg = msg

    def __repr__(self) -> str:
        return f"NatsMsgAdapter(subject={self.subject()}, reply={self.reply()})"

    def subject(self) -> str:
        return self._msg.subject

    def reply(self) -> str:
        return self._msg.reply or ""

    def data(self) -> bytes:
        return self._msg.data

    def headers(self) -> dict[str, str]:
        return self._msg.headers or {}


class NatsSubscriptionAdapter(Subscription):
    def __init__(self, sub: NatsSubscription) -> None:
        self._sub = sub

    def sid(self) -> int:
        return self._sub._id

    def subject(self) -> str:
        return self._sub.subject

    def queue(self) -> str | None:
        return self._sub.queue or None

    def pending_limits(self) -> tuple[int, int]:
        return self._sub._pending_msgs_limit, self._sub._pending_bytes_limit

    async def unsubscribe(self) -> None:
        try:
            await self._sub.unsubscribe()
        except nats_errors.BadSubscriptionError:
            # Already unsubscribed
            return

    async def next_message(self, timeout: float | None = None) -> Msg:
        try:
            msg = await self._sub.next_msg(timeout=timeout)
        except nats_errors.TimeoutError as exc:
            raise TimeoutError(str(exc)) from exc
        return NatsMsgAdapter(msg)

    async def messages(self) -> AsyncIterator[Msg]:
        async for msg in self._sub.messages:
            yield NatsMsgAdapter(msg)


class NatsConnection(Connection):
    """Adapt a connected `nats.aio.client.Client` to the `Connection` interface."""

    def __init__(self, client: NatsClient) -> None:
        self._client = client

    def __repr__(self) -> str:
        return f"<natsjs.aio.nats_adapter.NatsConnection client={self._client!r}>"

    def new_inbox(self) -> str:
        return self._client.new_inbox()

    async def publish(
        self,
        subject: str,
        payload: bytes = b"",
        reply: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        try:
            await self._client.publish(
                subject, payload, reply=reply or "", headers=headers
            )
        except nats_errors.ConnectionClosedError as exc:
            raise ConnectionClosedError() from exc

    async def request(
        self,
        subject: str,
        payload: bytes = b"",
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Msg:
        try:
            msg = await self._client.request(
                subject,
                payload,
                timeout=timeout or UNBOUNDED_REQUEST_TIMEOUT,
                headers=headers,
            )
        except nats_errors.NoRespondersError as exc:
            raise NoRespondersError(subject) from exc
        except nats_errors.TimeoutError as exc:
            raise TimeoutError(f"request on '{subject}' timed out") from exc
        except nats_errors.ConnectionClosedError as exc:
            raise ConnectionClosedError() from exc
        return NatsMsgAdapter(msg)

    async def subscribe(
        self,
        subject: str,
        cb: MsgCallback | None = None,
        *,
        queue: str | None = None,
        pending_msgs_limit: int = DEFAULT_SUB_PENDING_MSGS_LIMIT,
    ) -> Subscription:
        handler: Callable[[NatsMsg], Awaitable[None]] | None = None
        if cb is not None:

            async def handle_msg(msg: NatsMsg) -> None:
                await cb(NatsMsgAdapter(msg))

            handler = handle_msg

        sub = await self._client.subscribe(
            subject,
            queue=queue or "",
            cb=handler,
            pending_msgs_limit=pending_msgs_limit,
        )
        return NatsSubscriptionAdapter(sub)
