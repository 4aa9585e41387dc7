"""In-process messaging connection.

`MemoryConnection` routes messages between subscriptions of the same
process. It implements the `Connection` interface required by the
JetStream context, which makes it possible to run a JetStream client
against an in-process API responder in tests or local development.
"""
from __future__ import annotations

import contextlib
import logging
import random
import uuid
from typing import AsyncIterator

from anyio import (
    TASK_STATUS_IGNORED,
    BrokenResourceError,
    ClosedResourceError,
    EndOfStream,
    Event,
    WouldBlock,
    create_memory_object_stream,
    create_task_group,
    fail_after,
)
from anyio.abc import TaskGroup, TaskStatus
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from ..core.connection import Connection, MsgCallback
from ..core.msg import Msg
from ..core.subscription import Subscription, SubscriptionStatistics
from ..errors import (
    ConnectionClosedError,
    NoRespondersError,
    SubscriptionNotStartedError,
    SubscriptionSlowConsumerError,
)
from ..protocol.constant import (
    DEFAULT_SUB_PENDING_BYTES_LIMIT,
    DEFAULT_SUB_PENDING_MSGS_LIMIT,
    INBOX_PREFIX,
    SUBJECT_SEPARATOR,
)

logger = logging.getLogger("natsjs.aio.memory")


def subject_matches(pattern: str, subject: str) -> bool:
    """Return True when a subject matches a subscription subject.

    `*` matches a single token and `>` matches one or more trailing tokens.
    """
    pattern_tokens = pattern.split(SUBJECT_SEPARATOR)
    subject_tokens = subject.split(SUBJECT_SEPARATOR)
    for idx, token in enumerate(pattern_tokens):
        if token == ">":
            return len(subject_tokens) > idx
        if idx >= len(subject_tokens):
            return False
        if token != "*" and token != subject_tokens[idx]:
            return False
    return len(pattern_tokens) == len(subject_tokens)


class MemoryMsg(Msg):
    """A message routed by a `MemoryConnection`."""

    __slots__ = ["_subject", "_reply", "_data", "_headers", "_sid"]

    def __init__(
        self,
        subject: str,
        reply: str,
        data: bytes,
        headers: dict[str, str] | None,
        sid: int = 0,
    ) -> None:
        self._subject = subject
        self._reply = reply
        self._data = data
        self._headers = headers or {}
        self._sid = sid

    def __repr__(self) -> str:
        return (
            f"MemoryMsg(sid={self._sid}, subject={self._subject}, "
            f"reply={self._reply}, size={len(self._data)}, "
            f"headers={self._headers})"
        )

    def sid(self) -> int:
        return self._sid

    def subject(self) -> str:
        return self._subject

    def reply(self) -> str:
        return self._reply

    def data(self) -> bytes:
        return self._data

    def headers(self) -> dict[str, str]:
        return self._headers

    def copy_for(self, sid: int) -> MemoryMsg:
        return MemoryMsg(self._subject, self._reply, self._data, self._headers, sid)


class MemorySubscriptionRegistry:
    """Hold the subscriptions of a `MemoryConnection`."""

    __slots__ = ["_subs", "_last_sid"]

    def __init__(self) -> None:
        self._subs: dict[int, BaseMemorySubscription] = {}
        self._last_sid = 0

    def next_sid(self) -> int:
        """Get the next available subscription ID.

        Subscription IDs start at 1 and are incremented by 1.
        """
        self._last_sid += 1
        return self._last_sid

    def add(self, sub: BaseMemorySubscription) -> None:
        self._subs[sub.sid()] = sub

    def remove(self, sid: int) -> None:
        self._subs.pop(sid, None)

    def clear(self) -> None:
        self._subs.clear()
        self._last_sid = 0

    def values(self) -> list[BaseMemorySubscription]:
        return list(self._subs.values())

    def match(self, subject: str) -> list[BaseMemorySubscription]:
        """Select the subscriptions which must receive a message.

        A single member of each queue group is selected at random.
        """
        selected: list[BaseMemorySubscription] = []
        groups: dict[str, list[BaseMemorySubscription]] = {}
        for sub in self._subs.values():
            if not subject_matches(sub.subject(), subject):
                continue
            queue = sub.queue()
            if queue:
                groups.setdefault(queue, []).append(sub)
            else:
                selected.append(sub)
        for members in groups.values():
            selected.append(random.choice(members))
        return selected


class BaseMemorySubscription(Subscription):
    def __init__(
        self,
        connection: MemoryConnection,
        id: int,
        subject: str,
        queue: str | None,
        pending_msgs_limit: int,
        pending_bytes_limit: int,
    ) -> None:
        self._connection = connection
        self._id = id
        self._subject = subject
        self._queue = queue
        self._closed: Event | None = None
        self._pending_msgs_limit = pending_msgs_limit
        self._pending_bytes_limit = pending_bytes_limit
        self._pending_queue_rcv: MemoryObjectReceiveStream[MemoryMsg] | None = None
        self._pending_queue_snd: MemoryObjectSendStream[MemoryMsg] | None = None
        self._stats = SubscriptionStatistics()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} sid={self._id} subject={self._subject}>"

    def sid(self) -> int:
        return self._id

    def subject(self) -> str:
        return self._subject

    def queue(self) -> str | None:
        return self._queue or None

    def pending_limits(self) -> tuple[int, int]:
        return self._pending_msgs_limit, self._pending_bytes_limit

    def statistics(self) -> SubscriptionStatistics:
        return self._stats

    def is_closed(self) -> bool:
        return self._closed is not None and self._closed.is_set()

    async def unsubscribe(self) -> None:
        if not self._closed:
            raise SubscriptionNotStartedError()
        self._connection._subscriptions.remove(self._id)
        if self._pending_queue_snd:
            await self._pending_queue_snd.aclose()
        if self._pending_queue_rcv:
            await self._pending_queue_rcv.aclose()
        if not self._closed.is_set():
            self._closed.set()

    def observe(self, msg: MemoryMsg) -> None:
        """Queue a message for the subscription."""
        if self._pending_queue_snd is None:
            raise SubscriptionNotStartedError()
        if self.is_closed():
            return
        if self._stats.pending_bytes + msg.size() > self._pending_bytes_limit:
            raise SubscriptionSlowConsumerError(self)
        try:
            self._pending_queue_snd.send_nowait(msg)
        except WouldBlock:
            raise SubscriptionSlowConsumerError(self)
        except (BrokenResourceError, ClosedResourceError):
            return
        self._stats.observe_message_received(msg)

    def _open_pending_queue(self) -> None:
        self._closed = Event()
        (
            self._pending_queue_snd,
            self._pending_queue_rcv,
        ) = create_memory_object_stream[MemoryMsg](self._pending_msgs_limit)


class MemorySubscriptionIterator(BaseMemorySubscription):
    async def messages(self) -> AsyncIterator[Msg]:
        if self._pending_queue_rcv is None:
            raise SubscriptionNotStartedError()
        try:
            async for msg in self._pending_queue_rcv:
                self._stats.observe_message_processed(msg)
                yield msg
        except ClosedResourceError:
            return

    async def next_message(self, timeout: float | None = None) -> Msg:
        if self._pending_queue_rcv is None:
            raise SubscriptionNotStartedError()
        with fail_after(timeout):
            msg = await self._pending_queue_rcv.receive()
        self._stats.observe_message_processed(msg)
        return msg

    async def __call__(self, task_status: TaskStatus = TASK_STATUS_IGNORED) -> None:
        self._open_pending_queue()
        self._connection._subscriptions.add(self)
        task_status.started()


class MemorySubscriptionWorker(BaseMemorySubscription):
    def __init__(
        self,
        callback: MsgCallback,
        connection: MemoryConnection,
        id: int,
        subject: str,
        queue: str | None,
        pending_msgs_limit: int,
        pending_bytes_limit: int,
    ) -> None:
        super().__init__(
            connection,
            id,
            subject,
            queue,
            pending_msgs_limit,
            pending_bytes_limit,
        )
        self._callback = callback

    def messages(self) -> AsyncIterator[Msg]:
        raise RuntimeError("messages are given to the subscription callback")

    async def next_message(self, timeout: float | None = None) -> Msg:
        raise RuntimeError("messages are given to the subscription callback")

    async def __call__(self, task_status: TaskStatus = TASK_STATUS_IGNORED) -> None:
        """
        Starts the subscription to receive messages.
        """
        async with create_task_group() as tg:
            self._open_pending_queue()
            # Start processing messages
            tg.start_soon(self._loop)
            self._connection._subscriptions.add(self)
            task_status.started()

    async def _loop(self) -> None:
        try:
            await self._wait_for_msgs()
        finally:
            if self._closed and not self._closed.is_set():
                self._closed.set()

    async def _wait_for_msgs(self) -> None:
        if self._pending_queue_rcv is None:
            raise SubscriptionNotStartedError()
        while True:
            try:
                msg = await self._pending_queue_rcv.receive()
            except (EndOfStream, BrokenResourceError, ClosedResourceError):
                return
            self._stats.observe_message_processed(msg)
            try:
                await self._callback(msg)
            except Exception as exc:
                logger.error(
                    "Unhandled exception caught in subscription callback", exc_info=exc
                )


class MemoryConnection(Connection):
    """In-process messaging connection.

    The connection must be opened before use, either with `connect()`
    or as an async context manager.
    """

    def __init__(self, inbox_prefix: str = INBOX_PREFIX) -> None:
        self._inbox_prefix = inbox_prefix
        self._exit_stack = contextlib.AsyncExitStack()
        self._subscriptions = MemorySubscriptionRegistry()
        self._request_reply = _RequestReplyInbox(self)
        self._task_group_or_none: TaskGroup | None = None
        self._closed = False

    def __repr__(self) -> str:
        return f"<natsjs.aio.memory.MemoryConnection subscriptions={len(self._subscriptions.values())}>"

    def is_closed(self) -> bool:
        return self._closed

    def new_inbox(self) -> str:
        return f"{self._inbox_prefix}.{uuid.uuid4().hex}"

    async def connect(self) -> None:
        """Open the connection."""
        await self._exit_stack.__aenter__()
        self._task_group_or_none = await self._exit_stack.enter_async_context(
            create_task_group()
        )
        self._closed = False
        await self._request_reply._init_request_sub()

    async def close(self) -> None:
        """Close all subscriptions and wait for their workers to exit."""
        self._closed = True
        for sub in self._subscriptions.values():
            await sub.unsubscribe()
        self._subscriptions.clear()
        self._task_group_or_none = None
        await self._exit_stack.aclose()

    async def publish(
        self,
        subject: str,
        payload: bytes = b"",
        reply: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if self._closed:
            raise ConnectionClosedError()
        msg = MemoryMsg(subject, reply or "", payload or b"", headers)
        for sub in self._subscriptions.match(subject):
            try:
                sub.observe(msg.copy_for(sub.sid()))
            except SubscriptionSlowConsumerError as exc:
                logger.warning("Dropping message on %s: %s", subject, exc)

    async def request(
        self,
        subject: str,
        payload: bytes = b"",
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Msg:
        if self._closed:
            raise ConnectionClosedError()
        if not self._subscriptions.match(subject):
            raise NoRespondersError(subject)
        with fail_after(timeout):
            return await self._request_reply.request(subject, payload, headers)

    async def subscribe(
        self,
        subject: str,
        cb: MsgCallback | None = None,
        *,
        queue: str | None = None,
        pending_msgs_limit: int = DEFAULT_SUB_PENDING_MSGS_LIMIT,
        pending_bytes_limit: int = DEFAULT_SUB_PENDING_BYTES_LIMIT,
    ) -> BaseMemorySubscription:
        tg = self._ensure_task_group()
        sid = self._subscriptions.next_sid()
        subscription: BaseMemorySubscription
        if cb is None:
            subscription = MemorySubscriptionIterator(
                connection=self,
                id=sid,
                subject=subject,
                queue=queue,
                pending_msgs_limit=pending_msgs_limit,
                pending_bytes_limit=pending_bytes_limit,
            )
        else:
            subscription = MemorySubscriptionWorker(
                callback=cb,
                connection=self,
                id=sid,
                subject=subject,
                queue=queue,
                pending_msgs_limit=pending_msgs_limit,
                pending_bytes_limit=pending_bytes_limit,
            )
        await tg.start(subscription)
        return subscription

    def _ensure_task_group(self) -> TaskGroup:
        if self._closed:
            raise ConnectionClosedError()
        if not self._task_group_or_none:
            raise RuntimeError("Task group not initialized")
        return self._task_group_or_none

    async def __aenter__(self) -> MemoryConnection:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.close()


class _PendingReply:
    def __init__(self) -> None:
        self.event = Event()
        self.msg: Msg | None = None

    async def wait(self) -> Msg:
        await self.event.wait()
        if self.msg is None:
            raise RuntimeError("Message not set")
        return self.msg

    def set(self, msg: Msg) -> None:
        self.msg = msg
        self.event.set()


class _RequestReplyInbox:
    def __init__(self, connection: MemoryConnection) -> None:
        self.connection = connection
        self._resp_map: dict[str, _PendingReply] = {}
        self._resp_sub_prefix = ""

    def _new_subject(self) -> str:
        return self._resp_sub_prefix + uuid.uuid4().hex

    async def _init_request_sub(self) -> None:
        self._resp_map = {}
        self._resp_sub_prefix = self.connection.new_inbox() + SUBJECT_SEPARATOR
        await self.connection.subscribe(
            self._resp_sub_prefix + "*", cb=self._request_sub_callback
        )

    async def _request_sub_callback(self, msg: Msg) -> None:
        token = msg.subject()
        fut = self._resp_map.pop(token, None)
        if fut:
            fut.set(msg)

    async def request(
        self,
        subject: str,
        payload: bytes = b"",
        headers: dict[str, str] | None = None,
    ) -> Msg:
        fut = _PendingReply()
        reply = self._new_subject()
        self._resp_map[reply] = fut
        try:
            await self.connection.publish(subject, payload, reply, headers)
            return await fut.wait()
        finally:
            self._resp_map.pop(reply, None)
