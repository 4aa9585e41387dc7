from __future__ import annotations

import abc
from typing import Awaitable, Callable

from ..protocol.constant import DEFAULT_SUB_PENDING_MSGS_LIMIT
from .msg import Msg
from .subscription import Subscription

MsgCallback = Callable[[Msg], Awaitable[None]]


class Connection(metaclass=abc.ABCMeta):
    """Messaging connection used by the JetStream context.

    The JetStream layer only relies on these operations. Delivering
    messages to subscriptions is the job of the connection.
    """

    @abc.abstractmethod
    async def publish(
        self,
        subject: str,
        payload: bytes = b"",
        reply: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Publish a message."""
        raise NotImplementedError

    @abc.abstractmethod
    async def request(
        self,
        subject: str,
        payload: bytes = b"",
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Msg:
        """Send a request and wait for the first response.

        Raises:
            NoRespondersError: when no subscription exists for the subject.
            TimeoutError: when no response is received before the timeout.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def subscribe(
        self,
        subject: str,
        cb: MsgCallback | None = None,
        *,
        queue: str | None = None,
        pending_msgs_limit: int = DEFAULT_SUB_PENDING_MSGS_LIMIT,
    ) -> Subscription:
        """Subscribe to a subject.

        Messages are given to the callback when there is one, else they
        can be consumed from the returned subscription.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def new_inbox(self) -> str:
        """Return a new unique subject."""
        raise NotImplementedError
