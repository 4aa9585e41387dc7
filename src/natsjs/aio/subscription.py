from __future__ import annotations

import logging
from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable

from ..errors import (
    InvalidBatchSizeError,
    NatsError,
    SubscriptionNotStartedError,
    SubscriptionTypeError,
)
from ..protocol import BindingStateError, ConsumerBinding
from ..protocol.serialization import encode_next_request
from .msg import Msg

if TYPE_CHECKING:
    from ..core.msg import Msg as CoreMsg
    from ..core.subscription import Subscription
    from ..protocol import ConsumerInfo
    from .context import JetStream


logger = logging.getLogger("natsjs.aio.subscription")


class JetStreamSubscription:
    """A subscription bound to a JetStream consumer.

    The subscription owns its consumer binding. The binding is dropped on
    unsubscribe, after which messages received through the subscription
    can no longer be acknowledged.
    """

    def __init__(
        self,
        js: JetStream,
        callback: Callable[[Msg], Awaitable[None]] | None = None,
        auto_ack: bool = False,
    ) -> None:
        self._js = js
        self._callback = callback
        self._auto_ack = auto_ack
        self._jsi: ConsumerBinding | None = ConsumerBinding()
        self._sub: Subscription | None = None

    def __repr__(self) -> str:
        return f"<JetStreamSubscription subject={self._subject_or_none()} binding={self._jsi}>"

    def _subject_or_none(self) -> str | None:
        if self._sub is None:
            return None
        return self._sub.subject()

    def _ensure_sub(self) -> Subscription:
        if self._sub is None:
            raise SubscriptionNotStartedError()
        return self._sub

    def _ensure_binding(self) -> ConsumerBinding:
        if self._jsi is None:
            raise SubscriptionTypeError()
        return self._jsi

    #############################
    # Accessors                 #
    #############################

    def sid(self) -> int:
        return self._ensure_sub().sid()

    def subject(self) -> str:
        """Subject of the local subscription, which receives messages."""
        return self._ensure_sub().subject()

    def queue(self) -> str | None:
        return self._ensure_sub().queue()

    def pending_limits(self) -> tuple[int, int]:
        return self._ensure_sub().pending_limits()

    def binding(self) -> ConsumerBinding | None:
        return self._jsi

    def stream(self) -> str:
        return self._ensure_binding().stream()

    def consumer(self) -> str:
        return self._ensure_binding().consumer()

    def deliver_subject(self) -> str:
        return self._ensure_binding().deliver()

    def is_pull_mode(self) -> bool:
        return self._ensure_binding().is_pull_mode()

    def auto_ack(self) -> bool:
        return self._auto_ack

    #############################
    # JetStream operations      #
    #############################

    async def poll(self) -> None:
        """Request the next batch of messages from a pull consumer.

        Messages are delivered to the subscription asynchronously.

        Raises:
            SubscriptionTypeError: when the subscription is not a pull subscription.
        """
        stream, consumer, batch = self._ensure_binding().pull_target()
        await self._js._connection.publish(
            self._js._api.request_next(stream, consumer),
            encode_next_request(batch),
            reply=self.subject(),
        )

    def set_pull_batch(self, batch: int) -> None:
        """Change the number of messages requested by `poll()`."""
        if batch <= 0:
            raise InvalidBatchSizeError()
        try:
            self._ensure_binding().set_pull(batch)
        except BindingStateError as exc:
            raise SubscriptionTypeError() from exc

    async def consumer_info(self) -> ConsumerInfo:
        """Fetch the current state of the bound consumer."""
        stream, consumer = self._ensure_binding().consumer_target()
        return await self._js.consumer_info(stream, consumer)

    #############################
    # Delivery                  #
    #############################

    async def next_message(self, timeout: float | None = None) -> Msg:
        """Wait for the next message of a subscription without callback."""
        raw = await self._ensure_sub().next_message(timeout)
        return Msg(raw, self)

    async def messages(self) -> AsyncIterator[Msg]:
        async for raw in self._ensure_sub().messages():
            yield Msg(raw, self)

    async def _handle_message(self, raw: CoreMsg) -> None:
        if self._callback is None:
            return
        msg = Msg(raw, self)
        await self._callback(msg)
        if not self._auto_ack:
            return
        try:
            await msg.ack()
        except NatsError as exc:
            logger.error(
                "Failed to acknowledge message on %s", raw.subject(), exc_info=exc
            )

    async def _start(
        self,
        subject: str,
        queue: str | None,
        pending_msgs_limit: int,
    ) -> None:
        self._sub = await self._js._connection.subscribe(
            subject,
            self._handle_message if self._callback else None,
            queue=queue,
            pending_msgs_limit=pending_msgs_limit,
        )

    async def unsubscribe(self) -> None:
        """Remove interest in the subject and drop the consumer binding.

        The remote consumer is left untouched.
        """
        self._jsi = None
        if self._sub is None:
            return
        logger.debug("Unsubscribing from %s", self._sub.subject())
        await self._sub.unsubscribe()

    async def __aenter__(self) -> JetStreamSubscription:
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.unsubscribe()
