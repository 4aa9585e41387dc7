from __future__ import annotations

import abc
from typing import AsyncIterator

from .msg import Msg


class SubscriptionStatistics:
    __slots__ = ["pending_msgs", "pending_bytes", "delivered"]

    def __init__(self) -> None:
        self.pending_msgs = 0
        self.pending_bytes = 0
        self.delivered = 0

    def observe_message_received(self, msg: Msg) -> None:
        self.pending_msgs += 1
        self.pending_bytes += msg.size()

    def observe_message_processed(self, msg: Msg) -> None:
        self.pending_msgs -= 1
        self.pending_bytes -= msg.size()
        self.delivered += 1


class Subscription(metaclass=abc.ABCMeta):
    """Interface for a subscription created by the messaging connection."""

    @abc.abstractmethod
    def sid(self) -> int:
        """
        Returns the subscription ID.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def subject(self) -> str:
        """
        Returns the subject of the `Subscription`.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def queue(self) -> str | None:
        """
        Returns the queue name of the `Subscription` if part of a queue group.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def pending_limits(self) -> tuple[int, int]:
        """
        Returns the pending messages and pending bytes limits.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def unsubscribe(self) -> None:
        """
        Removes interest in a subject, remaining messages will be discarded.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def next_message(self, timeout: float | None = None) -> Msg:
        """
        Wait for the next message of a subscription without callback.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def messages(self) -> AsyncIterator[Msg]:
        """
        Iterate over the messages of a subscription without callback.
        """
        raise NotImplementedError
