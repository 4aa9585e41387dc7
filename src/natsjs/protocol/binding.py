from __future__ import annotations

import threading

from ..errors import SubscriptionTypeError
from .errors import BindingStateError


class ConsumerBinding:
    """Per subscription state of a JetStream consumer binding.

    A binding is either attached to a consumer which existed before the
    subscription, or bound to a consumer created by the subscription.
    This is decided once, when the binding is resolved.

    A pull binding never has a deliver subject and a push binding never
    has a batch size. All attributes are read and written under a lock,
    so the binding can be shared between the delivery task and tasks
    acknowledging messages.
    """

    __slots__ = [
        "_lock",
        "_stream",
        "_consumer",
        "_deliver",
        "_pull",
        "_created",
        "_resolved",
    ]

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stream = ""
        self._consumer = ""
        self._deliver = ""
        self._pull = 0
        self._created = False
        self._resolved = False

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"<ConsumerBinding stream={self._stream} consumer={self._consumer} "
                f"deliver={self._deliver} pull={self._pull} created={self._created}>"
            )

    def resolve(
        self,
        stream: str,
        consumer: str,
        deliver: str,
        created: bool,
        pull: int = 0,
    ) -> None:
        """Record the identifiers of the bound consumer."""
        if pull < 0:
            raise BindingStateError("batch size must not be negative")
        if pull and deliver:
            raise BindingStateError("pull bindings can not have a deliver subject")
        if not pull and not deliver:
            raise BindingStateError("push bindings must have a deliver subject")
        with self._lock:
            if self._resolved:
                raise BindingStateError("binding is already resolved")
            self._stream = stream
            self._consumer = consumer
            self._deliver = deliver
            self._pull = pull
            self._created = created
            self._resolved = True

    def set_pull(self, batch: int) -> None:
        """Change the batch size used by pull requests."""
        if batch <= 0:
            raise BindingStateError("batch size must be positive")
        with self._lock:
            if self._deliver:
                raise BindingStateError("push bindings can not pull messages")
            self._pull = batch

    def stream(self) -> str:
        with self._lock:
            return self._stream

    def consumer(self) -> str:
        with self._lock:
            return self._consumer

    def deliver(self) -> str:
        with self._lock:
            return self._deliver

    def pull(self) -> int:
        with self._lock:
            return self._pull

    def is_pull_mode(self) -> bool:
        with self._lock:
            return self._pull > 0

    def is_created(self) -> bool:
        """Return True when the consumer was created by this binding."""
        with self._lock:
            return self._created

    def is_resolved(self) -> bool:
        with self._lock:
            return self._resolved

    def pull_target(self) -> tuple[str, str, int]:
        """Return the stream, consumer and batch size used to pull messages.

        Raises:
            SubscriptionTypeError: when the binding is not a pull binding.
        """
        with self._lock:
            if self._deliver or self._pull == 0:
                raise SubscriptionTypeError()
            return self._stream, self._consumer, self._pull

    def consumer_target(self) -> tuple[str, str]:
        """Return the stream and consumer names of the bound consumer.

        Raises:
            SubscriptionTypeError: when the consumer name is not known.
        """
        with self._lock:
            if not self._consumer:
                raise SubscriptionTypeError()
            return self._stream, self._consumer
