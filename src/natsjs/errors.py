from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .core.subscription import Subscription


class NatsError(Exception):
    """Base class for all exceptions raised by this library."""

    pass


# Transport errors


class TransportError(NatsError):
    """Base class for errors raised by the messaging connection."""

    pass


class NoRespondersError(TransportError):
    """Error raised when a request is sent to a subject nobody listens on."""

    def __init__(self, subject: str = "") -> None:
        self.subject = subject
        super().__init__(f"no responders available for request on '{subject}'")


class ConnectionClosedError(TransportError):
    """Error raised when the connection is closed."""

    pass


class SubscriptionNotStartedError(TransportError):
    """Error raised when the subscription is not started."""

    pass


class SubscriptionSlowConsumerError(TransportError):
    """Error raised when the subscription is a slow consumer."""

    def __init__(self, sub: Subscription) -> None:
        self.sub = sub
        super().__init__(f"subscription {sub.sid()} is a slow consumer")


# JetStream errors


class JetStreamError(NatsError):
    """Base class for all JetStream errors."""

    pass


# Configuration errors: detected before any remote call


class ConfigurationError(JetStreamError, ValueError):
    """Invalid or conflicting options."""

    pass


class InvalidBatchSizeError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("batch size of 0 not valid")


class ContextAndTimeoutError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("context and timeout can not both be set")


class PullModeNotAllowedError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("pull mode not allowed with a message callback")


class DirectModeRequiredError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("direct access requires direct pull or push")


class StreamNameRequiredError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("stream name is required")


# Binding errors


class BindingError(JetStreamError):
    """Base class for errors related to the binding of a subscription."""

    pass


class SubjectMismatchError(BindingError):
    def __init__(self, subject: str, filter_subject: str) -> None:
        self.subject = subject
        self.filter_subject = filter_subject
        super().__init__(
            f"subject '{subject}' does not match consumer filter '{filter_subject}'"
        )


class NoMatchingStreamError(BindingError):
    def __init__(self, subject: str) -> None:
        self.subject = subject
        super().__init__(f"no stream matches subject '{subject}'")


class SubscriptionTypeError(BindingError):
    """Error raised when an operation is not supported by the subscription type."""

    def __init__(self) -> None:
        super().__init__("invalid subscription type")


class MsgNotBoundError(BindingError):
    def __init__(self) -> None:
        super().__init__("message is not bound to subscription/connection")


class NoReplySubjectError(BindingError):
    def __init__(self) -> None:
        super().__init__("message does not have a reply")


class NotJetStreamMsgError(BindingError):
    """Error raised when a message was not delivered by a JetStream consumer."""

    def __init__(self) -> None:
        super().__init__("not a JetStream message")


# Remote unavailability errors


class JetStreamNotEnabledError(JetStreamError):
    def __init__(self) -> None:
        super().__init__("JetStream not enabled")


class NoStreamResponseError(JetStreamError):
    def __init__(self) -> None:
        super().__init__("no response from stream")


class RequestCancelledError(JetStreamError):
    """Error raised when a request is aborted through its cancel event."""

    def __init__(self) -> None:
        super().__init__("request cancelled")


# Server reported errors


class APIResponseError(JetStreamError):
    """Error reported by the JetStream API in a response body.

    The error message is the description sent by the server.
    """

    def __init__(self, code: int, description: str) -> None:
        self.code = code
        self.description = description
        super().__init__(description)


# Decode errors


class ResponseDecodeError(JetStreamError):
    """Error raised when an API response body cannot be decoded."""

    pass


class InvalidJSAckError(JetStreamError):
    def __init__(self, msg: str = "invalid JetStream publish response") -> None:
        super().__init__(msg)


class PubAckRejectedError(InvalidJSAckError, APIResponseError):
    """The stream refused the published message."""

    def __init__(self, code: int, description: str) -> None:
        APIResponseError.__init__(self, code, description)
