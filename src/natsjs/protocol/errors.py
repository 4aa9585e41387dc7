from __future__ import annotations


class ProtocolError(Exception):
    """Base class for protocol errors."""

    pass


# Parser errors


class ProtocolParserError(ProtocolError):
    """Raised when a protocol parser error occurs."""

    pass


class InvalidResponseError(ProtocolParserError):
    """Raised when a JetStream API response body cannot be decoded."""

    pass


# Binding errors


class BindingStateError(ProtocolError):
    """Raised when a consumer binding is updated in an invalid way."""

    pass
