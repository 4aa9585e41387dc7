from __future__ import annotations

import abc


class Msg(metaclass=abc.ABCMeta):
    """Interface for a message delivered by the messaging connection.

    Each connection implementation defines its own message class
    which inherits from this interface.
    """

    @abc.abstractmethod
    def subject(self) -> str:
        """Returns the subject."""
        raise NotImplementedError

    @abc.abstractmethod
    def reply(self) -> str:
        """Returns the reply subject, or an empty string."""
        raise NotImplementedError

    @abc.abstractmethod
    def data(self) -> bytes:
        """Returns the data."""
        raise NotImplementedError

    @abc.abstractmethod
    def headers(self) -> dict[str, str]:
        """Returns the headers."""
        raise NotImplementedError

    def size(self) -> int:
        """Returns the size of the message."""
        return len(self.data())
