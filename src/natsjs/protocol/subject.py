from __future__ import annotations

from .constant import (
    JS_API_ACCOUNT_INFO,
    JS_API_CONSUMER_CREATE_T,
    JS_API_CONSUMER_INFO_T,
    JS_API_DURABLE_CREATE_T,
    JS_API_REQUEST_NEXT_T,
    JS_API_STREAM_CREATE_T,
    JS_API_STREAM_INFO_T,
    JS_API_STREAMS,
    JS_DEFAULT_API_PREFIX,
    SUBJECT_SEPARATOR,
)


def normalize_prefix(prefix: str) -> str:
    """Make sure a non-empty API prefix ends with a subject separator."""
    if prefix and not prefix.endswith(SUBJECT_SEPARATOR):
        return prefix + SUBJECT_SEPARATOR
    return prefix


class ApiSubjects:
    """Build JetStream API subjects.

    The prefix is prepended to every API subject. An empty prefix
    leaves suffixes unchanged, which is useful when the API is imported
    from another account under custom subjects.
    """

    __slots__ = ["prefix"]

    def __init__(self, prefix: str = JS_DEFAULT_API_PREFIX) -> None:
        self.prefix = normalize_prefix(prefix)

    def __repr__(self) -> str:
        return f"ApiSubjects(prefix={self.prefix!r})"

    def api_subject(self, suffix: str) -> str:
        if not self.prefix:
            return suffix
        return self.prefix + suffix

    def account_info(self) -> str:
        return self.api_subject(JS_API_ACCOUNT_INFO)

    def stream_names(self) -> str:
        return self.api_subject(JS_API_STREAMS)

    def stream_create(self, stream: str) -> str:
        return self.api_subject(JS_API_STREAM_CREATE_T.format(stream=stream))

    def stream_info(self, stream: str) -> str:
        return self.api_subject(JS_API_STREAM_INFO_T.format(stream=stream))

    def consumer_create(self, stream: str) -> str:
        return self.api_subject(JS_API_CONSUMER_CREATE_T.format(stream=stream))

    def durable_create(self, stream: str, durable: str) -> str:
        return self.api_subject(
            JS_API_DURABLE_CREATE_T.format(stream=stream, durable=durable)
        )

    def consumer_info(self, stream: str, consumer: str) -> str:
        return self.api_subject(
            JS_API_CONSUMER_INFO_T.format(stream=stream, consumer=consumer)
        )

    def request_next(self, stream: str, consumer: str) -> str:
        return self.api_subject(
            JS_API_REQUEST_NEXT_T.format(stream=stream, consumer=consumer)
        )
