from .api import (
    decode_response,
    encode_consumer_create_request,
    encode_next_request,
    encode_stream_create_request,
    encode_stream_lookup_request,
    parse_account_info,
    parse_api_error,
    parse_consumer_info,
    parse_pub_ack,
    parse_stream_info,
    parse_stream_names,
)
from .headers import encode_publish_headers
from .metadata import parse_metadata, parse_num

__all__ = [
    "decode_response",
    "encode_consumer_create_request",
    "encode_next_request",
    "encode_publish_headers",
    "encode_stream_create_request",
    "encode_stream_lookup_request",
    "parse_account_info",
    "parse_api_error",
    "parse_consumer_info",
    "parse_metadata",
    "parse_num",
    "parse_pub_ack",
    "parse_stream_info",
    "parse_stream_names",
]
