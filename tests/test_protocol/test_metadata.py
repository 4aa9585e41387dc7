import datetime

import pytest

from natsjs.protocol import parse_metadata, parse_num


class TestParseNum:
    @pytest.mark.parametrize(
        "token,expected",
        [("0", 0), ("1", 1), ("42", 42), ("18446744073709551615", 2**64 - 1)],
    )
    def test_digits(self, token: str, expected: int):
        assert parse_num(token) == expected

    @pytest.mark.parametrize("token", ["", "-1", "1a", "a1", " 1", "1.0", "+1", "١"])
    def test_unparseable_tokens_give_sentinel(self, token: str):
        assert parse_num(token) == -1


class TestParseMetadata:
    def test_parse_reply_subject(self):
        meta = parse_metadata("$JS.ACK.ORD.dur.2.1042.17.1609459200000000000.5")
        assert meta is not None
        assert meta.stream == "ORD"
        assert meta.consumer == "dur"
        assert meta.num_delivered == 2
        assert meta.sequence.stream == 1042
        assert meta.sequence.consumer == 17
        assert meta.num_pending == 5
        assert meta.timestamp == datetime.datetime(
            2021, 1, 1, tzinfo=datetime.timezone.utc
        )

    def test_timestamp_keeps_microseconds(self):
        meta = parse_metadata("$JS.ACK.S.C.1.1.1.1609459200123456789.0")
        assert meta is not None
        assert meta.timestamp == datetime.datetime(
            2021, 1, 1, 0, 0, 0, 123456, tzinfo=datetime.timezone.utc
        )

    def test_non_digit_token_gives_sentinel(self):
        meta = parse_metadata("$JS.ACK.S.C.x.1a.-3..9z")
        assert meta is not None
        assert meta.num_delivered == -1
        assert meta.sequence.stream == -1
        assert meta.sequence.consumer == -1
        assert meta.timestamp is None
        assert meta.num_pending == -1

    def test_only_invalid_fields_are_affected(self):
        meta = parse_metadata("$JS.ACK.S.C.1.2.bad.4.5")
        assert meta is not None
        assert meta.num_delivered == 1
        assert meta.sequence.stream == 2
        assert meta.sequence.consumer == -1
        assert meta.num_pending == 5

    @pytest.mark.parametrize(
        "reply",
        [
            "",
            "_INBOX.abc",
            "$JS.ACK.S.C.1.2.3.4",
            "$JS.ACK.S.C.1.2.3.4.5.6",
            "$JS.NAK.S.C.1.2.3.4.5",
            "JS.ACK.S.C.1.2.3.4.5",
            "$JS.ACK.hub.acc.S.C.1.2.3.4.5.token",
        ],
    )
    def test_not_a_jetstream_reply(self, reply: str):
        assert parse_metadata(reply) is None
