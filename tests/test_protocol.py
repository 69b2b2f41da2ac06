"""와이어 코덱 테스트."""

from datetime import datetime

import pytest

from msghub.protocol import (
    JsonLineFramer,
    Message,
    ProtocolError,
    decode_frame,
    encode_message,
    timestamp,
)

FRAME = (
    b'{"Text":"hi","Type":"new_msg","Room":"r","DateTime":" 1/01/26 12:00",'
    b'"TargetUUID":"u1","Error":"","Username":"alice"}\n'
)


class TestEncode:
    def test_all_fields_present_in_wire_order(self) -> None:
        frame = encode_message(Message(type="list", target_uuid="u1"))
        assert frame == (
            b'{"Text":"","Type":"list","Room":"","DateTime":"",'
            b'"TargetUUID":"u1","Error":"","Username":""}\n'
        )

    def test_single_line_utf8(self) -> None:
        frame = encode_message(Message(type="new_msg", text="안녕\nworld"))
        assert frame.count(b"\n") == 1
        assert "안녕".encode("utf-8") in frame

    def test_well_formed_frame_survives_decode_encode(self) -> None:
        assert encode_message(decode_frame(FRAME)) == FRAME

    def test_unencodable_text_raises_protocol_error(self) -> None:
        with pytest.raises(ProtocolError):
            encode_message(Message(type="set_name", username="\ud800"))


class TestDecode:
    def test_fields(self) -> None:
        message = decode_frame(FRAME)
        assert message == Message(
            type="new_msg",
            target_uuid="u1",
            room="r",
            text="hi",
            date_time=" 1/01/26 12:00",
            username="alice",
        )

    def test_missing_fields_are_empty(self) -> None:
        message = decode_frame(b'{"Type":"list"}')
        assert message.type == "list"
        assert message.target_uuid == ""
        assert message.error == ""

    def test_unknown_fields_ignored(self) -> None:
        message = decode_frame('{"Type":"list","Color":"blue","TargetUUID":"u1"}')
        assert message == Message(type="list", target_uuid="u1")

    def test_null_and_non_string_values(self) -> None:
        message = decode_frame(b'{"Type":"new_msg","Text":42,"Room":null}')
        assert message.text == "42"
        assert message.room == ""

    def test_lone_surrogate_escape_is_dropped(self) -> None:
        message = decode_frame(b'{"Type":"set_name","TargetUUID":"u1","Text":"\\ud800x"}')
        assert message == Message(type="set_name", target_uuid="u1")
        encode_message(message)

    @pytest.mark.parametrize("line", [b"not json", b"[1,2]", b'"text"', b"\xff\xfe"])
    def test_bad_frame_decodes_to_empty_record(self, line: bytes) -> None:
        assert decode_frame(line).is_empty()


class TestFramer:
    def test_splits_lines_across_chunks(self) -> None:
        framer = JsonLineFramer()
        assert framer.feed(b'{"Type":"li') == []
        messages = framer.feed(b'st"}\n\n{"Type":"join","Room":"r"}\n{"Ty')
        assert [m.type for m in messages] == ["list", "join"]
        assert messages[1].room == "r"
        assert [m.type for m in framer.feed(b'pe":"exit"}\n')] == ["exit"]

    def test_bad_line_yields_empty_record(self) -> None:
        messages = JsonLineFramer().feed(b'garbage\n{"Type":"list"}\n')
        assert messages[0].is_empty()
        assert messages[1].type == "list"

    def test_deeply_nested_line_yields_empty_record(self) -> None:
        nested = b'{"Type":"list","X":' + b"[" * 5000 + b"]" * 5000 + b"}\n"
        messages = JsonLineFramer().feed(nested + b'{"Type":"join"}\n')
        assert messages[0].is_empty()
        assert messages[1].type == "join"

    def test_oversized_partial_line_raises(self) -> None:
        framer = JsonLineFramer(max_message_bytes=16)
        with pytest.raises(ProtocolError):
            framer.feed(b"x" * 32)

    def test_flush_drops_partial_line(self) -> None:
        framer = JsonLineFramer()
        framer.feed(b'{"Type":"list"')
        framer.flush()
        assert framer.feed(b'{"Type":"join"}\n')[0].type == "join"


def test_timestamp_format() -> None:
    assert timestamp(datetime(2026, 3, 5, 9, 7)) == " 5/03/26 09:07"
    assert timestamp(datetime(2026, 10, 19, 23, 59)) == "19/10/26 23:59"
