import json

import pytest

from app.generation_logic.frame_codec import DecoderMode
from app.generation_logic.frame_codec import FrameDecoder
from app.generation_logic.frame_codec import encode_event
from app.models.design_models import EventType
from app.models.design_models import StreamEvent

SAMPLE_EVENTS = [
    StreamEvent.reasoning("Thinking"),
    StreamEvent.reasoning(" about coffee\nand café ☕"),
    StreamEvent.code('<!DOCTYPE html>\n<html lang="en">\n  <body>"quoted" data: text</body>\n</html>'),
    StreamEvent.error("Failed to refine prompt: boom"),
]


def _decode_all(chunks, decoder=None):
    decoder = decoder or FrameDecoder()
    events = []
    for chunk in chunks:
        events.extend(decoder.feed(chunk))
    decoder.close()
    return events


# --- encoder ---


def test_encode_event_layout():
    frame = encode_event(StreamEvent.reasoning("hi"))
    assert frame == b'data: {"type": "reasoning", "content": "hi"}\n\n'


def test_encode_event_escapes_newlines():
    frame = encode_event(StreamEvent.code("<html>\n<body></body>\n</html>"))
    text = frame.decode("utf-8")
    assert text.endswith("\n\n")
    assert text[:-2].count("\n") == 0
    assert json.loads(text[len("data: ") : -2]) == {"type": "code", "content": "<html>\n<body></body>\n</html>"}


def test_encode_event_drops_empty_content():
    assert encode_event(StreamEvent.reasoning("")) == b""
    assert encode_event(StreamEvent.code("")) == b""


# --- decoder ---


def test_decode_single_chunk():
    stream = b"".join(encode_event(e) for e in SAMPLE_EVENTS)
    assert _decode_all([stream]) == SAMPLE_EVENTS


def test_decode_is_independent_of_chunk_boundaries():
    stream = b"".join(encode_event(e) for e in SAMPLE_EVENTS)
    expected = _decode_all([stream])

    for offset in range(1, len(stream)):
        assert _decode_all([stream[:offset], stream[offset:]]) == expected, offset


def test_decode_byte_by_byte():
    stream = b"".join(encode_event(e) for e in SAMPLE_EVENTS)
    assert _decode_all([stream[i : i + 1] for i in range(len(stream))]) == SAMPLE_EVENTS


def test_ignores_blank_and_non_frame_lines():
    stream = (
        b": keep-alive comment\n"
        b"\n"
        b"event: message\n"
        b"id: 7\n"
        b'{"type": "reasoning", "content": "no marker"}\n'
        b'data: {"type": "reasoning", "content": "kept"}\n\n'
        b"retry: 1000\n\n"
    )
    assert _decode_all([stream]) == [StreamEvent.reasoning("kept")]


def test_tolerates_crlf_line_endings():
    stream = b'data: {"type": "code", "content": "<p>x</p>"}\r\n\r\n'
    assert _decode_all([stream]) == [StreamEvent.code("<p>x</p>")]


def test_partial_json_split_across_chunks():
    events = _decode_all([b'data: {"type":"reason', b'ing","content":"hi"}\n\n'])
    assert events == [StreamEvent(type=EventType.REASONING, content="hi")]


def test_recovers_payload_split_across_lines():
    decoder = FrameDecoder()

    assert list(decoder.feed(b'data: {"type":"reason\n')) == []
    assert decoder.mode is DecoderMode.RECOVERING_PARTIAL

    events = list(decoder.feed(b'ing","content":"hi"}\n\n'))
    assert events == [StreamEvent.reasoning("hi")]
    assert decoder.mode is DecoderMode.ACCUMULATING_LINES


def test_recovery_strips_marker_from_continuation_lines():
    decoder = FrameDecoder()
    events = list(decoder.feed(b'data: {"type":"code",\ndata: "content":"<p>x</p>"}\n\n'))
    assert events == [StreamEvent.code("<p>x</p>")]


def test_unresolvable_partial_does_not_swallow_next_frame():
    decoder = FrameDecoder()
    stream = b'data: {"type": "reaso\n\ndata: {"type": "reasoning", "content": "next"}\n\n'
    assert list(decoder.feed(stream)) == [StreamEvent.reasoning("next")]
    assert decoder.mode is DecoderMode.ACCUMULATING_LINES


def test_partial_accumulator_is_capped():
    decoder = FrameDecoder(max_partial_chars=16)
    assert list(decoder.feed(b'data: {"type": "reasoning", "content": "aaaa\n')) == []
    assert decoder.mode is DecoderMode.ACCUMULATING_LINES

    events = list(decoder.feed(b'data: {"type": "reasoning", "content": "ok"}\n\n'))
    assert events == [StreamEvent.reasoning("ok")]


def test_drops_json_that_is_not_an_event():
    stream = (
        b'data: {"type": "status", "content": "ignored"}\n\n'
        b'data: {"content": "missing type"}\n\n'
        b"data: [1, 2, 3]\n\n"
        b'data: {"type": "error", "content": "kept"}\n\n'
    )
    assert _decode_all([stream]) == [StreamEvent.error("kept")]


def test_multibyte_character_split_across_chunks():
    frame = encode_event(StreamEvent.reasoning("☕"))
    cut = frame.index("☕".encode("utf-8")) + 1
    assert _decode_all([frame[:cut], frame[cut:]]) == [StreamEvent.reasoning("☕")]


def test_incomplete_tail_discarded_on_close():
    decoder = FrameDecoder()
    events = list(decoder.feed(b'data: {"type": "reasoning", "content": "a"}\n\ndata: {"type": "reas'))
    assert events == [StreamEvent.reasoning("a")]
    decoder.close()
    assert list(decoder.feed(b"")) == []


@pytest.mark.parametrize("split", [1, 5, 6, 7, 20])
def test_marker_split(split):
    frame = encode_event(StreamEvent.reasoning("marker"))
    assert _decode_all([frame[:split], frame[split:]]) == [StreamEvent.reasoning("marker")]
