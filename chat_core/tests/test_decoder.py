import pytest

from chat_core.domain.exceptions import StreamBufferOverflowError
from chat_core.streaming.decoder import SseLineDecoder


STREAM = (
    ": keepalive\r\n"
    'data: {"choices":[{"delta":{"content":"Größe "}}]}\r\n'
    "\n"
    'data: {"choices":[{"delta":{"content":"🛡️ ok"}}]}\n'
    "data: [DONE]\n"
).encode("utf-8")

EXPECTED = [
    ": keepalive",
    'data: {"choices":[{"delta":{"content":"Größe "}}]}',
    "",
    'data: {"choices":[{"delta":{"content":"🛡️ ok"}}]}',
    "data: [DONE]",
]


def _decode(chunks):
    dec = SseLineDecoder()
    lines = []
    for c in chunks:
        lines.extend(dec.feed(c))
    lines.extend(dec.flush())
    return [line for line in lines if line]


def _split(data: bytes, cuts):
    parts, prev = [], 0
    for cut in cuts:
        parts.append(data[prev:cut])
        prev = cut
    parts.append(data[prev:])
    return parts


def test_single_chunk():
    dec = SseLineDecoder()
    assert dec.feed(STREAM) == EXPECTED
    assert dec.pending == ""


@pytest.mark.parametrize("size", [1, 2, 3, 5, 7, 16, 64])
def test_chunk_boundary_invariance(size):
    chunks = [STREAM[i:i + size] for i in range(0, len(STREAM), size)]
    lines = _decode(chunks)
    assert lines == [line for line in EXPECTED if line]


def test_split_inside_crlf_and_multibyte_char():
    cr = STREAM.index(b"\r\n")
    umlaut = STREAM.index("ö".encode("utf-8")) + 1
    emoji = STREAM.index("🛡".encode("utf-8")) + 2
    mid_json = STREAM.index(b"delta")
    lines = _decode(_split(STREAM, [cr + 1, mid_json, umlaut, emoji]))
    assert lines == [line for line in EXPECTED if line]


def test_partial_line_stays_pending():
    dec = SseLineDecoder()
    assert dec.feed(b'data: {"choi') == []
    assert dec.pending == 'data: {"choi'
    assert dec.feed(b'ces":[]}\nda') == ['data: {"choices":[]}']
    assert dec.pending == "da"


def test_requeue_puts_line_back_in_front():
    dec = SseLineDecoder()
    dec.push(b"data: {bad\nrest")
    line = dec.next_line()
    assert line == "data: {bad"
    dec.requeue(line)
    assert dec.pending == "data: {bad\nrest"
    assert dec.next_line() == "data: {bad"


def test_flush_returns_trailing_fragments():
    dec = SseLineDecoder()
    assert dec.feed(b"data: a\r\ndata: b\r") == ["data: a"]
    assert dec.flush() == ["data: b"]
    assert dec.pending == ""


def test_flush_replaces_truncated_multibyte_char():
    dec = SseLineDecoder()
    dec.feed("data: é".encode("utf-8")[:-1])
    assert dec.flush() == ["data: \ufffd"]


def test_buffer_cap():
    dec = SseLineDecoder(max_buffer_chars=16)
    dec.feed(b"data: short\n")
    with pytest.raises(StreamBufferOverflowError):
        dec.feed(b"x" * 32)
