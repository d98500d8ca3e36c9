import pytest

from chat_core.streaming.extractor import extract_delta


@pytest.mark.parametrize(
    "line",
    [
        "",
        "   ",
        ": keepalive",
        ":",
        "event: message",
        "data:{\"choices\":[{\"delta\":{\"content\":\"no space\"}}]}",
        "id: 42",
    ],
)
def test_non_data_lines_are_ignored(line):
    assert extract_delta(line).kind == "ignore"


def test_done_sentinel():
    delta = extract_delta("data: [DONE]")
    assert delta.kind == "done"
    assert delta.text is None


def test_content_fragment():
    delta = extract_delta('data: {"choices":[{"delta":{"content":"X"}}]}')
    assert delta.kind == "fragment"
    assert delta.text == "X"


def test_fragment_is_not_escaped():
    delta = extract_delta('data: {"choices":[{"delta":{"content":"**bold**\\n- `x`"}}]}')
    assert delta.text == "**bold**\n- `x`"


@pytest.mark.parametrize(
    "payload",
    [
        '{"choices":[{"delta":{}}]}',
        '{"choices":[{"delta":{"content":""}}]}',
        '{"choices":[{"delta":{"role":"assistant"}}]}',
        '{"choices":[]}',
        '{"usage":{"total_tokens":3}}',
        '{"choices":[{"delta":{"content":null}}]}',
        "[1, 2]",
    ],
)
def test_data_without_content_is_ignored(payload):
    assert extract_delta(f"data: {payload}").kind == "ignore"


def test_truncated_json_is_partial():
    assert extract_delta('data: {"choices":[{"delta":{"con').kind == "partial"
