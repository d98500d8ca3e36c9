"""SSE 行 → 文本增量。

只认 ``data: `` 前缀的行，payload 为 OpenAI 风格的
``{"choices": [{"delta": {"content": "..."}}]}`` 或终止标记 ``[DONE]``。
"""

import json
from dataclasses import dataclass
from typing import Literal, Optional


DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

DeltaKind = Literal["ignore", "done", "fragment", "partial"]


@dataclass(frozen=True)
class Delta:
    """单行解析结果。

    kind:
        - "ignore": 空行、注释/心跳、非 data 行，或没有 content 的 data 行。
        - "done": 收到终止标记。
        - "fragment": text 为本次增量文本。
        - "partial": JSON 无法解析，视为不完整的行，由调用方放回缓冲区。
    """

    kind: DeltaKind
    text: Optional[str] = None


IGNORE = Delta("ignore")
DONE = Delta("done")
PARTIAL = Delta("partial")


def extract_delta(line: str) -> Delta:
    if not line.strip() or line.startswith(":"):
        return IGNORE
    if not line.startswith(DATA_PREFIX):
        return IGNORE

    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return DONE

    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError:
        return PARTIAL

    content = _delta_content(parsed)
    if not content:
        return IGNORE
    return Delta("fragment", content)


def _delta_content(parsed: object) -> Optional[str]:
    if not isinstance(parsed, dict):
        return None
    choices = parsed.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None
