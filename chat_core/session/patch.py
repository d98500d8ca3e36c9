from dataclasses import dataclass
from typing import List

from chat_core.domain.models import Message


@dataclass
class AppendMessagePatch:
    """乐观更新：先把消息追加到可见列表，失败时按 id 精确撤销。

    apply / revert 互为逆操作，只修改传入的列表本身。
    """

    message: Message
    applied: bool = False
    committed: bool = False

    def apply(self, messages: List[Message]) -> None:
        if self.applied:
            return
        messages.append(self.message)
        self.applied = True

    def commit(self) -> None:
        self.committed = True

    def revert(self, messages: List[Message]) -> None:
        if not self.applied or self.committed:
            return
        messages[:] = [m for m in messages if m.id != self.message.id]
        self.applied = False
