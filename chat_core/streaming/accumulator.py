from typing import Callable, List


Observer = Callable[[str], None]


class MessageAccumulator:
    """把增量片段按到达顺序拼接成一条不断增长的消息。

    每次 append 之后把最新的完整文本推送给所有订阅者。
    """

    def __init__(self) -> None:
        self._parts: List[str] = []
        self._content = ""
        self._observers: List[Observer] = []

    @property
    def content(self) -> str:
        return self._content

    @property
    def fragment_count(self) -> int:
        return len(self._parts)

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def append(self, fragment: str) -> str:
        self._parts.append(fragment)
        self._content += fragment
        for observer in self._observers:
            observer(self._content)
        return self._content
