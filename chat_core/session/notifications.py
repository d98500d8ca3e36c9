from dataclasses import dataclass
from typing import Callable, Literal


NotificationVariant = Literal["default", "destructive"]


@dataclass(frozen=True)
class Notification:
    """推送给界面的提示（toast）。"""

    title: str
    description: str
    variant: NotificationVariant = "default"


Notifier = Callable[[Notification], None]


def error_notification(description: str) -> Notification:
    return Notification(title="Error", description=description, variant="destructive")
