"""User-visible notifications raised by cache operations."""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT = "default"
DESTRUCTIVE = "destructive"


@dataclass
class Notification:
    """A toast-style message for the presentation layer."""
    title: str
    description: str
    variant: str = DEFAULT

    @property
    def is_error(self) -> bool:
        return self.variant == DESTRUCTIVE


class Notifier:
    """
    Collects notifications and forwards them to an optional listener.

    The presentation layer either passes a listener that displays each
    notification as it arrives, or reads ``history`` after the fact.
    """

    def __init__(self, listener: Optional[Callable[[Notification], None]] = None):
        self.listener = listener
        self.history: List[Notification] = []

    def notify(self, title: str, description: str, variant: str = DEFAULT) -> Notification:
        notification = Notification(title, description, variant)
        self.history.append(notification)

        if notification.is_error:
            logger.warning(f"{title}: {description}")
        else:
            logger.info(f"{title}: {description}")

        if self.listener:
            self.listener(notification)
        return notification

    def success(self, title: str, description: str) -> Notification:
        return self.notify(title, description)

    def error(self, title: str, description: str) -> Notification:
        return self.notify(title, description, DESTRUCTIVE)

    @property
    def errors(self) -> List[Notification]:
        return [n for n in self.history if n.is_error]

    def clear(self):
        self.history.clear()
