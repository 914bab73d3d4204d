"""
User-visible transient notices (toasts)
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Iterator, List, Optional

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A short message shown to the user."""
    title: str
    description: Optional[str] = None
    level: NoticeLevel = NoticeLevel.INFO


class NoticeQueue:
    """
    Bounded queue of notices waiting to be displayed.

    Oldest notices are dropped once ``maxlen`` is reached.
    """

    def __init__(self, maxlen: int = 50):
        self._notices: Deque[Notice] = deque(maxlen=maxlen)

    def push(
        self,
        title: str,
        description: Optional[str] = None,
        level: NoticeLevel = NoticeLevel.INFO
    ) -> Notice:
        notice = Notice(title=title, description=description, level=level)
        self._notices.append(notice)
        logger.debug(f"Notice [{level.value}] {title}: {description or ''}")
        return notice

    def drain(self) -> List[Notice]:
        """Return and clear all queued notices."""
        notices = list(self._notices)
        self._notices.clear()
        return notices

    @property
    def latest(self) -> Optional[Notice]:
        return self._notices[-1] if self._notices else None

    def __len__(self) -> int:
        return len(self._notices)

    def __iter__(self) -> Iterator[Notice]:
        return iter(list(self._notices))
