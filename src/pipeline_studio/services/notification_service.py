"""
Notification Center.

Collects the user-facing notices produced by every service (the UI shows
them as toasts). The center is created once per application and injected
into services; there is no module-level instance.
"""

from collections import deque
from typing import Deque, List, Optional

from ..config import NotificationConfig
from ..domain.base_enums import NoticeVariant
from ..domain.notices import Notice
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id


logger = get_module_logger()

_DESTRUCTIVE_VARIANTS = (NoticeVariant.DESTRUCTIVE, NoticeVariant.ERROR)


class NotificationCenter:
    """
    Bounded history of notices.

    Usage:
        center = NotificationCenter(settings.notifications)
        center.notify("Connection successful", "Connected to localhost", NoticeVariant.SUCCESS)
        pending = center.drain()
    """

    def __init__(self, config: Optional[NotificationConfig] = None):
        self.config = config or NotificationConfig()
        self._history: Deque[Notice] = deque(maxlen=self.config.max_history)
        self._pending: Deque[Notice] = deque(maxlen=self.config.max_history)

    def notify(
        self,
        title: str,
        description: str = "",
        variant: NoticeVariant = NoticeVariant.DEFAULT,
    ) -> Notice:
        """
        Record a notice. Destructive and error notices get the longer duration.
        """
        duration = (
            self.config.destructive_duration_ms
            if variant in _DESTRUCTIVE_VARIANTS
            else self.config.default_duration_ms
        )
        notice = Notice(title=title, description=description, variant=variant, duration_ms=duration)
        self._history.append(notice)
        self._pending.append(notice)

        log = logger.warning if notice.is_destructive else logger.info
        log("Notice", title=title, description=description, variant=variant.value, trace_id=current_trace_id())
        return notice

    def success(self, title: str, description: str = "") -> Notice:
        return self.notify(title, description, NoticeVariant.SUCCESS)

    def failure(self, title: str, description: str = "") -> Notice:
        return self.notify(title, description, NoticeVariant.DESTRUCTIVE)

    def drain(self) -> List[Notice]:
        """Return and clear the notices not yet delivered."""
        pending = list(self._pending)
        self._pending.clear()
        return pending

    def history(self) -> List[Notice]:
        return list(self._history)

    def latest(self) -> Optional[Notice]:
        return self._history[-1] if self._history else None

    def clear(self) -> None:
        self._history.clear()
        self._pending.clear()
