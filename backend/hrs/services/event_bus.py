"""
事件总线：进程内同步发布/订阅
预订、入住、退房、退款等业务服务通过事件驱动审计日志与邮件通知
"""
import logging
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Handler = Callable[["Event"], None]


@dataclass
class Event:
    """领域事件"""
    event_type: str
    timestamp: datetime
    data: Dict[str, Any]
    source: str  # 发布方服务名
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)


class EventBus:
    """按事件类型分发给订阅的处理器"""

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._lock = threading.RLock()

    def subscribe(self, event_type: str, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers[event_type]
            if handler not in handlers:
                handlers.append(handler)

    def unsubscribe(self, event_type: str, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.get(event_type)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._handlers[event_type]

    def publish(self, event: Event) -> None:
        """
        同步调用该事件类型的全部处理器

        处理器抛出的异常记录日志后继续分发，发布方的事务不受影响
        """
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, ()))
        if not handlers:
            logger.debug(f"No handler for {event.event_type} from {event.source}")
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Handler {handler.__name__} failed on {event.event_type} ({event.event_id}): {e}",
                    exc_info=True
                )

    def get_subscribers(self) -> Dict[str, List[str]]:
        with self._lock:
            return {et: [h.__name__ for h in hs] for et, hs in self._handlers.items()}

    def clear_subscribers(self) -> None:
        with self._lock:
            self._handlers.clear()


event_bus = EventBus()
