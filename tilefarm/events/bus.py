"""
Event bus - synchronous typed publish/subscribe

Handlers are keyed by EventKind and called in registration order, inside the
publish() call. There is no queue.
"""
import logging
from typing import Callable, Dict, List, Optional

from .models import EventKind, GameEvent

logger = logging.getLogger(__name__)

Handler = Callable[[GameEvent], None]
Unsubscribe = Callable[[], None]


class EventBus:
    """
    Usage:
        bus = EventBus()
        off = bus.subscribe(EventKind.CROP_PLANTED, lambda e: print(e.crop_type))
        bus.publish(CropPlanted(timestamp=0, x=1, y=2, crop_type="wheat"))
        off()
    """

    def __init__(self, debug: bool = False):
        self._handlers: Dict[EventKind, List[Handler]] = {}
        self.debug = debug

    def subscribe(self, kind: EventKind, handler: Handler) -> Unsubscribe:
        """Register a handler; the returned callable removes it again."""
        self._handlers.setdefault(kind, []).append(handler)
        removed = False

        def unsubscribe():
            nonlocal removed
            if not removed:
                removed = True
                self.unsubscribe(kind, handler)

        return unsubscribe

    def unsubscribe(self, kind: EventKind, handler: Handler) -> bool:
        handlers = self._handlers.get(kind)
        if not handlers:
            return False
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        if not handlers:
            del self._handlers[kind]
        return True

    def once(self, kind: EventKind, handler: Handler) -> Unsubscribe:
        def wrapper(event: GameEvent):
            unsubscribe()
            handler(event)

        unsubscribe = self.subscribe(kind, wrapper)
        return unsubscribe

    def publish(self, event: GameEvent):
        # copy: handlers may (un)subscribe while we dispatch
        handlers = list(self._handlers.get(event.kind, ()))
        if self.debug:
            logger.debug(f"publish {event.kind.value} to {len(handlers)} handler(s): {event!r}")
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"handler {handler!r} failed on {event.kind.value}")

    def clear(self, kind: Optional[EventKind] = None):
        if kind is None:
            self._handlers.clear()
        else:
            self._handlers.pop(kind, None)

    def reset(self):
        self.clear()
        self.debug = False

    def listener_count(self, kind: Optional[EventKind] = None) -> int:
        if kind is None:
            return sum(len(h) for h in self._handlers.values())
        return len(self._handlers.get(kind, ()))

    def has_listeners(self, kind: EventKind) -> bool:
        return self.listener_count(kind) > 0

    def event_kinds(self) -> List[EventKind]:
        return list(self._handlers.keys())
