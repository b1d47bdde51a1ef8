"""
Routes a delivered or tapped notification to the matching domain handler
"""
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from .metrics import notifications_dispatched_total
from .schemas import NotificationKind, Priority


logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


class NotificationDispatcher:
    """Dispatches on ``metadata["kind"]``.

    Handlers:
      reminder         handler(reminder_id=..., is_warning=..., priority=..., metadata=...)
      love-message     handler(metadata)
      couple-activity  handler(metadata)
      anything else    the fallback handler, if one is registered, else logged and ignored

    A missing handler or a handler that raises is logged; dispatch itself
    never raises.
    """

    ROUTED_KINDS = (
        NotificationKind.REMINDER,
        NotificationKind.LOVE_MESSAGE,
        NotificationKind.COUPLE_ACTIVITY,
    )

    def __init__(self):
        self._handlers: Dict[NotificationKind, Handler] = {}
        self._fallback: Optional[Handler] = None

    def register(self, kind, handler: Handler) -> None:
        kind = NotificationKind(kind)
        if kind not in self.ROUTED_KINDS:
            raise ValueError(f"Notifications of kind '{kind.value}' are not routed to handlers")
        self._handlers[kind] = handler

    def register_fallback(self, handler: Optional[Handler]) -> None:
        self._fallback = handler

    def _call(self, label: str, handler: Optional[Handler], *args, **kwargs) -> None:
        if handler is None:
            logger.info("[Dispatch] no handler registered for '%s'", label)
            return
        try:
            handler(*args, **kwargs)
        except Exception:
            logger.exception("❌ [Dispatch] handler for '%s' failed", label)
        else:
            notifications_dispatched_total.labels(kind=label).inc()

    def dispatch(self, metadata: Optional[Mapping[str, Any]]) -> None:
        metadata = dict(metadata or {})
        raw_kind = metadata.get("kind")
        try:
            kind = NotificationKind(raw_kind)
        except ValueError:
            kind = None

        if kind == NotificationKind.REMINDER:
            reminder_id = metadata.get("reminder_id")
            self._call(
                kind.value,
                self._handlers.get(kind),
                reminder_id=None if reminder_id is None else str(reminder_id),
                is_warning=_as_bool(metadata.get("is_warning", False)),
                priority=metadata.get("priority") or Priority.MEDIUM.value,
                metadata=metadata,
            )
        elif kind == NotificationKind.LOVE_MESSAGE:
            self._call(kind.value, self._handlers.get(kind), metadata)
        elif kind == NotificationKind.COUPLE_ACTIVITY:
            self._call(kind.value, self._handlers.get(kind), metadata)
        else:
            if self._fallback is not None:
                self._call(str(raw_kind), self._fallback, metadata)
            else:
                logger.warning("[Dispatch] ignoring notification of unknown kind %r", raw_kind)


notification_dispatcher = NotificationDispatcher()
