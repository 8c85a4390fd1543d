import threading
from contextlib import nullcontext
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from emitter.core.config import get_settings
from emitter.core.logging import get_logger


T = TypeVar("T")

# A listener takes no argument, or the single payload passed to publish().
Callback = Callable[..., None]

# Distinguishes "publish(t)" from "publish(t, None)".
_MISSING: Any = object()


class ListenerMode(str, Enum):
    PERSISTENT = "persistent"
    SINGLE_SHOT = "single_shot"


@dataclass(eq=False)
class Listener:
    """
    One registration of a callback under an event type.

    Compared by identity: registering the same callback twice yields two
    independent Listener entries.
    """
    callback: Callback
    mode: ListenerMode = ListenerMode.PERSISTENT
    consumed: bool = False

    @property
    def once(self) -> bool:
        return self.mode is ListenerMode.SINGLE_SHOT


class EventEmitter:
    """
    In-memory, synchronous publish/subscribe registry.

    Listeners are invoked on the publisher's thread, in registration order,
    before publish() returns. Each publish pass works on a snapshot of the
    listeners present when it starts:
    - listeners subscribed during the pass wait for the next publish
    - listeners unsubscribed during the pass still receive this one
    - single-shot listeners are marked consumed when invoked and dropped
      from the table once the pass finishes

    A publish of the same type from inside a listener is an independent
    pass over the table as it is at that moment. Nothing limits how deep
    such recursion goes.
    """

    def __init__(
        self,
        thread_safe: Optional[bool] = None,
        isolate_listener_errors: Optional[bool] = None,
    ):
        settings = get_settings()
        if thread_safe is None:
            thread_safe = settings.emitter_thread_safe
        if isolate_listener_errors is None:
            isolate_listener_errors = settings.emitter_isolate_listener_errors

        self._subscriptions: Dict[str, List[Listener]] = {}
        self._lock = threading.RLock() if thread_safe else nullcontext()
        self.isolate_listener_errors = isolate_listener_errors
        self.logger = get_logger(__name__)

    # ── Registration ──────────────────────────────────────────────────────────

    def subscribe(self, event_type: str, callback: Callable[[T], None]) -> None:
        self._add(event_type, Listener(callback))

    def subscribe_once(self, event_type: str, callback: Callable[[T], None]) -> None:
        """Register a listener that is dropped after its first invocation."""
        self._add(event_type, Listener(callback, ListenerMode.SINGLE_SHOT))

    def _add(self, event_type: str, listener: Listener) -> None:
        with self._lock:
            self._subscriptions.setdefault(event_type, []).append(listener)
            count = len(self._subscriptions[event_type])
        self.logger.debug(
            "listener_subscribed",
            event_type=event_type,
            mode=listener.mode.value,
            listener_count=count,
        )

    def unsubscribe(
        self, event_type: str, callback: Optional[Callable[[T], None]] = None
    ) -> None:
        """
        Remove the first listener registered with `callback` for
        `event_type`, or every listener for it when `callback` is omitted.
        Unknown types and callbacks are ignored.
        """
        if callback is None:
            with self._lock:
                removed = self._subscriptions.pop(event_type, [])
            if removed:
                self.logger.debug(
                    "listeners_cleared",
                    event_type=event_type,
                    removed=len(removed),
                )
            return

        with self._lock:
            listeners = self._subscriptions.get(event_type)
            if not listeners:
                return
            # Equality, not identity: each `obj.method` access builds a new
            # bound method, equal to the others for the same obj and function.
            # Consumed single-shot entries are already on their way out.
            for index, listener in enumerate(listeners):
                if listener.consumed:
                    continue
                if listener.callback == callback:
                    del listeners[index]
                    break
            else:
                return
            if not listeners:
                del self._subscriptions[event_type]
            remaining = len(listeners)

        self.logger.debug(
            "listener_unsubscribed",
            event_type=event_type,
            listener_count=remaining,
        )

    # ── Dispatch ──────────────────────────────────────────────────────────────

    def publish(self, event_type: str, data: T = _MISSING) -> None:
        """
        Invoke every listener registered for `event_type`.

        `callback(data)` when data is given (None included), `callback()`
        otherwise. Unless error isolation is enabled, an exception raised
        by a listener propagates to the caller and the listeners after it
        are skipped for this pass.
        """
        with self._lock:
            snapshot = list(self._subscriptions.get(event_type, ()))
        if not snapshot:
            return

        self.logger.debug(
            "event_published",
            event_type=event_type,
            listener_count=len(snapshot),
            has_data=data is not _MISSING,
        )

        consumed: List[Listener] = []
        try:
            for listener in snapshot:
                if listener.once:
                    with self._lock:
                        if listener.consumed:
                            continue
                        listener.consumed = True
                    consumed.append(listener)
                self._invoke(event_type, listener, data)
        finally:
            if consumed:
                self._discard(event_type, consumed)

    def _invoke(self, event_type: str, listener: Listener, data: Any) -> None:
        try:
            if data is _MISSING:
                listener.callback()
            else:
                listener.callback(data)
        except Exception:
            if not self.isolate_listener_errors:
                raise
            self.logger.error(
                "listener_failed",
                event_type=event_type,
                callback=getattr(listener.callback, "__qualname__", repr(listener.callback)),
                exc_info=True,
            )

    def _discard(self, event_type: str, listeners: List[Listener]) -> None:
        # Entries already removed by unsubscribe() during the pass are skipped.
        with self._lock:
            live = self._subscriptions.get(event_type)
            if live is None:
                return
            done = {id(listener) for listener in listeners}
            live[:] = [entry for entry in live if id(entry) not in done]
            if not live:
                del self._subscriptions[event_type]

    # ── Introspection ─────────────────────────────────────────────────────────

    def listeners(self, event_type: str) -> Tuple[Callback, ...]:
        with self._lock:
            return tuple(entry.callback for entry in self._subscriptions.get(event_type, ()))

    def has_listeners(self, event_type: str) -> bool:
        with self._lock:
            return event_type in self._subscriptions

    def event_types(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._subscriptions)


# Shared instance for applications that want a single process-wide bus
event_bus = EventEmitter()
