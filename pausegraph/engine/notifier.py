"""
Thread-safe publish/subscribe for workflow events.

Listeners are plain callables ``listener(event_name, payload)``. They are held
through weak references by default, so a listener nobody else references is
dropped without an explicit ``remove_listener``.
"""

from typing import Any, Callable, Optional, Tuple, Union
import logging
import threading
import weakref

from pausegraph.engine.events import WorkflowEvent


logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]

ALL_EVENTS = "*"

# Dead references are swept every this many add/notify operations
CLEANUP_THRESHOLD = 100


class _Registration:
    """A listener reference plus its normalized event filter."""

    __slots__ = ("_ref", "event_filter")

    def __init__(self, listener: Listener, event_filter: Optional[str], weak: bool):
        self._ref = _make_ref(listener) if weak else (lambda: listener)
        if event_filter is None or not event_filter.strip():
            self.event_filter = ALL_EVENTS
        else:
            self.event_filter = event_filter.strip().lower()

    @property
    def listener(self) -> Optional[Listener]:
        return self._ref()

    @property
    def alive(self) -> bool:
        return self._ref() is not None

    def matches(self, event_name: str) -> bool:
        return self.event_filter == ALL_EVENTS or self.event_filter == event_name.lower()


def _make_ref(listener: Listener) -> Callable[[], Optional[Listener]]:
    if hasattr(listener, "__self__") and hasattr(listener, "__func__"):
        return weakref.WeakMethod(listener)
    try:
        return weakref.ref(listener)
    except TypeError:
        # Builtins and some C callables cannot be weakly referenced
        logger.debug(f"Listener {listener!r} does not support weak references; holding it strongly")
        return lambda: listener


class EventNotifier:
    """
    Broadcasts events to registered listeners.

    Registration and removal are serialized by a lock that replaces an
    immutable tuple of registrations. ``notify`` reads the current tuple
    and calls listeners without holding the lock, so a slow listener never
    blocks registration and changes made during a notification never
    disturb the iteration in progress. A listener that raises is logged and
    skipped; delivery to the others continues.

    Usage:
        notifier = EventNotifier(source=workflow)
        notifier.add_listener(on_event, "workflow-node-start")
        notifier.notify("workflow-node-start", {"node_id": "a"})
    """

    def __init__(self, source: Any = None):
        self._source_name = type(source).__name__ if source is not None else "unknown"
        self._registrations: Tuple[_Registration, ...] = ()
        self._lock = threading.Lock()
        self._operation_count = 0

    def add_listener(
        self,
        listener: Listener,
        event_filter: Optional[str] = ALL_EVENTS,
        weak: bool = True,
    ) -> None:
        """
        Register ``listener`` for ``event_filter`` ("*" or an exact event name,
        case-insensitive). Registering the same listener again replaces the
        previous filter.

        With ``weak=True`` (default) the notifier does not keep the listener
        alive: a lambda or bound method of a discarded object stops receiving
        events once it is garbage collected.
        """
        if listener is None:
            raise ValueError("Listener to add cannot be None")
        if not callable(listener):
            raise ValueError(f"Listener {listener!r} must be callable")
        if isinstance(event_filter, WorkflowEvent):
            event_filter = event_filter.value
        registration = _Registration(listener, event_filter, weak)
        with self._lock:
            kept = tuple(r for r in self._registrations if not _refers_to(r, listener))
            self._registrations = kept + (registration,)
        self._tick()

    def remove_listener(self, listener: Listener) -> None:
        """Remove every registration of ``listener`` (and any dead ones)."""
        if listener is None:
            raise ValueError("Listener to remove cannot be None")
        with self._lock:
            self._registrations = tuple(
                r for r in self._registrations
                if r.alive and not _refers_to(r, listener)
            )

    def remove_all_listeners(self) -> None:
        with self._lock:
            self._registrations = ()

    @property
    def listener_count(self) -> int:
        """Number of live registrations."""
        self._cleanup()
        return len(self._registrations)

    def notify(self, event_name: Union[str, WorkflowEvent], payload: Any = None) -> None:
        """Deliver ``payload`` to every live listener whose filter matches."""
        if isinstance(event_name, WorkflowEvent):
            event_name = event_name.value
        if not event_name or not event_name.strip():
            logger.error(
                f"Event name cannot be empty when notifying listeners (source: {self._source_name})"
            )
            return

        for registration in self._registrations:
            listener = registration.listener
            if listener is None or not registration.matches(event_name):
                continue
            try:
                listener(event_name, payload)
            except Exception:
                logger.exception(
                    f"Listener {listener!r} failed on event '{event_name}' "
                    f"from {self._source_name}"
                )

        self._tick()

    def _tick(self) -> None:
        with self._lock:
            self._operation_count += 1
            due = self._operation_count % CLEANUP_THRESHOLD == 0
        if due:
            self._cleanup()

    def _cleanup(self) -> None:
        with self._lock:
            self._registrations = tuple(r for r in self._registrations if r.alive)


def _refers_to(registration: _Registration, listener: Listener) -> bool:
    current = registration.listener
    return current is not None and (current is listener or current == listener)
