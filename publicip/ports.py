from threading import Event, Lock
from typing import Optional, Protocol, Tuple

from .models import DisplayState


class PresentationPort(Protocol):
    """What the refresh engine talks to. The UI layer implements it."""

    def publish(self, state: DisplayState) -> None:
        ...

    def publish_countdown(self, remaining_seconds: int) -> None:
        ...


class PendingUpdates:
    """
    Cross-thread handoff for a PresentationPort whose widgets live on one thread.

    publish()/publish_countdown() may run on any thread and keep only the latest
    value of each. take() runs on the UI thread and hands back what arrived since
    the previous take(), or None when nothing did.
    """

    def __init__(self):
        self._lock = Lock()
        self._dirty = Event()
        self._state: Optional[DisplayState] = None
        self._countdown: Optional[int] = None

    def publish(self, state: DisplayState) -> None:
        with self._lock:
            self._state = state
            self._dirty.set()

    def publish_countdown(self, remaining_seconds: int) -> None:
        with self._lock:
            self._countdown = remaining_seconds
            self._dirty.set()

    def take(self) -> Optional[Tuple[Optional[DisplayState], Optional[int]]]:
        if not self._dirty.is_set():
            return None
        with self._lock:
            # the flag and the values change only under the lock
            self._dirty.clear()
            state, self._state = self._state, None
            countdown, self._countdown = self._countdown, None
        return state, countdown
