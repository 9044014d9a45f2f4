"""
Connectivity watcher: turns OS network state into engine callbacks.

Polled once a second from the app timer. Losing the network is forwarded
straight away; restorations and network switches are coalesced so they
cause at most one refresh per debounce window. A suppressed trigger is
replayed on the first poll after the window if it still applies.
"""

import hashlib
import logging
import subprocess
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

RESTORE = "restore"
CHANGED = "changed"


def has_default_route() -> bool:
    import netifaces

    try:
        return bool(netifaces.gateways().get("default"))
    except OSError as e:
        logger.debug("gateways() failed: %s", e)
        return False


def nwi_fingerprint() -> Optional[str]:
    try:
        out = subprocess.check_output(["/usr/sbin/scutil", "--nwi"], timeout=2,
                                      stderr=subprocess.DEVNULL).decode("utf-8", "ignore")
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("scutil --nwi failed: %s", e)
        return None
    return hashlib.sha1(out.encode("utf-8", "ignore")).hexdigest()


class ConnectivityWatcher:
    def __init__(self, engine, reachable: Callable[[], bool] = has_default_route,
                 fingerprint: Optional[Callable[[], Optional[str]]] = nwi_fingerprint,
                 debounce_sec: float = 1.0,
                 clock: Callable[[], float] = time.monotonic):
        self.engine = engine
        self.reachable = reachable
        self.fingerprint = fingerprint
        self.debounce_sec = debounce_sec
        self.clock = clock

        self.satisfied: Optional[bool] = None
        self._fp: Optional[str] = None
        self._last_trigger: Optional[float] = None
        self._pending: Optional[str] = None

    def poll(self):
        try:
            satisfied = bool(self.reachable())
        except Exception:
            logger.exception("Reachability check failed")
            return
        self.notify(satisfied)
        if not satisfied:
            # the restore refresh covers whatever network comes back
            self._fp = None
            return
        if self.fingerprint is not None:
            fp = self.fingerprint()
            if fp:
                if self._fp and fp != self._fp:
                    logger.info("Network configuration changed")
                    self._trigger(CHANGED)
                self._fp = fp

    def notify(self, satisfied: bool):
        previous = self.satisfied
        self.satisfied = satisfied
        if previous == satisfied:
            self.flush()
            return
        if not satisfied:
            self._pending = None
            self.engine.on_connectivity_change(False)
            return
        if previous is None:
            # first observation; the engine does its own startup refresh
            self.engine.on_connectivity_change(True)
            return
        self._trigger(RESTORE)

    def flush(self):
        if self._pending is None or not self.satisfied or not self._window_open():
            return
        kind, self._pending = self._pending, None
        self._fire(kind)

    def _trigger(self, kind: str):
        if self._window_open():
            self._pending = None
            self._fire(kind)
        elif self._pending != RESTORE:
            logger.debug("Coalescing %s within debounce window", kind)
            self._pending = kind

    def _window_open(self) -> bool:
        return self._last_trigger is None or self.clock() - self._last_trigger >= self.debounce_sec

    def _fire(self, kind: str):
        self._last_trigger = self.clock()
        if kind == RESTORE:
            self.engine.on_connectivity_change(True)
        else:
            self.engine.request_refresh()
