"""
Refresh engine: owns the fetch schedule and the published display state.

Threading:
- tick() is driven once a second by the UI timer (main thread).
- Fetches run on the executor; their completions land on worker threads.
- Every state change and every outward publish happens under one RLock,
  so countdown resets and result merges never interleave.
- Per family, a result is applied only if it was issued no earlier than the
  one already applied; a late answer from an older cycle is dropped.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Callable, Dict, Optional

from .fetcher import AddressFetcher
from .formatting import format_address
from .models import (
    ERROR_MARKER,
    LOADING,
    NO_NETWORK,
    AddressFamily,
    AddressResult,
    ConnectivityState,
    DisplayState,
    RefreshSchedule,
)
from .ports import PresentationPort

logger = logging.getLogger(__name__)

FAMILIES = (AddressFamily.IPV4, AddressFamily.IPV6)


class RefreshEngine:
    def __init__(self, fetcher: AddressFetcher, presenter: PresentationPort,
                 interval_seconds: int = 300,
                 prefer: AddressFamily = AddressFamily.IPV6,
                 executor=None,
                 clock: Callable[[], float] = time.monotonic):
        if interval_seconds < 1:
            raise ValueError("interval_seconds must be at least 1")
        self.fetcher = fetcher
        self.presenter = presenter
        self.prefer = prefer
        self.clock = clock
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="publicip-fetch")
        self._lock = threading.RLock()

        self.schedule = RefreshSchedule(interval_seconds=interval_seconds, remaining_seconds=interval_seconds)
        self.schedule.reset()
        self.connectivity = ConnectivityState()

        self._state = DisplayState()
        self._applied_at: Dict[AddressFamily, float] = {}
        self._good: Dict[AddressFamily, AddressResult] = {}
        self._errors: Dict[AddressFamily, str] = {}
        self._in_flight: Dict[AddressFamily, int] = {f: 0 for f in FAMILIES}
        self._offline = False
        self._offline_mark = None
        self._last_issue = None

    @classmethod
    def from_cfg(cls, cfg, fetcher: AddressFetcher, presenter: PresentationPort, **kwargs) -> "RefreshEngine":
        return cls(fetcher, presenter,
                   interval_seconds=int(cfg["refresh_interval_sec"]),
                   prefer=AddressFamily(cfg["prefer_family"]),
                   **kwargs)

    # ── public interface ──

    def start(self):
        with self._lock:
            self._publish()
            self._publish_countdown()
        self.refresh()

    def refresh(self):
        """Start a refresh cycle: one concurrent fetch per family."""
        self._start_cycle(skip_in_flight=False, reason="refresh")

    def request_refresh(self):
        self._start_cycle(skip_in_flight=False, reason="manual")

    def tick(self):
        with self._lock:
            due = self.schedule.step()
            if not due:
                self._publish_countdown()
                return
            # due check, countdown reset and issue share one lock hold
            issued_at, families = self._prepare_cycle(skip_in_flight=False, reason="timer")
        self._submit(issued_at, families)

    def on_connectivity_change(self, satisfied: bool):
        with self._lock:
            previous = self.connectivity.satisfied
            self.connectivity.satisfied = satisfied
            if previous is None:
                logger.debug("Initial connectivity: %s", "up" if satisfied else "down")
                if not satisfied:
                    self._go_offline()
                return
            if previous == satisfied:
                return
            if not satisfied:
                logger.info("Network lost")
                self._go_offline()
                return
            logger.info("Network restored, refreshing")
        self._start_cycle(skip_in_flight=True, reason="connectivity")

    def snapshot(self) -> DisplayState:
        with self._lock:
            return self._state

    def preferred_address(self) -> Optional[str]:
        """The full address behind the current short form, if any."""
        with self._lock:
            family = self._short_family()
            if family is None:
                return None
            return self._good[family].value

    def in_flight(self, family: AddressFamily) -> int:
        with self._lock:
            return self._in_flight[family]

    def shutdown(self, wait: bool = False):
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    # ── cycle handling ──

    def _start_cycle(self, skip_in_flight: bool, reason: str):
        with self._lock:
            issued_at, families = self._prepare_cycle(skip_in_flight, reason)
        self._submit(issued_at, families)

    def _prepare_cycle(self, skip_in_flight: bool, reason: str):
        """Stamp a new cycle and reset the countdown. Caller holds the lock."""
        issued_at = self.clock()
        if self._last_issue is not None and issued_at <= self._last_issue:
            # keep issue stamps strictly increasing on coarse clocks
            issued_at = self._last_issue + 1e-6
        self._last_issue = issued_at
        self.schedule.reset()
        self._publish_countdown()

        families = [f for f in FAMILIES if not (skip_in_flight and self._in_flight[f])]
        skipped = [f.label for f in FAMILIES if f not in families]
        if skipped:
            logger.debug("Skipping %s, lookup already in flight", ", ".join(skipped))
        for family in families:
            self._in_flight[family] += 1
        logger.info("Refresh (%s) issued for %s", reason, ", ".join(f.label for f in families) or "nothing")
        return issued_at, families

    def _submit(self, issued_at: float, families):
        for family in families:
            self._executor.submit(self._run_fetch, family, issued_at)

    def _run_fetch(self, family: AddressFamily, issued_at: float):
        try:
            result = self.fetcher.fetch(family, issued_at)
        except Exception as e:
            # fetchers are not supposed to raise; keep the cycle alive if one does
            logger.exception("%s fetcher raised", family.label)
            result = AddressResult(family=family, fetched_at=issued_at, failed=True,
                                   error_reason=str(e) or type(e).__name__)
        finally:
            with self._lock:
                self._in_flight[family] = max(0, self._in_flight[family] - 1)
        self.apply_result(result)

    def apply_result(self, result: AddressResult) -> bool:
        """Merge one fetch result into the display. Returns False if it was stale."""
        with self._lock:
            applied = self._applied_at.get(result.family)
            if applied is not None and result.fetched_at < applied:
                logger.debug("Dropping stale %s result (issued %.3f < %.3f)",
                             result.family.label, result.fetched_at, applied)
                return False
            self._applied_at[result.family] = result.fetched_at

            if result.failed:
                self._errors[result.family] = f"{result.family.label}: {result.error_reason}"
                self._set_full(result.family, ERROR_MARKER)
            else:
                self._errors.pop(result.family, None)
                self._good[result.family] = result
                if self._offline_mark is None or result.fetched_at > self._offline_mark:
                    self._offline = False
                    self._offline_mark = None
                self._set_full(result.family, result.value)
            self._publish()
            return True

    # ── state derivation ──

    def _go_offline(self):
        self._offline = True
        # answers to cycles issued before the loss cannot clear the sentinel
        self._offline_mark = self._last_issue
        self._publish()

    def _set_full(self, family: AddressFamily, value: str):
        if family is AddressFamily.IPV4:
            self._state = replace(self._state, full_ipv4=value)
        else:
            self._state = replace(self._state, full_ipv6=value)

    def _short_family(self) -> Optional[AddressFamily]:
        other = AddressFamily.IPV4 if self.prefer is AddressFamily.IPV6 else AddressFamily.IPV6
        order = (self.prefer, other)
        # a family whose latest result succeeded beats a stale one
        current = [f for f in order if f in self._good and f not in self._errors]
        if current:
            return current[0]
        stale = [f for f in order if f in self._good]
        if not stale:
            return None
        return max(stale, key=lambda f: (self._good[f].fetched_at, f is self.prefer))

    def _short_form(self) -> str:
        if self._offline:
            return NO_NETWORK
        family = self._short_family()
        if family is not None:
            return format_address(self._good[family].value)
        if len(self._applied_at) < len(FAMILIES):
            return LOADING
        return ERROR_MARKER

    def _publish(self):
        last_error = "; ".join(self._errors[f] for f in FAMILIES if f in self._errors) or None
        self._state = replace(self._state, short_form=self._short_form(), last_error=last_error)
        try:
            self.presenter.publish(self._state)
        except Exception:
            logger.exception("Presenter failed to publish display state")

    def _publish_countdown(self):
        try:
            self.presenter.publish_countdown(self.schedule.remaining_seconds)
        except Exception:
            logger.exception("Presenter failed to publish countdown")
