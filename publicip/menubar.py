"""
Menu-bar front end (rumps).

The app is the engine's PresentationPort. publish()/publish_countdown() may
be called from fetch worker threads, so they only stash the values in a
PendingUpdates; the one-second main-thread timer takes them and updates the menu.
"""

import logging
from typing import Optional

import rumps

from .config import APP_NAME, APP_VERSION, TITLE_PREFIX, config_dir, save_cfg
from .engine import RefreshEngine
from .fetcher import AddressFetcher
from .formatting import fmt_ipv4, format_countdown, is_ipv4, is_ipv6
from .macos import copy_to_clipboard, is_start_at_login_enabled, set_start_at_login
from .models import MISSING, DisplayState
from .ports import PendingUpdates
from .watcher import ConnectivityWatcher

logger = logging.getLogger(__name__)

TICK_SEC = 1


class PublicIPApp(rumps.App):
    def __init__(self, cfg):
        super(PublicIPApp, self).__init__(APP_NAME, quit_button=None)
        self.cfg = cfg
        self.state = DisplayState()
        self.remaining: Optional[int] = None

        self._pending = PendingUpdates()

        self.item_ipv4 = rumps.MenuItem(f"IPv4: {self.state.full_ipv4}", callback=self.copy_ipv4)
        self.item_ipv6 = rumps.MenuItem(f"IPv6: {self.state.full_ipv6}", callback=self.copy_ipv6)
        self.item_error = rumps.MenuItem(f"Last error: {MISSING}", callback=None)
        self.item_countdown = rumps.MenuItem(f"Next refresh in {MISSING}", callback=None)
        self.item_copy = rumps.MenuItem("Copy IP Address", callback=self.copy_public, key="c")
        self.item_refresh = rumps.MenuItem("Refresh", callback=self.refresh_now, key="r")
        self.item_start = rumps.MenuItem("Start at Login", callback=self.toggle_start, key="l")
        self.item_about = rumps.MenuItem("About", callback=self.about, key="a")
        self.item_quit = rumps.MenuItem("Quit", callback=self.quit_app, key="q")

        info = [self.item_ipv4, self.item_ipv6, self.item_error]
        if cfg.get("show_countdown", True):
            info.append(self.item_countdown)
        self.menu = info + [
            rumps.separator,
            self.item_copy, self.item_refresh, self.item_start,
            rumps.separator,
            self.item_about, self.item_quit,
        ]
        self.sync_checkmarks()

        fetcher = AddressFetcher.from_cfg(cfg)
        self.engine = RefreshEngine.from_cfg(cfg, fetcher, self)
        self.watcher = ConnectivityWatcher(self.engine, debounce_sec=cfg["connectivity_debounce_sec"])

        self.update_title()
        self.engine.start()
        self.watcher.poll()

        self.timer = rumps.Timer(self.on_tick, TICK_SEC)
        self.timer.start()

    # ── PresentationPort ──

    def publish(self, state: DisplayState) -> None:
        self._pending.publish(state)

    def publish_countdown(self, remaining_seconds: int) -> None:
        self._pending.publish_countdown(remaining_seconds)

    # ── main thread ──

    def on_tick(self, _):
        self.engine.tick()
        self.watcher.poll()
        self.apply_pending()

    def apply_pending(self):
        taken = self._pending.take()
        if taken is None:
            return
        state, countdown = taken
        if state is not None:
            self.state = state
            self.update_title()
            self.update_info_lines()
        if countdown is not None:
            self.remaining = countdown
            self.item_countdown.title = f"Next refresh in {format_countdown(countdown)}"

    def update_title(self):
        short = self.state.short_form
        if is_ipv4(short):
            short = fmt_ipv4(short, self.cfg.get("ipv4_format"))
        self.title = f"{TITLE_PREFIX}{short}"

    def update_info_lines(self):
        self.item_ipv4.title = f"IPv4: {self.state.full_ipv4}"
        self.item_ipv6.title = f"IPv6: {self.state.full_ipv6}"
        self.item_error.title = f"Last error: {self.state.last_error or MISSING}"

    def sync_checkmarks(self):
        enabled = is_start_at_login_enabled()
        if enabled != self.cfg.get("start_at_login", False):
            self.cfg["start_at_login"] = enabled
            save_cfg(self.cfg)
        self.item_start.state = enabled

    # ── menu callbacks ──

    def _copy(self, text: Optional[str]):
        if not text or text == MISSING:
            rumps.notification(APP_NAME, "Nothing to copy", "No address available yet")
            return
        if copy_to_clipboard(text):
            rumps.notification(APP_NAME, "Copied", text)

    def copy_public(self, _):
        self._copy(self.engine.preferred_address())

    def copy_ipv4(self, _):
        value = self.state.full_ipv4
        self._copy(value if is_ipv4(value) else None)

    def copy_ipv6(self, _):
        value = self.state.full_ipv6
        self._copy(value if is_ipv6(value) else None)

    def refresh_now(self, _):
        self.engine.request_refresh()

    def toggle_start(self, _):
        enable = not self.cfg.get("start_at_login", False)
        if set_start_at_login(enable, config_dir() / "logs"):
            self.cfg["start_at_login"] = enable
            save_cfg(self.cfg)
        else:
            rumps.alert(APP_NAME, "Could not change the login item. See the log for details.")
        self.sync_checkmarks()

    def about(self, _):
        rumps.alert(APP_NAME, f"Version {APP_VERSION}\n"
                              "Shows your current public IP address in the menu bar.")

    def quit_app(self, _):
        logger.info("Quitting")
        self.timer.stop()
        self.engine.shutdown()
        rumps.quit_application()


def hide_dock_icon():
    try:
        from AppKit import NSApp, NSApplication, NSApplicationActivationPolicyProhibited
    except ImportError:
        return
    NSApplication.sharedApplication()
    NSApp.setActivationPolicy_(NSApplicationActivationPolicyProhibited)
