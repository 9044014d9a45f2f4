"""
Public IP - macOS menu-bar utility showing the host's public IPv4/IPv6 address.

The refresh engine, fetcher and watcher are UI-free; the rumps front end in
``publicip.menubar`` is only imported when the app is launched.
"""

from .config import APP_NAME, APP_VERSION
from .engine import RefreshEngine
from .fetcher import AddressFetcher
from .formatting import format_address
from .models import AddressFamily, AddressResult, DisplayState, ErrorKind, RefreshSchedule
from .watcher import ConnectivityWatcher

__version__ = APP_VERSION

__all__ = [
    "APP_NAME",
    "AddressFamily",
    "AddressFetcher",
    "AddressResult",
    "ConnectivityWatcher",
    "DisplayState",
    "ErrorKind",
    "RefreshEngine",
    "RefreshSchedule",
    "format_address",
]
