"""
Login-item helper.

launchd runs this at login; it starts the menu-bar app in its own session
and exits straight away.
"""

import sys

from .log import setup_logging
from .macos import relaunch_main_app


def main() -> int:
    setup_logging()
    return 0 if relaunch_main_app() else 1


if __name__ == "__main__":
    sys.exit(main())
