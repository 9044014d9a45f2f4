"""macOS glue: clipboard, start-at-login agent, single instance, relaunch."""

import atexit
import fcntl
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional
from xml.sax.saxutils import escape

from .config import AGENT_LABEL

logger = logging.getLogger(__name__)

LOCK_PATH = "/tmp/publicip.lock"


def launch_agent_plist() -> Path:
    return Path.home() / "Library" / "LaunchAgents" / f"{AGENT_LABEL}.plist"


def copy_to_clipboard(text: str) -> bool:
    try:
        from AppKit import NSPasteboard
    except ImportError:
        logger.warning("AppKit unavailable, cannot copy to clipboard")
        return False
    pb = NSPasteboard.generalPasteboard()
    pb.clearContents()
    ok = bool(pb.setString_forType_(text, "public.utf8-plain-text"))
    logger.debug("Copied %r to clipboard: %s", text, ok)
    return ok


_LOCK_FD = None


def acquire_single_instance_lock(lock_path: str = LOCK_PATH) -> bool:
    global _LOCK_FD
    fd = os.open(lock_path, os.O_CREAT | os.O_RDWR, 0o600)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        os.close(fd)
        return False
    _LOCK_FD = fd

    @atexit.register
    def _cleanup():
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)
        except OSError:
            pass

    return True


def main_app_command(python_exec: Optional[str] = None) -> List[str]:
    return [python_exec or sys.executable, "-m", "publicip"]


def helper_command(python_exec: Optional[str] = None) -> List[str]:
    return [python_exec or sys.executable, "-m", "publicip.helper"]


def render_launch_agent(program_args: List[str], log_dir: Path) -> str:
    args = "\n".join(f"    <string>{escape(a)}</string>" for a in program_args)
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple Computer//DTD PLIST 1.0//EN"
 "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0"><dict>
  <key>Label</key><string>{AGENT_LABEL}</string>
  <key>ProgramArguments</key>
  <array>
{args}
  </array>
  <key>RunAtLoad</key><true/>
  <key>ProcessType</key><string>Background</string>
  <key>LimitLoadToSessionType</key><string>Aqua</string>
  <key>StandardOutPath</key><string>{escape(str(log_dir / "helper.out.log"))}</string>
  <key>StandardErrorPath</key><string>{escape(str(log_dir / "helper.err.log"))}</string>
</dict></plist>"""


def _launchctl(*args) -> int:
    return subprocess.call(["launchctl", *args], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)


def _agent_loaded() -> bool:
    try:
        return _launchctl("print", f"gui/{os.getuid()}/{AGENT_LABEL}") == 0
    except OSError:
        return False


def is_start_at_login_enabled() -> bool:
    return launch_agent_plist().exists()


def set_start_at_login(enable: bool, log_dir: Path, python_exec: Optional[str] = None) -> bool:
    """Register or remove the login item. The agent runs the helper, not the app."""
    plist = launch_agent_plist()
    domain = f"gui/{os.getuid()}"
    try:
        if enable:
            plist.parent.mkdir(parents=True, exist_ok=True)
            log_dir.mkdir(parents=True, exist_ok=True)
            plist.write_text(render_launch_agent(helper_command(python_exec), log_dir))
            if not _agent_loaded():
                # bootstrap would also run it now (RunAtLoad); only register
                _launchctl("enable", f"{domain}/{AGENT_LABEL}")
            logger.info("Start at login enabled (%s)", plist)
        else:
            if _agent_loaded():
                _launchctl("bootout", f"{domain}/{AGENT_LABEL}")
            if plist.exists():
                plist.unlink()
            logger.info("Start at login disabled")
        return True
    except OSError as e:
        logger.error("Failed to %s start at login: %s", "enable" if enable else "disable", e)
        return False


def relaunch_main_app(python_exec: Optional[str] = None) -> bool:
    cmd = main_app_command(python_exec)
    try:
        subprocess.Popen(cmd, stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL,
                         stderr=subprocess.DEVNULL, start_new_session=True, close_fds=True)
    except OSError as e:
        logger.error("Error launching main app (%s): %s", " ".join(cmd), e)
        return False
    logger.info("Successfully launched main app")
    return True
