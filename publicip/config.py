import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

APP_NAME = "Public IP"
APP_VERSION = "1.1.0"
AGENT_LABEL = "uk.co.freshsauce.publicip"

DEFAULT_CFG = {
    # Refresh
    "refresh_interval_sec": 300,
    "request_timeout_sec": 5,
    "connectivity_debounce_sec": 1.0,

    # Endpoints
    "ipv4_url": "https://api.ipify.org?format=json",
    "ipv6_url": "https://api64.ipify.org?format=json",

    # Display
    "prefer_family": "ipv6",
    "ipv4_format": "full",
    "show_countdown": True,

    # Login item
    "start_at_login": False,
}

MIN_INTERVAL_SEC = 10
IPV4_FORMATS = ("full", "first2", "first_last", "last2")
FAMILIES = ("ipv4", "ipv6")

TITLE_PREFIX = os.environ.get("PUBLICIP_PREFIX", "")


def config_dir() -> Path:
    override = os.environ.get("PUBLICIP_CONFIG_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "publicip"


def config_file() -> Path:
    return config_dir() / "config.json"


def ensure_dir(p: Path):
    p.mkdir(parents=True, exist_ok=True)


def _coerce(cfg):
    try:
        cfg["refresh_interval_sec"] = max(MIN_INTERVAL_SEC, int(cfg["refresh_interval_sec"]))
    except (TypeError, ValueError):
        cfg["refresh_interval_sec"] = DEFAULT_CFG["refresh_interval_sec"]
    try:
        cfg["request_timeout_sec"] = float(cfg["request_timeout_sec"])
        if cfg["request_timeout_sec"] <= 0:
            raise ValueError(cfg["request_timeout_sec"])
    except (TypeError, ValueError):
        cfg["request_timeout_sec"] = DEFAULT_CFG["request_timeout_sec"]
    try:
        cfg["connectivity_debounce_sec"] = max(0.0, float(cfg["connectivity_debounce_sec"]))
    except (TypeError, ValueError):
        cfg["connectivity_debounce_sec"] = DEFAULT_CFG["connectivity_debounce_sec"]
    if cfg.get("prefer_family") not in FAMILIES:
        logger.warning("Unknown prefer_family %r, using %s", cfg.get("prefer_family"), DEFAULT_CFG["prefer_family"])
        cfg["prefer_family"] = DEFAULT_CFG["prefer_family"]
    if cfg.get("ipv4_format") == "first_last_octet":
        cfg["ipv4_format"] = "first_last"
    if cfg.get("ipv4_format") not in IPV4_FORMATS:
        cfg["ipv4_format"] = DEFAULT_CFG["ipv4_format"]
    for key in ("show_countdown", "start_at_login"):
        cfg[key] = bool(cfg[key])
    return cfg


def load_cfg():
    path = config_file()
    ensure_dir(path.parent)
    seed = dict(DEFAULT_CFG)
    if path.exists():
        try:
            loaded = json.loads(path.read_text())
            if not isinstance(loaded, dict):
                raise ValueError("config root must be an object")
            seed.update(loaded)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load config %s: %s, using defaults.", path, e)
    for key in DEFAULT_CFG:
        seed.setdefault(key, DEFAULT_CFG[key])
    seed = _coerce(seed)
    path.write_text(json.dumps(seed, indent=2))
    return seed


def save_cfg(cfg):
    path = config_file()
    ensure_dir(path.parent)
    path.write_text(json.dumps(cfg, indent=2))
    logger.debug("Config saved to %s", path)
