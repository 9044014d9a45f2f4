import argparse
import logging
import sys

from .config import APP_VERSION, config_dir, load_cfg
from .engine import RefreshEngine
from .fetcher import AddressFetcher
from .log import setup_logging
from .models import DisplayState

logger = logging.getLogger("publicip")


class _Quiet:
    def publish(self, state: DisplayState) -> None:
        pass

    def publish_countdown(self, remaining_seconds: int) -> None:
        pass


def run_once(cfg, fetcher=None, executor=None, out=None) -> int:
    """One headless refresh cycle. Exit code 0 if any family resolved."""
    out = out or sys.stdout
    engine = RefreshEngine.from_cfg(cfg, fetcher or AddressFetcher.from_cfg(cfg), _Quiet(), executor=executor)
    engine.refresh()
    engine.shutdown(wait=True)
    state = engine.snapshot()
    print(f"IPv4:  {state.full_ipv4}", file=out)
    print(f"IPv6:  {state.full_ipv6}", file=out)
    print(f"Short: {state.short_form}", file=out)
    if state.last_error:
        print(f"Error: {state.last_error}", file=out)
    return 0 if engine.preferred_address() else 1


def run_app(cfg) -> int:
    from .macos import acquire_single_instance_lock, is_start_at_login_enabled, set_start_at_login
    from .menubar import PublicIPApp, hide_dock_icon

    if not acquire_single_instance_lock():
        logger.info("Already running")
        return 0

    if cfg.get("start_at_login", False) and not is_start_at_login_enabled():
        set_start_at_login(True, config_dir() / "logs")

    app = PublicIPApp(cfg)
    hide_dock_icon()
    app.run()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="publicip",
        description="Show the host's public IPv4/IPv6 address in the macOS menu bar.",
    )
    parser.add_argument("--once", action="store_true",
                        help="Fetch both addresses once, print them and exit.")
    parser.add_argument("--log-level",
                        help="Logging level (default: $PUBLICIP_LOG_LEVEL or INFO).")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    logger.info("publicip starting (version %s)", APP_VERSION)
    cfg = load_cfg()

    if args.once:
        return run_once(cfg)
    return run_app(cfg)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except SystemExit:
        raise
    except Exception as e:
        logger.exception("Unhandled exception: %s", e)
        raise
