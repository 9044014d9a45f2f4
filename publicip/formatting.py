import ipaddress

from .models import MISSING


def is_ipv4(s) -> bool:
    try:
        ipaddress.IPv4Address(s)
        return True
    except (ipaddress.AddressValueError, ValueError, TypeError):
        return False


def is_ipv6(s) -> bool:
    try:
        ipaddress.IPv6Address(s)
        return True
    except (ipaddress.AddressValueError, ValueError, TypeError):
        return False


def format_address(address: str) -> str:
    """Short, display-only form of an address for the menu bar.

    IPv6 addresses with at least three colon-separated groups collapse to
    ``first::last``; everything else is returned unchanged.
    """
    groups = address.split(":")
    if len(groups) < 3:
        return address
    return f"{groups[0]}::{groups[-1]}"


def fmt_ipv4(ip, mode):
    if not is_ipv4(ip):
        return ip
    a, b, c, d = ip.split(".")
    if mode == "first2":
        return f"{a}.{b}. …"
    if mode == "first_last":
        return f"{a}. … .{d}"
    if mode == "last2":
        return f"… .{c}.{d}"
    return ip


def format_countdown(seconds) -> str:
    if seconds is None or seconds < 0:
        return MISSING
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"
