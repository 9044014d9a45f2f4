"""
Single-shot public address lookups against the ipify-style echo services.

One GET per family, no retries. Every failure comes back as a failed
AddressResult so a broken family never stops the other one.
"""

import logging
import time
from typing import Callable, Dict, Optional

import requests

from .config import APP_VERSION, DEFAULT_CFG
from .formatting import is_ipv4, is_ipv6
from .models import AddressFamily, AddressResult, ErrorKind

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS = {
    AddressFamily.IPV4: DEFAULT_CFG["ipv4_url"],
    AddressFamily.IPV6: DEFAULT_CFG["ipv6_url"],
}


def build_session() -> requests.Session:
    s = requests.Session()
    s.headers.update({
        "User-Agent": f"publicip/{APP_VERSION}",
        "Accept": "application/json",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    })
    return s


def parse_address(payload, family: AddressFamily) -> str:
    if not isinstance(payload, dict):
        raise ValueError("response is not a JSON object")
    ip = payload.get("ip")
    if not isinstance(ip, str) or not ip.strip():
        raise ValueError("missing 'ip' field")
    ip = ip.strip()
    if family is AddressFamily.IPV4:
        if not is_ipv4(ip):
            raise ValueError(f"not an IPv4 address: {ip!r}")
    elif not is_ipv6(ip):
        if is_ipv4(ip):
            raise ValueError("no IPv6 address")
        raise ValueError(f"not an IPv6 address: {ip!r}")
    return ip


class AddressFetcher:
    def __init__(self, endpoints: Optional[Dict[AddressFamily, str]] = None,
                 timeout: float = DEFAULT_CFG["request_timeout_sec"],
                 session: Optional[requests.Session] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.endpoints = dict(DEFAULT_ENDPOINTS)
        if endpoints:
            self.endpoints.update(endpoints)
        self.timeout = timeout
        self.session = session or build_session()
        self.clock = clock

    @classmethod
    def from_cfg(cls, cfg, **kwargs) -> "AddressFetcher":
        endpoints = {
            AddressFamily.IPV4: cfg.get("ipv4_url", DEFAULT_CFG["ipv4_url"]),
            AddressFamily.IPV6: cfg.get("ipv6_url", DEFAULT_CFG["ipv6_url"]),
        }
        return cls(endpoints=endpoints, timeout=cfg.get("request_timeout_sec", DEFAULT_CFG["request_timeout_sec"]), **kwargs)

    def fetch(self, family: AddressFamily, issued_at: Optional[float] = None) -> AddressResult:
        """Look up one address family.

        ``issued_at`` tags the result with the refresh cycle that asked for
        it; it defaults to the fetcher's clock at call time.
        """
        stamp = self.clock() if issued_at is None else issued_at
        url = self.endpoints[family]
        try:
            r = self.session.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            return self._failed(family, ErrorKind.HTTP_STATUS, f"HTTP {status}", stamp)
        except requests.Timeout:
            return self._failed(family, ErrorKind.NETWORK, "timed out", stamp)
        except requests.ConnectionError as e:
            return self._failed(family, ErrorKind.NETWORK, f"connection failed: {e}", stamp)
        except requests.RequestException as e:
            return self._failed(family, ErrorKind.NETWORK, str(e) or type(e).__name__, stamp)

        try:
            ip = parse_address(r.json(), family)
        except ValueError as e:
            # requests' JSONDecodeError is a ValueError too
            return self._failed(family, ErrorKind.DECODE, str(e) or "invalid JSON", stamp)

        logger.debug("%s lookup via %s: %s", family.label, url, ip)
        return AddressResult.ok(family, ip, stamp)

    def _failed(self, family, kind, reason, stamp) -> AddressResult:
        logger.warning("%s lookup failed (%s): %s", family.label, kind.value, reason)
        return AddressResult.error(family, kind, reason, stamp)
