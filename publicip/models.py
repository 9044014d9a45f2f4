import enum
import time
from dataclasses import dataclass, field
from typing import Optional

LOADING = "Loading..."
NO_NETWORK = "No Network"
ERROR_MARKER = "Error"
MISSING = "—"


class AddressFamily(enum.Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"

    @property
    def label(self) -> str:
        return "IPv4" if self is AddressFamily.IPV4 else "IPv6"


class ErrorKind(enum.Enum):
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    DECODE = "decode"


@dataclass(frozen=True)
class AddressResult:
    family: AddressFamily
    value: Optional[str] = None
    fetched_at: float = 0.0
    failed: bool = False
    error_reason: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, family: AddressFamily, value: str, fetched_at: float) -> "AddressResult":
        return cls(family=family, value=value, fetched_at=fetched_at)

    @classmethod
    def error(cls, family: AddressFamily, kind: ErrorKind, reason: str,
              fetched_at: float) -> "AddressResult":
        return cls(family=family, fetched_at=fetched_at, failed=True,
                   error_reason=reason, error_kind=kind)


@dataclass(frozen=True)
class DisplayState:
    short_form: str = LOADING
    full_ipv4: str = LOADING
    full_ipv6: str = LOADING
    last_error: Optional[str] = None

    def full_for(self, family: AddressFamily) -> str:
        return self.full_ipv4 if family is AddressFamily.IPV4 else self.full_ipv6


@dataclass
class RefreshSchedule:
    interval_seconds: int = 300
    remaining_seconds: int = 300
    next_fire_at: float = field(default_factory=time.time)

    def reset(self, now: Optional[float] = None):
        self.remaining_seconds = self.interval_seconds
        self.next_fire_at = (time.time() if now is None else now) + self.interval_seconds

    def step(self) -> bool:
        """Count down one second. Returns True when the countdown has run out."""
        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        return self.remaining_seconds == 0


@dataclass
class ConnectivityState:
    satisfied: Optional[bool] = None
