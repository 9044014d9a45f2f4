"""Shared fakes: HTTP session, executors, clock and presenter."""

import pytest
import requests

from publicip.fetcher import AddressFetcher
from publicip.models import AddressFamily

IPV4_URL = "https://v4.example.test/?format=json"
IPV6_URL = "https://v64.example.test/?format=json"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self._text = text

    def raise_for_status(self):
        if not 200 <= self.status_code < 300:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if self._text is not None:
            raise requests.exceptions.JSONDecodeError("Expecting value", self._text, 0)
        return self._payload


class FakeSession:
    """Maps URL -> FakeResponse or exception instance."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        outcome = self.routes[url]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class InlineExecutor:
    def submit(self, fn, *args):
        fn(*args)


class DeferredExecutor:
    """Holds submitted jobs until the test runs them, in any order."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args):
        self.jobs.append((fn, args))

    def run(self, index):
        fn, args = self.jobs[index]
        fn(*args)

    def run_all(self):
        jobs, self.jobs = self.jobs, []
        for fn, args in jobs:
            fn(*args)


class ManualClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingPresenter:
    def __init__(self):
        self.states = []
        self.countdowns = []

    def publish(self, state):
        self.states.append(state)

    def publish_countdown(self, remaining_seconds):
        self.countdowns.append(remaining_seconds)

    @property
    def last(self):
        return self.states[-1]


def make_fetcher(ipv4, ipv6, clock=None):
    session = FakeSession({IPV4_URL: ipv4, IPV6_URL: ipv6})
    kwargs = {"clock": clock} if clock is not None else {}
    fetcher = AddressFetcher(
        endpoints={AddressFamily.IPV4: IPV4_URL, AddressFamily.IPV6: IPV6_URL},
        timeout=2,
        session=session,
        **kwargs,
    )
    return fetcher, session


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def clock():
    return ManualClock()
