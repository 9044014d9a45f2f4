"""Tests for AddressFetcher: success, failure classification, no-raise contract."""

import requests

from conftest import IPV4_URL, IPV6_URL, FakeResponse, make_fetcher
from publicip.config import DEFAULT_CFG
from publicip.fetcher import AddressFetcher, build_session
from publicip.models import AddressFamily, ErrorKind


def test_fetch_ipv4_success():
    fetcher, session = make_fetcher(FakeResponse(payload={"ip": "203.0.113.7"}), None)
    result = fetcher.fetch(AddressFamily.IPV4, issued_at=5.0)
    assert not result.failed
    assert result.value == "203.0.113.7"
    assert result.family is AddressFamily.IPV4
    assert result.fetched_at == 5.0
    assert session.calls == [(IPV4_URL, 2)]


def test_fetch_ipv6_keeps_address_verbatim():
    ip = "2001:0db8:0000:0000:0000:0000:0000:0001"
    fetcher, _ = make_fetcher(None, FakeResponse(payload={"ip": f" {ip}\n"}))
    result = fetcher.fetch(AddressFamily.IPV6, issued_at=1.0)
    assert result.value == ip


def test_fetch_stamps_with_clock_when_not_given(clock):
    fetcher, _ = make_fetcher(FakeResponse(payload={"ip": "1.2.3.4"}), None, clock=clock)
    clock.now = 42.0
    assert fetcher.fetch(AddressFamily.IPV4).fetched_at == 42.0


def test_http_status_error():
    fetcher, _ = make_fetcher(FakeResponse(status_code=503), None)
    result = fetcher.fetch(AddressFamily.IPV4, issued_at=1.0)
    assert result.failed
    assert result.value is None
    assert result.error_kind is ErrorKind.HTTP_STATUS
    assert "503" in result.error_reason


def test_network_errors():
    """Timeouts and connection failures are NETWORK errors, not exceptions."""
    fetcher, _ = make_fetcher(requests.Timeout("slow"), requests.ConnectionError("refused"))
    r4 = fetcher.fetch(AddressFamily.IPV4, issued_at=1.0)
    r6 = fetcher.fetch(AddressFamily.IPV6, issued_at=1.0)
    assert r4.failed and r4.error_kind is ErrorKind.NETWORK
    assert r4.error_reason == "timed out"
    assert r6.failed and r6.error_kind is ErrorKind.NETWORK
    assert "refused" in r6.error_reason


def test_invalid_json_is_decode_error():
    fetcher, _ = make_fetcher(FakeResponse(text="<html>"), None)
    result = fetcher.fetch(AddressFamily.IPV4, issued_at=1.0)
    assert result.failed
    assert result.error_kind is ErrorKind.DECODE


def test_json_shape_mismatch_is_decode_error():
    for payload in ({"address": "1.2.3.4"}, {"ip": 1234}, {"ip": "  "}, ["1.2.3.4"], {"ip": "not-an-ip"}):
        fetcher, _ = make_fetcher(FakeResponse(payload=payload), None)
        result = fetcher.fetch(AddressFamily.IPV4, issued_at=1.0)
        assert result.failed, payload
        assert result.error_kind is ErrorKind.DECODE


def test_ipv4_answer_to_ipv6_lookup_fails():
    """The dual-stack endpoint answers over IPv4 on v4-only hosts."""
    fetcher, _ = make_fetcher(None, FakeResponse(payload={"ip": "203.0.113.7"}))
    result = fetcher.fetch(AddressFamily.IPV6, issued_at=1.0)
    assert result.failed
    assert result.error_kind is ErrorKind.DECODE
    assert result.error_reason == "no IPv6 address"


def test_from_cfg_uses_configured_endpoints():
    cfg = dict(DEFAULT_CFG, ipv4_url="https://a/", ipv6_url="https://b/", request_timeout_sec=3)
    fetcher = AddressFetcher.from_cfg(cfg, session=object())
    assert fetcher.endpoints[AddressFamily.IPV4] == "https://a/"
    assert fetcher.endpoints[AddressFamily.IPV6] == "https://b/"
    assert fetcher.timeout == 3


def test_session_disables_caching():
    s = build_session()
    assert s.headers["Cache-Control"] == "no-cache"
    assert s.headers["Pragma"] == "no-cache"
