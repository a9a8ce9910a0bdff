import threading
import time
from unittest import mock
from urllib.parse import parse_qs, urlparse

import requests

from invoicing import assets
from invoicing.assets import cache_busted, fetch_logo


def _resp(content=b"\x89PNG...", ctype="image/png", status=200):
    r = mock.Mock()
    r.content = content
    r.headers = {"content-type": ctype}
    r.status_code = status
    if status >= 400:
        r.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return r


def test_cache_busted_appends_token():
    url = cache_busted("https://cdn.test/logo.png", token=123)
    assert url == "https://cdn.test/logo.png?t=123"


def test_cache_busted_replaces_existing_token_and_keeps_params():
    url = cache_busted("https://cdn.test/logo.png?v=2&t=1", token=99)
    q = parse_qs(urlparse(url).query)

    assert q == {"v": ["2"], "t": ["99"]}


def test_empty_url_never_hits_the_network(monkeypatch):
    get = mock.Mock()
    monkeypatch.setattr(assets.requests, "get", get)

    assert fetch_logo("") is None
    assert fetch_logo(None) is None
    get.assert_not_called()


def test_fetch_logo_returns_image_bytes(monkeypatch):
    get = mock.Mock(return_value=_resp(b"PNGDATA"))
    monkeypatch.setattr(assets.requests, "get", get)

    assert fetch_logo("https://cdn.test/logo.png", timeout=2) == b"PNGDATA"
    url = get.call_args.args[0]
    assert url.startswith("https://cdn.test/logo.png?t=")
    assert get.call_args.kwargs["timeout"] == 2


def test_http_errors_fall_back_to_none(monkeypatch, caplog):
    monkeypatch.setattr(assets.requests, "get", mock.Mock(return_value=_resp(status=404)))

    with caplog.at_level("WARNING", logger="invoicing.assets"):
        assert fetch_logo("https://cdn.test/missing.png") is None
    assert "logo fetch failed" in caplog.text


def test_connection_errors_fall_back_to_none(monkeypatch):
    monkeypatch.setattr(assets.requests, "get", mock.Mock(side_effect=requests.ConnectionError("refused")))
    assert fetch_logo("https://cdn.test/logo.png") is None


def test_non_image_response_is_ignored(monkeypatch):
    monkeypatch.setattr(assets.requests, "get", mock.Mock(return_value=_resp(b"<html>", ctype="text/html")))
    assert fetch_logo("https://cdn.test/logo.png") is None


def test_slow_fetch_gives_up_at_the_timeout(monkeypatch, caplog):
    release = threading.Event()

    def slow_get(url, timeout):
        release.wait(2)
        return _resp()

    monkeypatch.setattr(assets.requests, "get", slow_get)
    started = time.monotonic()
    try:
        with caplog.at_level("WARNING", logger="invoicing.assets"):
            assert fetch_logo("https://cdn.test/logo.png", timeout=0.1) is None
        assert time.monotonic() - started < 1.5
        assert "gave up" in caplog.text
    finally:
        release.set()
