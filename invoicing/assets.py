# assets.py
"""Best-effort remote assets for the PDF renderer (logo)."""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Optional
from urllib.parse import urlencode, urlparse, urlunparse, parse_qsl

import requests

log = logging.getLogger("invoicing.assets")

LOGO_TIMEOUT_SECONDS = 5.0

# Shared so a hung download never blocks the caller on executor shutdown.
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="invoice-logo")


def cache_busted(url: str, token: Optional[int] = None) -> str:
    """Append ?t=<ms> so CDNs/browsers never hand back a stale logo."""
    token = token if token is not None else int(time.time() * 1000)
    parts = urlparse(url)
    q = parse_qsl(parts.query, keep_blank_values=True)
    q = [(k, v) for (k, v) in q if k != "t"] + [("t", str(token))]
    return urlunparse(parts._replace(query=urlencode(q)))


def _download(url: str, timeout: float) -> Optional[bytes]:
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    ctype = resp.headers.get("content-type", "")
    if ctype and not ctype.startswith("image/"):
        log.warning("logo fetch: unexpected content-type %r from %s", ctype, url)
        return None
    return resp.content or None


def fetch_logo(url: Optional[str], timeout: float = LOGO_TIMEOUT_SECONDS) -> Optional[bytes]:
    """
    Image bytes, or None if the URL is empty, the fetch fails, or it takes
    longer than `timeout` seconds in total. Never raises.
    """
    if not url:
        return None
    target = cache_busted(url)
    future = _executor.submit(_download, target, timeout)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        future.cancel()
        log.warning("logo fetch: gave up after %.1fs (%s)", timeout, url)
    except requests.RequestException as e:
        log.warning("logo fetch failed (%s): %s", url, e)
    except Exception:
        log.exception("logo fetch: unexpected error (%s)", url)
    return None
