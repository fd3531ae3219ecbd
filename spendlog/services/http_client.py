from __future__ import annotations

"""Blocking JSON GET with bounded retries, for the external rate provider.

Stdlib urllib only; the async rate source runs it through
``asyncio.to_thread``. Network errors and 5xx responses are retried with
exponential backoff, 4xx responses fail immediately.
"""
import json
import logging
import time
import urllib.error
import urllib.request
from typing import Any, Dict, Mapping, Optional

from spendlog import __version__

logger = logging.getLogger("spendlog.http")

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": f"spendlog/{__version__}",
}


class HttpError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def _retryable(err: Exception) -> bool:
    if isinstance(err, urllib.error.HTTPError):
        return err.code >= 500
    if isinstance(err, HttpError):
        return err.status is None or err.status >= 500
    return True


def get_json(
    url: str,
    *,
    timeout: float = 5.0,
    retries: int = 2,
    backoff: float = 0.5,
    headers: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    request = urllib.request.Request(url, headers={**DEFAULT_HEADERS, **(headers or {})})
    last_err: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            with urllib.request.urlopen(request, timeout=timeout) as resp:  # nosec B310
                payload = json.loads(resp.read().decode("utf-8"))
            if not isinstance(payload, dict):
                raise HttpError(f"expected a JSON object from {url}", status=200)
            return payload
        except (urllib.error.URLError, TimeoutError, HttpError, ValueError) as e:  # ValueError: bad JSON
            last_err = e
            if attempt == retries or not _retryable(e):
                break
            delay = backoff * (2**attempt)
            logger.info("GET %s failed (%s), retry %d in %.1fs", url, e, attempt + 1, delay)
            time.sleep(delay)
    status = last_err.code if isinstance(last_err, urllib.error.HTTPError) else None
    raise HttpError(f"Failed to fetch JSON from {url}: {last_err}", status=status)
