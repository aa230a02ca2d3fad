"""HTTP GET passthrough to Zotero's local API (or the web API) via requests."""

import logging

import requests

from zotlocal.core.errors import ZotLocalError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "Zotero-API-Key"
DEFAULT_TIMEOUT = 30  # seconds


class ProxyError(ZotLocalError):
    """Transport failure or non-2xx response from the proxied URL."""


# ── Public API ───────────────────────────────────────────────────────


def proxy_get_json(
    url: str, api_key: str | None = None, timeout: float = DEFAULT_TIMEOUT
):
    """GET *url* and decode the body as JSON.

    Bodies that are not JSON come back as the decoded text.
    """
    response = _get(url, api_key, timeout)
    try:
        return response.json()
    except ValueError:
        return response.text


def proxy_get_bytes(
    url: str, api_key: str | None = None, timeout: float = DEFAULT_TIMEOUT
) -> bytes:
    """GET *url* and return the raw body."""
    return _get(url, api_key, timeout).content


# ── Helpers ──────────────────────────────────────────────────────────


def build_headers(api_key: str | None) -> dict[str, str]:
    headers: dict[str, str] = {}
    if api_key and api_key.strip():
        headers[API_KEY_HEADER] = api_key.strip()
    return headers


def _get(url: str, api_key: str | None, timeout: float) -> requests.Response:
    logger.debug("Proxy GET %s", url)
    try:
        response = requests.get(url, headers=build_headers(api_key), timeout=timeout)
    except requests.RequestException as exc:
        raise ProxyError(f"proxy request failed for {url}: {exc}") from exc

    if not response.ok:
        raise ProxyError(f"Zotero HTTP {response.status_code}: {response.text}")
    return response
