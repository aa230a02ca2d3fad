"""Tests for the HTTP GET passthrough (requests is mocked)."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from zotlocal.remote.proxy import (
    DEFAULT_TIMEOUT,
    ProxyError,
    build_headers,
    proxy_get_bytes,
    proxy_get_json,
)

URL = "http://127.0.0.1:23119/api/users/0/items?limit=1"


def _response(status=200, body=b"", json_value=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.content = body
    resp.text = body.decode("utf-8", errors="replace")
    if json_error:
        resp.json.side_effect = requests.exceptions.JSONDecodeError("bad", "doc", 0)
    else:
        resp.json.return_value = json_value
    return resp


# ── Headers ──────────────────────────────────────────────────────────


def test_api_key_header_trimmed():
    assert build_headers("  abc  ") == {"Zotero-API-Key": "abc"}


@pytest.mark.parametrize("key", [None, "", "   "])
def test_blank_api_key_sends_no_header(key):
    assert build_headers(key) == {}


# ── JSON ─────────────────────────────────────────────────────────────


@patch("zotlocal.remote.proxy.requests.get")
def test_get_json(mock_get):
    mock_get.return_value = _response(body=b'[{"key": "A"}]', json_value=[{"key": "A"}])
    assert proxy_get_json(URL, "k") == [{"key": "A"}]
    mock_get.assert_called_once_with(
        URL, headers={"Zotero-API-Key": "k"}, timeout=DEFAULT_TIMEOUT
    )


@patch("zotlocal.remote.proxy.requests.get")
def test_get_json_falls_back_to_text(mock_get):
    mock_get.return_value = _response(body=b"smith2020", json_error=True)
    assert proxy_get_json(URL) == "smith2020"


@patch("zotlocal.remote.proxy.requests.get")
def test_http_error_includes_status_and_body(mock_get):
    mock_get.return_value = _response(status=404, body=b"Not found")
    with pytest.raises(ProxyError, match="Zotero HTTP 404: Not found"):
        proxy_get_json(URL)


@patch("zotlocal.remote.proxy.requests.get")
def test_transport_error(mock_get):
    mock_get.side_effect = requests.ConnectionError("refused")
    with pytest.raises(ProxyError, match="proxy request failed"):
        proxy_get_bytes(URL)


# ── Bytes ────────────────────────────────────────────────────────────


@patch("zotlocal.remote.proxy.requests.get")
def test_get_bytes(mock_get):
    mock_get.return_value = _response(body=b"\x89PNG")
    assert proxy_get_bytes(URL, timeout=5) == b"\x89PNG"
    assert mock_get.call_args.kwargs["timeout"] == 5
