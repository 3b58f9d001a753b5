"""
HTTP module for probe scripts: request(method, url, headers, body_text, timeout_ms)
or request({method, url, headers, bodyText, timeoutMs}).

Uses one httpx.Client per run, closed when the run is disposed. The method,
URL and arguments are validated before any network I/O. Outbound hosts can be
restricted with ``PROBE_HTTP_ALLOWED_HOSTS`` and private networks blocked with
``PROBE_HTTP_BLOCK_PRIVATE_NETWORKS``.

A request-level timeout is a CapabilityError like any other transport
failure; it never turns into a run Timeout.
"""

import ipaddress
import socket
from collections.abc import Callable
from typing import Any
from urllib.parse import urlparse

import httpx

from probehost.engines.script.errors import CapabilityError

DEFAULT_HTTP_TIMEOUT_MS = 5_000

ALLOWED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})

_BLOCKED_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),  # link-local / cloud metadata
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),  # IPv6 private
    ipaddress.ip_network("fe80::/10"),  # IPv6 link-local
]


def _is_private_ip(host: str) -> bool:
    """Return True if *host* resolves to a private/reserved IP address."""
    try:
        addr = ipaddress.ip_address(host)
    except ValueError:
        try:
            resolved = socket.getaddrinfo(host, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
            addr = ipaddress.ip_address(resolved[0][4][0])
        except (socket.gaierror, OSError, IndexError):
            return True  # cannot resolve → block
    return any(addr in net for net in _BLOCKED_NETWORKS)


def _host_matches(hostname: str, allowed_hosts: frozenset[str]) -> bool:
    """Check if *hostname* is permitted by the allow-list.

    Supported patterns:
    - ``*``             → allow all hosts
    - ``api.example.com`` → exact match
    - ``*.example.com``   → any subdomain of example.com (not example.com itself)
    """
    if "*" in allowed_hosts:
        return True
    if hostname in allowed_hosts:
        return True
    for pattern in allowed_hosts:
        if pattern.startswith("*.") and hostname.endswith(pattern[1:]):
            return True
    return False


def check_method(method: Any) -> str:
    """Return the upper-cased method or raise CapabilityError."""
    if not isinstance(method, str) or method.strip().upper() not in ALLOWED_METHODS:
        raise CapabilityError(f"http: unsupported method {method!r}")
    return method.strip().upper()


def check_url_allowed(
    url: Any, allowed_hosts: frozenset[str], *, block_private: bool = False
) -> str:
    """Raise CapabilityError when the URL target is not allowed."""
    if not isinstance(url, str) or not url.strip():
        raise CapabilityError("http: url must be a non-empty string")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise CapabilityError(f"http: URL scheme '{parsed.scheme}' is not allowed; only http/https.")

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        raise CapabilityError("http: URL has no hostname.")

    if not _host_matches(hostname, allowed_hosts):
        raise CapabilityError(
            f"http: host '{hostname}' is not in PROBE_HTTP_ALLOWED_HOSTS. "
            f"Allowed: {', '.join(sorted(allowed_hosts)) or '(none)'}."
        )

    if block_private and _is_private_ip(hostname):
        raise CapabilityError(f"http: requests to private/internal addresses are blocked: {hostname}")
    return url


def _check_headers(headers: Any) -> dict[str, str]:
    if headers is None:
        return {}
    if not isinstance(headers, dict):
        raise CapabilityError("http: headers must be a dict of strings")
    for k, v in headers.items():
        if not isinstance(k, str) or not isinstance(v, str):
            raise CapabilityError("http: headers must be a dict of strings")
    return dict(headers)


def _timeout_seconds(timeout_ms: Any, default_ms: int) -> float:
    if timeout_ms is None:
        return default_ms / 1000
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int | float) or timeout_ms <= 0:
        raise CapabilityError("http: timeout_ms must be a positive number")
    return timeout_ms / 1000


# Keys of the single-dict request form; camelCase spellings are accepted too
_REQUEST_FIELDS = {
    "method": "method",
    "url": "url",
    "headers": "headers",
    "body_text": "body_text",
    "bodyText": "body_text",
    "timeout_ms": "timeout_ms",
    "timeoutMs": "timeout_ms",
}


def _unpack_request(req: dict) -> dict[str, Any]:
    args: dict[str, Any] = {}
    for key, value in req.items():
        field = _REQUEST_FIELDS.get(key) if isinstance(key, str) else None
        if field is None:
            raise CapabilityError(f"http: unknown request field {key!r}")
        if field in args:
            raise CapabilityError(f"http: request field {field!r} given twice")
        args[field] = value
    if "method" not in args or "url" not in args:
        raise CapabilityError("http: request needs method and url")
    return args


class _HttpModule:
    """HTTP module that reuses a single httpx.Client for the lifetime of a
    run, avoiding repeated TCP/TLS handshakes."""

    __slots__ = ("_block_private", "_check_open", "_client", "_default_timeout_ms", "_hosts", "_transport")

    def __init__(
        self,
        *,
        check_open: Callable[[], None],
        default_timeout_ms: int = DEFAULT_HTTP_TIMEOUT_MS,
        allowed_hosts: frozenset[str] | None = None,
        block_private: bool = False,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._check_open = check_open
        self._default_timeout_ms = default_timeout_ms
        self._hosts = allowed_hosts if allowed_hosts is not None else frozenset({"*"})
        self._block_private = block_private
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(transport=self._transport)
        return self._client

    def request(
        self,
        method: str | dict,
        url: str | None = None,
        headers: dict[str, str] | None = None,
        body_text: str | None = None,
        timeout_ms: int | float | None = None,
    ) -> dict[str, Any]:
        """
        Issue one request and return {"status", "body_text", "headers"}.

        Takes either arguments or a single request dict, e.g.
        request({"method": "GET", "url": u, "headers": h, "timeoutMs": 5000}).
        """
        self._check_open()
        if isinstance(method, dict):
            if url is not None or headers is not None or body_text is not None or timeout_ms is not None:
                raise CapabilityError("http: pass a request dict or arguments, not both")
            return self.request(**_unpack_request(method))
        m = check_method(method)
        check_url_allowed(url, self._hosts, block_private=self._block_private)
        hdrs = _check_headers(headers)
        if body_text is not None and not isinstance(body_text, str):
            raise CapabilityError("http: body_text must be a string")
        timeout = _timeout_seconds(timeout_ms, self._default_timeout_ms)

        try:
            resp = self._get_client().request(
                m,
                url,
                headers=hdrs,
                content=body_text.encode("utf-8") if body_text is not None else None,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise CapabilityError(f"http: {m} {url} timed out after {int(timeout * 1000)}ms") from e
        except httpx.HTTPError as e:
            raise CapabilityError(f"http: {m} {url} failed: {e}") from e
        return {
            "status": resp.status_code,
            "body_text": resp.text,
            "headers": dict(resp.headers),
        }

    def close(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            except Exception:
                pass
            self._client = None


def make_http_module(
    *,
    check_open: Callable[[], None],
    default_timeout_ms: int = DEFAULT_HTTP_TIMEOUT_MS,
    allowed_hosts: frozenset[str] | None = None,
    block_private: bool = False,
    transport: httpx.BaseTransport | None = None,
) -> _HttpModule:
    """Build the ``http`` object.

    *allowed_hosts*: parsed from ``PROBE_HTTP_ALLOWED_HOSTS``; None allows all.
    An empty set means **no** outbound HTTP is permitted from scripts.
    """
    return _HttpModule(
        check_open=check_open,
        default_timeout_ms=default_timeout_ms,
        allowed_hosts=allowed_hosts,
        block_private=block_private,
        transport=transport,
    )
