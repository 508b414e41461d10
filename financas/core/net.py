from __future__ import annotations

import logging
import os
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Published Google Sheets CSVs redirect to googleusercontent.com; a leading "." matches subdomains.
DEFAULT_ALLOWED_HOSTS = frozenset(
    {
        "api.exchangerate-api.com",
        "docs.google.com",
        ".googleusercontent.com",
    }
)


class ProviderError(RuntimeError):
    """Outbound HTTP failed or was blocked."""


def network_enabled() -> bool:
    v = (os.environ.get("NETWORK_ENABLED") or "").strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def _normalize_host(entry: str) -> str:
    s = entry.strip().lower()
    if "://" in s:
        s = urllib.parse.urlparse(s).netloc
    s = s.split("/", 1)[0]
    return s.split(":", 1)[0]


def allowed_outbound_hosts() -> set[str]:
    raw = (os.environ.get("ALLOWED_OUTBOUND_HOSTS") or "").strip()
    if raw:
        hosts = {_normalize_host(h) for h in raw.split(",") if h.strip()}
        return {h for h in hosts if h}
    return set(DEFAULT_ALLOWED_HOSTS)


def host_allowed(host: str, allowed: set[str]) -> bool:
    host = (host or "").lower()
    for entry in allowed:
        if entry.startswith("."):
            if host.endswith(entry) or host == entry[1:]:
                return True
        elif host == entry:
            return True
    return False


def assert_url_allowed(url: str) -> None:
    u = urllib.parse.urlparse(url)
    if (u.scheme or "").lower() != "https":
        raise ProviderError("Blocked network request: only https:// is allowed.")
    host = (u.hostname or "").lower()
    if not host:
        raise ProviderError("Blocked network request: missing hostname.")
    if not host_allowed(host, allowed_outbound_hosts()):
        hint = " (ALLOWED_OUTBOUND_HOSTS overrides defaults)" if os.environ.get("ALLOWED_OUTBOUND_HOSTS") else ""
        raise ProviderError(f"Blocked network request: host not allowlisted ({host}){hint}.")


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    content: bytes
    content_type: Optional[str] = None

    def text(self, encoding: str = "utf-8") -> str:
        return self.content.decode(encoding, errors="replace")


class _AllowlistRedirectHandler(urllib.request.HTTPRedirectHandler):
    def redirect_request(self, req, fp, code, msg, headers, newurl):  # type: ignore[override]
        assert_url_allowed(str(newurl))
        return super().redirect_request(req, fp, code, msg, headers, newurl)


def _backoff(attempt: int, backoff_s: float) -> float:
    return min(8.0, backoff_s * (2**attempt))


def http_get(
    url: str,
    *,
    timeout_s: float = 30.0,
    max_retries: int = 2,
    backoff_s: float = 0.5,
) -> HttpResponse:
    """
    Minimal HTTP GET helper with:
      - NETWORK_ENABLED gate
      - outbound host allowlist (redirects included)
      - timeouts + limited retries on 429/5xx and connection errors
    """
    if not network_enabled():
        raise ProviderError("Network disabled; set NETWORK_ENABLED=1 to enable remote sources.")
    assert_url_allowed(url)

    host = (urllib.parse.urlparse(url).hostname or "").lower()
    attempt = 0
    last_err: Exception | None = None
    while attempt <= max_retries:
        try:
            opener = urllib.request.build_opener(_AllowlistRedirectHandler())
            req = urllib.request.Request(url, method="GET")
            with opener.open(req, timeout=timeout_s) as resp:
                status = int(getattr(resp, "status", 200))
                return HttpResponse(status_code=status, content=resp.read(), content_type=resp.headers.get("Content-Type"))
        except urllib.error.HTTPError as e:
            last_err = e
            status = int(getattr(e, "code", 0) or 0)
            if status == 429 or status >= 500:
                logger.warning("HTTP %s from %s; retrying (attempt %d)", status, host, attempt + 1)
                time.sleep(_backoff(attempt, backoff_s))
                attempt += 1
                continue
            raise ProviderError(f"HTTP error status={status} host={host}") from e
        except urllib.error.URLError as e:
            last_err = e
            logger.warning("Request to %s failed: %s; retrying (attempt %d)", host, getattr(e, "reason", e), attempt + 1)
            time.sleep(_backoff(attempt, backoff_s))
            attempt += 1
        except (TimeoutError, OSError) as e:
            last_err = e
            time.sleep(_backoff(attempt, backoff_s))
            attempt += 1

    reason = getattr(last_err, "reason", None) or last_err
    raise ProviderError(
        f"Network request failed after retries: {type(last_err).__name__ if last_err else 'unknown'}: {reason} host={host}"
    )
