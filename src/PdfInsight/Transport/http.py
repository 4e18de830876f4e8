"""
HTTPX Client Factory & Redirect Audit for Remote Range Reads.

- Explicit timeouts, pool limits and TLS verification from HttpClientConfig
- Automatic redirects disabled; every 3xx hop is re-validated against the
  allow-list before it is followed
- Event hooks log one ``net.request`` line per attempt
- Responses are streamed so a full-body (200) answer is only read as far as
  the requested range

Architecture:
1. build_http_client(config) → httpx.Client (follow_redirects=False)
2. open_audited_stream() yields the final non-redirect streaming response
3. Redirect targets go through the caller-supplied gate (AccessValidator)
"""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional
from urllib.parse import urljoin

import httpx

from .config.models import HttpClientConfig
from .errors import UpstreamRangeFailed

logger = logging.getLogger(__name__)

__all__ = ["build_http_client", "open_audited_stream"]

# ============================================================================
# Client Construction
# ============================================================================


def build_http_client(
    config: Optional[HttpClientConfig] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Build an HTTPX client for remote range reads.

    Args:
        config: HTTP settings (defaults used when omitted)
        transport: Optional transport override (``httpx.MockTransport`` in tests)
    """
    cfg = config or HttpClientConfig()

    timeout = httpx.Timeout(
        cfg.timeout_connect_s,
        read=cfg.timeout_read_s,
        write=cfg.timeout_write_s,
        pool=cfg.timeout_pool_s,
    )
    limits = httpx.Limits(
        max_connections=cfg.max_connections,
        max_keepalive_connections=cfg.max_keepalive_connections,
    )

    client = httpx.Client(
        transport=transport,
        timeout=timeout,
        limits=limits,
        verify=cfg.verify_tls,
        trust_env=cfg.trust_env,
        headers={
            "User-Agent": cfg.user_agent,
            "Accept": "application/pdf,*/*",
            # byte offsets must refer to the stored representation
            "Accept-Encoding": "identity",
        },
        follow_redirects=False,
    )
    client.event_hooks["request"] = [_on_request]
    client.event_hooks["response"] = [_on_response]

    logger.debug("HTTPX client created: user_agent=%s verify=%s", cfg.user_agent, cfg.verify_tls)
    return client


# ============================================================================
# Event Hooks
# ============================================================================


def _on_request(request: httpx.Request) -> None:
    request.extensions["t0_perf"] = time.perf_counter()
    request.extensions["request_id"] = os.urandom(8).hex()


def _on_response(response: httpx.Response) -> None:
    req = response.request
    t0 = req.extensions.get("t0_perf", time.perf_counter())
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    logger.debug(
        "net.request",
        extra={
            "extra_fields": {
                "method": req.method,
                "url": str(req.url),
                "host": req.url.host,
                "status": response.status_code,
                "range": req.headers.get("Range"),
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": req.extensions.get("request_id"),
            }
        },
    )


# ============================================================================
# Redirect Audit
# ============================================================================


@contextmanager
def open_audited_stream(
    client: httpx.Client,
    url: str,
    *,
    gate: Callable[[str], str],
    headers: Optional[Dict[str, str]] = None,
    max_hops: int = 5,
) -> Iterator[httpx.Response]:
    """
    Stream a GET request, following 3xx hops only after ``gate`` approves them.

    ``gate`` receives the absolute redirect target and returns the URL to
    request next; it raises to block the hop.

    Raises:
        UpstreamRangeFailed: Transport failure or too many redirect hops
        AccessError: Raised by ``gate`` for a disallowed redirect target
    """
    current = url
    for _ in range(max_hops + 1):
        try:
            with client.stream("GET", current, headers=headers) as response:
                if response.is_redirect:
                    target = urljoin(current, response.headers["location"])
                    try:
                        approved = gate(target)
                    except Exception as exc:
                        logger.error("Redirect blocked: %s (%s)", target, exc)
                        raise
                    logger.debug("Redirect %s → %s", current, approved)
                    current = approved
                    continue
                yield response
                return
        except httpx.HTTPError as exc:
            raise UpstreamRangeFailed(
                f"Request to {current} failed: {exc}", url=current, details={"error": type(exc).__name__}
            ) from exc

    raise UpstreamRangeFailed(f"Exceeded {max_hops} redirect hops", url=url)
