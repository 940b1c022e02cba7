"""Construction of the process-wide HTTP client.

The CLI builds one ``httpx.AsyncClient`` and hands it to the GitHub client and
every registry-backed discoverer, so they share a connection pool without any
module-level global.
"""

import httpx

USER_AGENT = "thanks-stars"
DEFAULT_TIMEOUT_SECONDS = 30.0


def build_http_client(timeout: float = DEFAULT_TIMEOUT_SECONDS, **kwargs) -> httpx.AsyncClient:
    """Create the shared client.

    ``timeout`` bounds every connect/read/write/pool wait, so no remote call
    can block a run indefinitely. Extra kwargs go straight to httpx (tests pass
    ``transport=httpx.MockTransport(...)``).
    """
    headers = {"User-Agent": USER_AGENT}
    headers.update(kwargs.pop("headers", {}))
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        headers=headers,
        follow_redirects=True,
        **kwargs,
    )
