import logging
from typing import Any

import httpx

from ..core.errors import ProviderTransportError
from .base import Meter, OnCall

log = logging.getLogger(__name__)

async def get_json(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    *,
    params: dict | None = None,
    headers: dict | None = None,
    on_call: OnCall | None = None,
) -> Any | None:
    """
    One GET against a provider.

    Returns parsed JSON, or None for non-2xx / non-JSON bodies (an ordinary
    "no data" answer). Network failures and timeouts raise
    ProviderTransportError. ``on_call`` fires only once a response came back.
    """
    params = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
    log.info("[%s] GET %s params=%s", provider, url, params)
    try:
        r = await client.get(url, params=params, headers=headers)
    except httpx.TimeoutException as e:
        raise ProviderTransportError(provider, "timed out") from e
    except httpx.HTTPError as e:
        raise ProviderTransportError(provider, f"network_error:{e}") from e

    if on_call is not None:
        await on_call()

    if not r.is_success:
        # keep body (truncated) for logs, not for the API response
        log.warning("[%s] HTTP %s from %s: %s", provider, r.status_code, url, r.text[:300])
        return None
    try:
        return r.json()
    except ValueError:
        log.warning("[%s] non-JSON response from %s", provider, url)
        return None

class HttpProvider:
    """
    Shared plumbing for provider adapters: credentials, base URL and a
    per-fetch AsyncClient. ``transport`` lets tests swap in httpx.MockTransport.
    """
    name = "http"
    source = "HttpProvider"
    vendor = "Http"
    meter = Meter.B
    planned_calls = 1
    requires_coordinates = False

    def __init__(self, api_key: str | None, base_url: str, timeout: float = 15,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = (api_key or "").strip() or None
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def configured(self) -> bool:
        return self.api_key is not None

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def headers(self) -> dict:
        return {"Accept": "application/json"}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
