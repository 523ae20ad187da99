"""
HTTP helpers: JSON GET over requests, exposed to the async pipeline.

All upstream calls (InfoDengue, IBGE) go through ``get_json``. Any failure,
a transport error, a non-2xx status or a body that is not JSON, is raised as
``FetchError`` so callers only handle one exception type.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import requests

from vigisaude.data.errors import FetchError
from vigisaude.utils.config import HTTP_TIMEOUT

log = logging.getLogger(__name__)

# (url, params) -> decoded JSON
Transport = Callable[[str, Optional[Dict[str, Any]]], Awaitable[Any]]


def get_json(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    *,
    timeout: float = HTTP_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> Any:
    """Fetch ``url`` and return the decoded JSON body.

    Args:
        url: Absolute URL.
        params: Optional query-string parameters.
        timeout: HTTP timeout in seconds.
        session: Optional ``requests.Session`` (connection reuse).

    Returns:
        The decoded JSON payload (list or dict).

    Raises:
        FetchError: If the request fails, returns a non-2xx status or the body
            cannot be decoded as JSON.
    """
    http = session or requests
    try:
        resp = http.get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        raise FetchError(f"Falha de conexão: {exc}", url=url) from exc

    if not resp.ok:
        raise FetchError(f"HTTP {resp.status_code} em {url}", url=url, status=resp.status_code)

    try:
        return resp.json()
    except ValueError as exc:
        raise FetchError(f"Resposta inválida (não é JSON) em {url}", url=url, status=resp.status_code) from exc


class HttpTransport:
    """Async transport: runs the blocking ``get_json`` off the event loop.

    The event loop stays the single coordinator; the worker thread only waits
    on the socket.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = HTTP_TIMEOUT):
        self.session = session or requests.Session()
        self.timeout = timeout

    async def __call__(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        log.debug("GET %s params=%s", url, params)
        return await asyncio.to_thread(get_json, url, params, timeout=self.timeout, session=self.session)

    def close(self) -> None:
        self.session.close()


__all__ = ["Transport", "get_json", "HttpTransport"]
