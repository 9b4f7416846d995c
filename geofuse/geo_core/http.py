"""Async HTTP helper used by the provider adapters"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from .constants import DEFAULT_PROVIDER_TIMEOUT, DEFAULT_USER_AGENT
from .exceptions import ProviderError

logger = logging.getLogger(__name__)


async def fetch_json(url: str, provider: str, *,
                     headers: Optional[Dict[str, str]] = None,
                     params: Optional[Dict[str, str]] = None,
                     auth: Optional[aiohttp.BasicAuth] = None,
                     timeout: float = DEFAULT_PROVIDER_TIMEOUT,
                     session: Optional[aiohttp.ClientSession] = None) -> Any:
    """GET a JSON document, mapping every failure to a typed ProviderError.

    A session is created (and closed) per call unless one is supplied.
    Non-2xx responses raise with ``status_code`` set so callers can treat
    specific statuses (e.g. 404) differently.
    """
    request_headers = {'Accept': 'application/json', 'User-Agent': DEFAULT_USER_AGENT}
    request_headers.update(headers or {})
    client_timeout = aiohttp.ClientTimeout(total=timeout)

    owns_session = session is None
    if owns_session:
        session = aiohttp.ClientSession(timeout=client_timeout)

    try:
        async with session.get(url, headers=request_headers, params=params,
                               auth=auth, timeout=client_timeout) as response:
            if response.status in (401, 403):
                raise ProviderError(f"{provider} authentication failed (HTTP {response.status})",
                                    provider, ProviderError.AUTH, status_code=response.status)
            if response.status >= 400:
                raise ProviderError(f"{provider} API error: HTTP {response.status}",
                                    provider, ProviderError.NETWORK, status_code=response.status)
            try:
                return await response.json(content_type=None)
            except (aiohttp.ContentTypeError, ValueError) as e:
                raise ProviderError(f"{provider} returned an undecodable body",
                                    provider, ProviderError.PARSE, status_code=response.status) from e

    except ProviderError:
        raise
    except asyncio.TimeoutError as e:
        raise ProviderError(f"{provider} request timed out after {timeout}s",
                            provider, ProviderError.TIMEOUT) from e
    except aiohttp.ClientError as e:
        raise ProviderError(f"{provider} network error: {e}", provider, ProviderError.NETWORK) from e
    finally:
        if owns_session:
            await session.close()
