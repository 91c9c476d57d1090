from __future__ import annotations

import asyncio
import logging
import ssl
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Dict, Mapping, Optional, Protocol

import aiohttp

from .config import ClientConfiguration
from .errors import TransportFailure

logger = logging.getLogger(__name__)


class TransportResponse(Protocol):
    status: int

    async def read(self) -> bytes:
        ...


class Transport(Protocol):
    """
    Sends one HTTP request to a broker.

    `send` is an async context manager: the response body is released when the
    block exits, whichever way it exits.
    """

    def send(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str],
        body: Optional[bytes],
        headers: Mapping[str, str],
    ) -> AsyncContextManager[TransportResponse]:
        ...


class _AiohttpResponse:
    def __init__(self, resp: aiohttp.ClientResponse) -> None:
        self._resp = resp
        self.status = int(resp.status)

    async def read(self) -> bytes:
        return await self._resp.read()


async def _drain(resp: aiohttp.ClientResponse) -> None:
    try:
        await resp.read()
    except (aiohttp.ClientError, asyncio.TimeoutError):
        # Body can't be drained; drop the connection instead of returning it to the pool.
        logger.debug("osb.response drain failed url=%s; closing connection", resp.url)
        resp.close()


def _ssl_context(config: ClientConfiguration) -> Any:
    if config.insecure:
        return False
    if config.ca_file:
        return ssl.create_default_context(cafile=config.ca_file)
    return None


class AiohttpTransport:
    """
    aiohttp transport.

    With a caller-owned `session` every request shares its connection pool;
    without one, a session is opened and closed per request.
    """

    def __init__(self, config: ClientConfiguration, session: Optional[aiohttp.ClientSession] = None) -> None:
        self.config = config
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_s)
        self._auth: Optional[aiohttp.BasicAuth] = None
        if config.username is not None and config.password is not None:
            self._auth = aiohttp.BasicAuth(config.username, config.password)
        self._ssl = _ssl_context(config)
        self._log_level = logging.INFO if config.verbose else logging.DEBUG

    def _headers(self, headers: Mapping[str, str], body: Optional[bytes]) -> Dict[str, str]:
        h: Dict[str, str] = dict(headers)
        if self.config.bearer_token:
            h["Authorization"] = f"Bearer {self.config.bearer_token}"
        if body is not None:
            h["Content-Type"] = "application/json"
        return h

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session is not None:
            yield self._session
            return
        async with aiohttp.ClientSession(timeout=self._timeout) as session:
            yield session

    @asynccontextmanager
    async def send(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, str],
        body: Optional[bytes],
        headers: Mapping[str, str],
    ) -> AsyncIterator[TransportResponse]:
        kwargs: Dict[str, Any] = {
            "params": dict(params),
            "headers": self._headers(headers, body),
            "timeout": self._timeout,
        }
        if body is not None:
            kwargs["data"] = body
        if self._auth is not None:
            kwargs["auth"] = self._auth
        if self._ssl is not None:
            kwargs["ssl"] = self._ssl

        logger.log(self._log_level, "osb.request broker=%s method=%s url=%s params=%s", self.config.name, method, url, dict(params))
        try:
            async with self._session_scope() as session:
                async with session.request(method, url, **kwargs) as resp:
                    logger.log(self._log_level, "osb.response broker=%s method=%s url=%s status=%s", self.config.name, method, url, resp.status)
                    try:
                        yield _AiohttpResponse(resp)
                    finally:
                        await _drain(resp)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportFailure(f"{method} {url}: {e or type(e).__name__}") from e
