"""
HTTP transport for the remote game API.

This module builds and sends JSON requests with aiohttp, signs them with a
bearer token when one is supplied, applies the configured TLS policy and
timeout, and turns connection-level failures into TransportError.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from .config import ApiConfig
from .exceptions import TransportError
from .logging_config import PerformanceLogger


@dataclass(frozen=True)
class ApiReply:
    """Status and raw body of a completed HTTP exchange."""
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class ApiTransport:
    """
    Sends requests to the game API over a shared aiohttp session.

    The underlying ClientSession is created on first use and reused until
    close() is called.
    """

    def __init__(self, config: ApiConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the transport.

        Args:
            config: API configuration
            session: Optional externally managed ClientSession. It is used
                as-is and not closed by this transport.
        """
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.performance = PerformanceLogger(self.logger)

        base_url = config.base_url
        self.base_url = base_url if base_url.endswith('/') else base_url + '/'

        self._session = session
        self._owns_session = session is None

    @property
    def verifies_certificates(self) -> bool:
        """False when self-signed certificates are accepted."""
        return not self.config.allow_self_signed_certificate

    def build_url(self, path: str) -> str:
        return self.base_url + path.lstrip('/')

    def build_headers(self, token: str = "") -> Dict[str, str]:
        """Request headers. The Authorization header is omitted without a token."""
        headers = {'Accept': 'application/json'}
        if token:
            headers['Authorization'] = f"Bearer {token}"
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            if not self.verifies_certificates:
                self.logger.warning(
                    "TLS certificate verification is disabled "
                    "(allow_self_signed_certificate=true)"
                )
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(ssl=self.verifies_certificates),
                timeout=aiohttp.ClientTimeout(total=self.config.timeout)
            )
            self._owns_session = True
        return self._session

    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        token: str = ""
    ) -> ApiReply:
        """
        Send one request and read the whole response body.

        Args:
            method: HTTP method
            path: Endpoint path relative to the base URL
            payload: Optional JSON body
            token: Bearer token; empty for unauthenticated requests

        Returns:
            ApiReply: Status and body, for any HTTP status

        Raises:
            TransportError: On connection failure or timeout
        """
        url = self.build_url(path)
        session = self._get_session()

        try:
            with self.performance.time_operation(f"{method} {path}", url=url):
                async with session.request(
                    method,
                    url,
                    json=payload,
                    headers=self.build_headers(token)
                ) as response:
                    raw = await response.read()
                    # JSON bodies are UTF-8
                    return ApiReply(
                        status=response.status,
                        body=raw.decode('utf-8', errors='replace')
                    )
        except asyncio.TimeoutError as e:
            self.logger.debug(f"{method} {url} timed out after {self.config.timeout}s")
            raise TransportError("Request timed out") from e
        except aiohttp.ClientError as e:
            raise TransportError("Network error", str(e) or type(e).__name__) from e

    async def close(self) -> None:
        """Close the HTTP session if this transport created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
