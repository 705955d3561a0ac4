"""
Handles the low-level retrieval of single repository files over HTTP, with proxy
routing, a single redirect hop and removal of partial files on every failure.
"""

import asyncio
import logging
import os
from contextlib import suppress
from pathlib import Path
from urllib.parse import urljoin

import aiofiles
import aiohttp
from aiohttp_socks import ProxyConnector

from mvnfetch.exceptions import (
    FetchError,
    HTTPStatusError,
    NotFoundError,
    RedirectError,
    TransportError,
)
from mvnfetch.models.config import FetchConfig

log = logging.getLogger(__name__)

REDIRECT_STATUSES = (301, 302)
MAX_REDIRECTS = 1
CHUNK_SIZE = 65536  # 64 KB


def discard_file(path: Path) -> None:
    """Deletes a possibly partial file. Errors from the delete itself are ignored."""
    with suppress(OSError):
        os.remove(path)


def create_socks_connector(proxy_url: str, **kwargs) -> ProxyConnector:
    """Builds a SOCKS connector; ``socks5h://`` resolves host names on the proxy."""
    if proxy_url.startswith("socks5h://"):
        proxy_url = "socks5://" + proxy_url[len("socks5h://") :]
        kwargs["rdns"] = True
    return ProxyConnector.from_url(proxy_url, **kwargs)


class ArtifactFetcher:
    """
    Retrieves one remote file to one local path.

    A SOCKS proxy takes precedence over an HTTP proxy. Exactly one 301/302 hop is
    followed; a second redirect fails with RedirectError instead of looping.
    """

    def __init__(self, config: FetchConfig):
        self.config = config
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

        proxy = config.active_proxy
        self._socks_proxy = proxy[1] if proxy and proxy[0] == "socks" else None
        self._http_proxy = proxy[1] if proxy and proxy[0] == "http" else None

    def _create_connector(self) -> aiohttp.BaseConnector:
        # Each coordinate fetches its artifact and descriptor side by side.
        limit = self.config.max_workers * 2
        if self._socks_proxy:
            return create_socks_connector(
                self._socks_proxy, limit=limit, limit_per_host=limit
            )
        return aiohttp.TCPConnector(
            limit=limit,
            limit_per_host=limit,
            ttl_dns_cache=600,
            enable_cleanup_closed=True,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Gets or lazily creates the session shared by every fetch of this instance."""
        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(
                    connector=self._create_connector(),
                    timeout=aiohttp.ClientTimeout(
                        total=None,
                        sock_connect=self.config.request_timeout,
                        sock_read=self.config.request_timeout,
                    ),
                    headers={
                        "User-Agent": self.config.user_agent,
                        "Accept": "*/*",
                    },
                )
                if self._socks_proxy:
                    log.debug(f"Routing requests through SOCKS proxy {self._socks_proxy}")
                elif self._http_proxy:
                    log.debug(f"Routing requests through HTTP proxy {self._http_proxy}")
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
            self._session = None

    async def __aenter__(self) -> "ArtifactFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch(self, url: str, destination: Path) -> int:
        """
        Downloads ``url`` into ``destination``.

        Returns:
            The number of bytes written, once the file is fully written and closed.

        Raises:
            NotFoundError: The repository answered 404.
            HTTPStatusError: Any other terminal status than 200.
            RedirectError: A redirect without Location, or a second redirect.
            TransportError: Connection failure, timeout or local write error.
        """
        session = await self._get_session()
        try:
            return await self._fetch_following_redirect(session, url, destination)
        except FetchError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            discard_file(destination)
            reason = str(e) or type(e).__name__
            raise TransportError(f"Transport failure: {reason}", url) from e
        except BaseException:
            discard_file(destination)
            raise

    async def _fetch_following_redirect(
        self, session: aiohttp.ClientSession, url: str, destination: Path
    ) -> int:
        current_url = url
        for hop in range(MAX_REDIRECTS + 1):
            async with session.get(
                current_url, allow_redirects=False, proxy=self._http_proxy
            ) as response:
                if response.status not in REDIRECT_STATUSES:
                    return await self._write_body(response, current_url, destination)

                discard_file(destination)
                if hop == MAX_REDIRECTS:
                    raise RedirectError(
                        f"Redirect chain not supported (HTTP {response.status} "
                        f"after a redirect)",
                        current_url,
                        response.status,
                    )
                location = response.headers.get("Location")
                if not location:
                    raise RedirectError(
                        f"HTTP {response.status} without a Location header",
                        current_url,
                        response.status,
                    )
                next_url = urljoin(str(response.url), location)

            log.debug(f"Redirected: {current_url} -> {next_url}")
            current_url = next_url

        raise RedirectError("Redirect limit exceeded", current_url)

    async def _write_body(
        self, response: aiohttp.ClientResponse, url: str, destination: Path
    ) -> int:
        if response.status == 404:
            discard_file(destination)
            raise NotFoundError(f"Not found: {url}", url, 404)
        if response.status != 200:
            discard_file(destination)
            raise HTTPStatusError(
                f"HTTP {response.status} for {url}", url, response.status
            )

        await asyncio.to_thread(destination.parent.mkdir, parents=True, exist_ok=True)
        written = 0
        async with aiofiles.open(destination, "wb") as f:
            async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                await f.write(chunk)
                written += len(chunk)
        return written

    async def probe(self, url: str) -> int:
        """Issues a GET and returns the final status code without keeping the body."""
        session = await self._get_session()
        async with session.get(url, proxy=self._http_proxy) as response:
            return response.status
