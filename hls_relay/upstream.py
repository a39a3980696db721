"""Outbound fetches against upstream HLS origins."""

import logging
from typing import AsyncIterator

import httpx

from hls_relay.config import Settings
from hls_relay.exceptions import UpstreamFetchError, UpstreamForbiddenError

logger = logging.getLogger(__name__)


class UpstreamStream:
    """An open upstream response whose body has not been read yet."""

    def __init__(self, response: httpx.Response, chunk_size: int):
        self.response = response
        self.chunk_size = chunk_size

    @property
    def status_code(self) -> int:
        return self.response.status_code

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yield body chunks as they arrive; the response is closed when iteration stops."""
        try:
            async for chunk in self.response.aiter_bytes(chunk_size=self.chunk_size):
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        await self.response.aclose()


class UpstreamFetcher:
    """Performs GET requests against upstream origins while impersonating a media player."""

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings):
        self.http_client = http_client
        self.settings = settings

    def _check_status(self, response: httpx.Response, url: str) -> None:
        """
        Map upstream status codes onto relay errors.

        Raises:
            UpstreamForbiddenError: For HTTP 403
            UpstreamFetchError: For any other non-2xx status
        """
        if response.status_code == 403:
            logger.error(f"[UPSTREAM] Access denied: status=403, url={url}")
            raise UpstreamForbiddenError(url)

        if not response.is_success:
            logger.error(f"[UPSTREAM] Upstream error: status={response.status_code}, url={url}")
            raise UpstreamFetchError(url, reason=f"HTTP {response.status_code}")

    async def fetch_text(self, url: str) -> str:
        """
        Fetch a playlist and return its body as text.

        Raises:
            UpstreamForbiddenError: If the origin answers 403
            UpstreamFetchError: On any other failure
        """
        headers = self.settings.client_headers(include_origin=True)
        logger.info(f"[UPSTREAM] Fetching playlist: {url}")

        try:
            response = await self.http_client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"[UPSTREAM] Transport error fetching {url}: {e!r}")
            raise UpstreamFetchError(url, reason=str(e)) from e

        self._check_status(response, url)

        text = response.text
        logger.info(f"[UPSTREAM] Playlist fetched: {len(text)} chars, url={url}")
        logger.debug(f"[UPSTREAM] Playlist preview (first 200 chars): {text[:200]}")
        return text

    async def fetch_stream(self, url: str) -> UpstreamStream:
        """
        Open a segment for streaming without reading its body.

        The caller must either exhaust UpstreamStream.iter_bytes() or call aclose().

        Raises:
            UpstreamForbiddenError: If the origin answers 403
            UpstreamFetchError: On any other failure
        """
        headers = self.settings.client_headers(include_origin=self.settings.segment_origin_headers)
        logger.info(f"[UPSTREAM] Opening segment stream: {url}")

        try:
            response = await self.http_client.send(
                self.http_client.build_request("GET", url, headers=headers),
                stream=True,
            )
        except httpx.HTTPError as e:
            logger.error(f"[UPSTREAM] Transport error opening {url}: {e!r}")
            raise UpstreamFetchError(url, reason=str(e)) from e

        try:
            self._check_status(response, url)
        except Exception:
            await response.aclose()
            raise

        logger.info(
            f"[UPSTREAM] Segment stream open: status={response.status_code}, "
            f"content_length={response.headers.get('Content-Length')}, url={url}"
        )
        return UpstreamStream(response, chunk_size=self.settings.segment_chunk_size)
