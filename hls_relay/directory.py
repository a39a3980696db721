"""Channel directory lookup."""

import logging

import httpx
from pydantic import ValidationError

from hls_relay.config import Settings
from hls_relay.exceptions import ChannelNotFoundError, UpstreamFetchError
from hls_relay.models import ChannelDirectory

logger = logging.getLogger(__name__)


class DirectoryResolver:
    """Maps channel ids to upstream playlist URLs using the channel directory service."""

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings):
        self.http_client = http_client
        self.settings = settings

    async def fetch_directory(self) -> ChannelDirectory:
        """
        Fetch and parse the directory document.

        Raises:
            UpstreamFetchError: On transport errors, non-2xx responses or malformed JSON
        """
        url = self.settings.directory_url
        logger.info(f"[DIRECTORY] Fetching channel directory: {url}")

        try:
            response = await self.http_client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"[DIRECTORY] Transport error fetching directory: {e!r}")
            raise UpstreamFetchError(url, reason=str(e)) from e

        if not response.is_success:
            logger.error(f"[DIRECTORY] Directory returned status={response.status_code}, url={url}")
            raise UpstreamFetchError(url, reason=f"HTTP {response.status_code}")

        try:
            directory = ChannelDirectory.model_validate_json(response.content)
        except ValidationError as e:
            logger.error(f"[DIRECTORY] Malformed directory document: {e.error_count()} errors")
            raise UpstreamFetchError(url, reason="malformed directory document") from e

        logger.info(f"[DIRECTORY] Directory loaded: {len(directory.channels)} channels")
        return directory

    async def resolve(self, channel_id: str) -> str:
        """
        Resolve a channel id to its upstream playlist URL.

        The directory is fetched fresh on every call.

        Raises:
            ChannelNotFoundError: If no record has this id
            UpstreamFetchError: If the directory cannot be fetched
        """
        directory = await self.fetch_directory()
        channel = directory.find(channel_id)

        if channel is None:
            logger.warning(f"[DIRECTORY] Channel not found: {channel_id}")
            raise ChannelNotFoundError(channel_id)

        logger.info(f"[DIRECTORY] Resolved channel {channel_id} -> {channel.url}")
        return channel.url
