"""Main FastAPI application for the HLS relay."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, StreamingResponse

from hls_relay.config import settings
from hls_relay.directory import DirectoryResolver
from hls_relay.exceptions import MissingUrlParameterError, RelayError, UpstreamFetchError
from hls_relay.m3u8_rewriter import M3U8Rewriter, playlist_base_url
from hls_relay.upstream import UpstreamFetcher

VERSION = "0.1.0"

PLAYLIST_MEDIA_TYPE = "application/vnd.apple.mpegurl"
SEGMENT_MEDIA_TYPE = "video/mp2t"

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global HTTP client for directory and upstream requests
http_client: httpx.AsyncClient | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan (startup and shutdown)."""
    global http_client

    # Startup
    logger.info("Starting HLS relay")
    http_client = httpx.AsyncClient(
        limits=httpx.Limits(
            max_keepalive_connections=settings.http_max_keepalive_connections,
            max_connections=settings.http_max_connections,
        ),
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
    )
    logger.info(f"HTTP client initialized with timeout={settings.http_timeout_seconds}s")

    yield

    # Shutdown
    logger.info("Shutting down HLS relay")
    if http_client:
        await http_client.aclose()
        logger.info("HTTP client closed")


# Initialize FastAPI app
app = FastAPI(
    title="HLS Relay",
    description="Relay that proxies HLS playlists and segments and rewrites playlists to route through itself",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> PlainTextResponse:
    """Render relay failures as plain text for the calling player."""
    return PlainTextResponse(
        content=exc.detail,
        status_code=exc.status_code,
        headers={"Access-Control-Allow-Origin": "*"},
    )


def _relay_base(request: Request) -> str:
    """
    Derive the relay's own scheme and host for rewritten links.

    HTTPS is forced unless the Host header names a local deployment, since the
    relay normally sits behind a TLS-terminating proxy.
    """
    host = request.headers.get("host") or request.url.netloc
    is_local = any(marker in host for marker in settings.local_host_markers_list)
    scheme = request.url.scheme if is_local else "https"
    return f"{scheme}://{host}"


def _resolver() -> DirectoryResolver:
    return DirectoryResolver(http_client, settings)


def _fetcher() -> UpstreamFetcher:
    return UpstreamFetcher(http_client, settings)


def _playlist_response(content: str) -> Response:
    return Response(
        content=content,
        media_type=PLAYLIST_MEDIA_TYPE,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Cache-Control": "no-cache",
        },
    )


async def _relay_playlist(request: Request, playlist_url: str) -> Response:
    """Fetch a playlist and rewrite it against its own directory and this relay."""
    base_url = playlist_base_url(playlist_url)
    playlist_text = await _fetcher().fetch_text(playlist_url)

    relay_base = _relay_base(request)
    rewritten = M3U8Rewriter(relay_base).rewrite_manifest(playlist_text, base_url)
    logger.info(
        f"[PROXY] Playlist rewritten: {len(rewritten)} chars, base_url={base_url}, relay_base={relay_base}"
    )
    return _playlist_response(rewritten)


@app.get(
    "/get-stream/{channel_id}",
    summary="Master playlist",
    description="Resolve a channel through the directory and return its rewritten playlist",
)
async def get_stream(request: Request, channel_id: str) -> Response:
    """
    Relay the master playlist of a channel.

    This endpoint:
    1. Resolves the channel id to an upstream URL through the directory
    2. Fetches the playlist with the impersonated player headers
    3. Rewrites every reference to route through this relay
    """
    logger.info(
        f"[STREAM] Request: channel_id={channel_id}, "
        f"client_ip={request.client.host if request.client else 'unknown'}"
    )

    upstream_url = await _resolver().resolve(channel_id)
    return await _relay_playlist(request, upstream_url)


@app.get(
    "/proxy-m3u8",
    summary="Nested playlist",
    description="Fetch a nested playlist and rewrite it to route through this relay",
)
async def proxy_m3u8(
    request: Request,
    url: Optional[str] = Query(None, description="Percent-encoded absolute playlist URL"),
) -> Response:
    """Relay a nested playlist named by the url query parameter."""
    if not url:
        raise MissingUrlParameterError()

    logger.info(f"[M3U8] Request: url={url}")

    try:
        return await _relay_playlist(request, url)
    except UpstreamFetchError as e:
        raise UpstreamFetchError(e.url, e.reason, detail="Error fetching M3U8") from e


@app.get(
    "/proxy-segment",
    summary="Media segment",
    description="Stream a media segment through this relay without buffering",
)
async def proxy_segment(
    url: Optional[str] = Query(None, description="Percent-encoded absolute segment URL"),
) -> StreamingResponse:
    """Relay a segment, forwarding bytes to the caller as they arrive."""
    if not url:
        raise MissingUrlParameterError()

    logger.info(f"[SEGMENT] Request: url={url}")

    try:
        upstream = await _fetcher().fetch_stream(url)
    except UpstreamFetchError as e:
        raise UpstreamFetchError(e.url, e.reason, detail="Error fetching segment") from e

    return StreamingResponse(
        upstream.iter_bytes(),
        status_code=status.HTTP_200_OK,
        media_type=SEGMENT_MEDIA_TYPE,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Cache-Control": "public, max-age=3600",
        },
    )


@app.get(
    "/health",
    summary="Health check",
    description="Health check endpoint for the hosting platform",
)
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": VERSION,
    }


@app.get("/", include_in_schema=False)
async def root(request: Request) -> dict:
    """Root endpoint describing the relay surface."""
    relay_base = _relay_base(request)
    return {
        "service": "HLS Relay",
        "version": VERSION,
        "docs": "/docs",
        "endpoints": {
            "master_playlist": f"{relay_base}/get-stream/{{id}}",
            "nested_playlist": f"{relay_base}/proxy-m3u8?url={{encoded_url}}",
            "segment": f"{relay_base}/proxy-segment?url={{encoded_url}}",
        },
    }


def run() -> None:
    """Start the relay with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
