"""HLS M3U8 playlist rewriter that routes nested references through the relay."""

from urllib.parse import quote, urljoin

# Characters left unescaped by URI-component encoding
COMPONENT_SAFE = "!~*'()"


def encode_component(value: str) -> str:
    """Percent-encode every reserved character of a URL so it fits in a query value."""
    return quote(value, safe=COMPONENT_SAFE)


def playlist_base_url(url: str) -> str:
    """Return the directory of a playlist URL: everything up to and including the last '/'."""
    return url[: url.rfind("/") + 1]


class M3U8Rewriter:
    """Rewrites M3U8 playlists so playlists and segments are fetched through the relay."""

    PLAYLIST_MARKER = ".m3u8"
    SEGMENT_MARKER = ".ts"

    def __init__(self, relay_base: str):
        """
        Initialize the rewriter.

        Args:
            relay_base: Scheme and host of the relay (e.g., "https://relay.example")
        """
        self.relay_base = relay_base.rstrip("/")

    def rewrite_manifest(self, content: str, base_url: str) -> str:
        """
        Rewrite every reference line in an M3U8 playlist.

        Args:
            content: Original M3U8 playlist content
            base_url: Base URL for resolving relative references

        Returns:
            Rewritten playlist with exactly as many lines as the input
        """
        lines = content.split("\n")
        return "\n".join(self._rewrite_line(line, base_url) for line in lines)

    def _rewrite_line(self, line: str, base_url: str) -> str:
        """
        Rewrite a single line from the playlist.

        Directive, comment and blank lines are returned verbatim.
        """
        reference = line.strip()

        if not reference or reference.startswith("#"):
            return line

        try:
            absolute_url = urljoin(base_url, reference)
        except ValueError:
            # Malformed reference (e.g. broken IPv6 host), leave it alone
            return line

        if self.PLAYLIST_MARKER in reference:
            return self.proxy_url("proxy-m3u8", absolute_url)

        if self.SEGMENT_MARKER in reference:
            return self.proxy_url("proxy-segment", absolute_url)

        return absolute_url

    def proxy_url(self, endpoint: str, absolute_url: str) -> str:
        """Build a relay URL that proxies absolute_url through the given endpoint."""
        return f"{self.relay_base}/{endpoint}?url={encode_component(absolute_url)}"


def rewrite_playlist(content: str, base_url: str, relay_base: str) -> str:
    """Rewrite a playlist for the given relay; see M3U8Rewriter.rewrite_manifest."""
    return M3U8Rewriter(relay_base).rewrite_manifest(content, base_url)
