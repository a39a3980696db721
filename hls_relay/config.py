"""Configuration management for the relay server."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Channel Directory Configuration
    directory_url: str = "https://raw.githubusercontent.com/devmujahidul/Auto_Fetch/refs/heads/main/output.json"

    # Upstream Client Identity
    user_agent: str = "VLC/3.0.18 LibVLC/3.0.18"
    trusted_origin: str = "https://web.aynaott.com"
    segment_origin_headers: bool = True

    # Relay Base Configuration
    local_host_markers: str = "localhost,127.0.0.1,[::1]"  # Comma-separated list

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"

    # HTTP Client Configuration
    http_timeout_seconds: float = 30.0
    http_max_connections: int = 100
    http_max_keepalive_connections: int = 20
    segment_chunk_size: int = 65536

    @property
    def local_host_markers_list(self) -> list[str]:
        """Parse local host markers from comma-separated string."""
        if not self.local_host_markers:
            return []
        return [m.strip() for m in self.local_host_markers.split(",") if m.strip()]

    def client_headers(self, include_origin: bool = True) -> dict[str, str]:
        """
        Build the header set presented to upstream origins.

        The upstream authorizes by client signature, so every outbound request
        looks like the configured media player. Origin/Referer name the trusted
        front-end domain.
        """
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "*/*",
            "Connection": "keep-alive",
        }
        if include_origin and self.trusted_origin:
            origin = self.trusted_origin.rstrip("/")
            headers["Origin"] = origin
            headers["Referer"] = f"{origin}/"
        return headers


# Global settings instance
settings = Settings()
