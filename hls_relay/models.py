"""Data models for the relay server."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Channel(BaseModel):
    """A channel record published by the directory service."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Opaque channel identifier")
    url: str = Field(..., description="Absolute upstream playlist URL")


class ChannelDirectory(BaseModel):
    """The directory document: a list of channel records."""

    model_config = ConfigDict(extra="ignore")

    channels: list[Channel] = Field(default_factory=list)

    def find(self, channel_id: str) -> Optional[Channel]:
        """Return the first record whose id matches exactly, if any."""
        for channel in self.channels:
            if channel.id == channel_id:
                return channel
        return None
