from datetime import datetime
from enum import Enum
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional


class PlaybackStatus(str, Enum):
    PLAYING = "playing"
    PAUSED = "paused"


class Song(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    name: str
    artist: str = Field(
        default="Unknown Artist",
        validation_alias=AliasChoices("artist", "primaryArtists", "primary_artists"),
    )
    # Catalog entries list every encoding, lowest quality first
    stream_urls: List[str] = Field(
        min_length=1,
        validation_alias=AliasChoices("streamUrls", "stream_urls", "downloadUrl"),
        serialization_alias="streamUrls",
    )
    duration: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if isinstance(value, int) else value

    @field_validator("artist", mode="before")
    @classmethod
    def _blank_artist(cls, value):
        return value or "Unknown Artist"

    @field_validator("stream_urls", mode="before")
    @classmethod
    def _flatten_urls(cls, value):
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [v.get("url") if isinstance(v, dict) else v for v in value]
        return value


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    author: str = Field(
        min_length=1,
        validation_alias=AliasChoices("user", "author"),
        serialization_alias="user",
    )
    text: str = Field(min_length=1)
    time: Optional[datetime] = None  # stamped with the room clock when sent

    @field_validator("text", mode="before")
    @classmethod
    def _strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class Room(BaseModel):
    id: str
    playlist: List[Song] = []
    current_index: Optional[int] = None
    current_song: Optional[Song] = None
    status: PlaybackStatus = PlaybackStatus.PAUSED
    clock_anchor: Optional[float] = None  # set iff playing
    stored_elapsed: float = 0.0  # authoritative only while paused
    host_id: Optional[str] = None
    members: Dict[str, str] = {}  # connection id -> username, join order
    chat_log: List[ChatMessage] = []
    created_at: float

    def find_song(self, song_id: str) -> int:
        for i, s in enumerate(self.playlist):
            if s.id == song_id:
                return i
        return -1

    @property
    def usernames(self) -> List[str]:
        return list(self.members.values())
