from dataclasses import dataclass, field
from pydantic import AliasChoices, BaseModel, Field, ValidationError
from typing import Any, List, Optional, Type, TypeVar

from syncroom.errors import InvalidRequest
from syncroom.models.room import ChatMessage, PlaybackStatus, Song

# Broadcast events
MEMBERS_CHANGED = "membersChanged"
HOST_CHANGED = "hostChanged"
USER_JOINED = "userJoined"
USER_LEFT = "userLeft"
SONG_CHANGED = "songChanged"
PLAYLIST_UPDATED = "playlistUpdated"
PLAYBACK_UPDATE = "playbackUpdate"
NEW_CHAT = "newChat"


@dataclass
class Notification:
    event: str
    payload: Any
    exclude: Optional[str] = None  # connection that must not receive it


@dataclass
class Outcome:
    result: Any = None
    notifications: List[Notification] = field(default_factory=list)


def dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


class RoomRequest(BaseModel):
    room_id: str = Field(min_length=1, validation_alias=AliasChoices("roomId", "room_id"))


class JoinRequest(RoomRequest):
    username: str = Field(min_length=1)


class ChatRequest(RoomRequest):
    message: ChatMessage = Field(validation_alias=AliasChoices("msg", "message"))


class SongRequest(RoomRequest):
    song: Song


class PlayRequest(SongRequest):
    start_offset: float = Field(
        default=0.0, ge=0, validation_alias=AliasChoices("startOffset", "start_offset")
    )


class PlaybackRequest(RoomRequest):
    status: PlaybackStatus
    current_time: float = Field(ge=0, validation_alias=AliasChoices("currentTime", "current_time"))


R = TypeVar("R", bound=BaseModel)


def parse_request(model: Type[R], data: Any) -> R:
    """Validate an inbound payload, raising InvalidRequest on any problem."""
    if not isinstance(data, dict):
        raise InvalidRequest("Request payload must be an object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise InvalidRequest(f"Invalid or missing fields: {', '.join(fields)}") from e
