from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class User(BaseModel):
    id: str = ""
    display_name: Optional[str] = None


class PlaylistTracksInfo(BaseModel):
    total: int = 0


class SimplifiedPlaylist(BaseModel):
    id: str
    name: str = ""
    description: Optional[str] = None
    public: Optional[bool] = None
    collaborative: bool = False
    owner: User = Field(default_factory=User)
    tracks: PlaylistTracksInfo = Field(default_factory=PlaylistTracksInfo)


class Artist(BaseModel):
    id: Optional[str] = None
    name: str = ""


class Album(BaseModel):
    id: Optional[str] = None
    name: str = ""


class FullTrack(BaseModel):
    id: Optional[str] = None
    name: str = ""
    uri: str = ""
    artists: List[Artist] = Field(default_factory=list)
    album: Album = Field(default_factory=Album)


class PlaylistTrackItem(BaseModel):
    """One entry of /playlists/{id}/tracks. `track` is null for removed or local items."""

    track: Optional[FullTrack] = None


class Page(BaseModel, Generic[T]):
    """
    Spotify paging envelope.

    `next` is the URL of the following page or None on the last one; the
    collector only uses it as a continuation flag and drives offset itself.
    """

    items: List[T] = Field(default_factory=list)
    next: Optional[str] = None
    previous: Optional[str] = None
    limit: int = 0
    offset: int = 0
    total: int = 0
    href: Optional[str] = None


class Token(BaseModel):
    """
    OAuth token as persisted by the token store.

    - expires_at : absolute expiry (UTC)
    - refresh_token : may be absent; refresh responses that omit it keep the old one
    """

    access_token: str = ""
    token_type: str = "Bearer"
    scope: Optional[str] = None
    expires_at: datetime
    refresh_token: Optional[str] = None

    def expired(self, leeway: float = 60.0) -> bool:
        if not self.access_token:
            return True
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        remaining = expires_at - datetime.now(timezone.utc)
        return remaining <= timedelta(seconds=leeway)

    @classmethod
    def from_token_response(
        cls,
        payload: Dict[str, Any],
        previous_refresh_token: Optional[str] = None,
    ) -> "Token":
        expires_in = int(payload.get("expires_in") or 0)
        return cls(
            access_token=payload.get("access_token") or "",
            token_type=payload.get("token_type") or "Bearer",
            scope=payload.get("scope"),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            refresh_token=payload.get("refresh_token") or previous_refresh_token,
        )


@dataclass
class PlaylistRef:
    """Lightweight handle used by bulk operations; `name` is display-only."""

    id: str
    name: Optional[str] = None


@dataclass
class MergeOptions:
    deduplicate: bool = False
    public: bool = False
    description: str = ""


@dataclass
class MergeResult:
    """
    Outcome of a merge.

    verified=False is not an error: the playlist exists and tracks were
    added, but the remote store did not show every expected URI after the
    verification retries. The absent URIs are listed in missing_uris.
    """

    new_playlist_id: str
    track_count: int
    duplicates_removed: int
    verified: bool
    missing_uris: List[str] = field(default_factory=list)
