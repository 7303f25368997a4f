from typing import List, Optional

from pydantic import BaseModel


class UserInfo(BaseModel):
    id: str
    display_name: Optional[str] = None


class PlaylistSummary(BaseModel):
    id: str
    name: str
    owner: str
    tracks_total: int
    public: Optional[bool] = None


class TrackInfo(BaseModel):
    id: Optional[str] = None
    uri: str
    name: str
    artists: str
    album: str


class TracksResponse(BaseModel):
    playlist_id: str
    tracks: List[TrackInfo]
    total: int
