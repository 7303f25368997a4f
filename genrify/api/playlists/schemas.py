from typing import List, Optional

from pydantic import BaseModel, Field


class PlaylistMatch(BaseModel):
    id: str
    name: str
    tracks_total: int


class FindRequest(BaseModel):
    pattern: str


class FindResponse(BaseModel):
    pattern: str
    playlists: List[PlaylistMatch]


class MergeRequest(BaseModel):
    """
    Merge request body.

    Sources come from `source_ids` (ids, URIs or links) or, when that is
    empty, from the playlists whose name matches `pattern`.
    """

    name: str
    source_ids: List[str] = Field(default_factory=list)
    pattern: Optional[str] = None
    deduplicate: bool = False
    public: bool = False
    description: str = ""
    delete_sources: bool = False


class MergeResponse(BaseModel):
    new_playlist_id: str
    track_count: int
    duplicates_removed: int
    verified: bool
    missing_uris: List[str]
    sources: List[str]
    deleted_sources: List[str] = Field(default_factory=list)


class DeleteRequest(BaseModel):
    ids: List[str]


class DeleteResponse(BaseModel):
    deleted: List[str]


class AddTracksRequest(BaseModel):
    tracks: List[str]


class AddTracksResponse(BaseModel):
    playlist_id: str
    added: int
    snapshot_id: str
