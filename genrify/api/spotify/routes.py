from typing import List

from fastapi import APIRouter, Depends, Query

from genrify.core import GenrifyError, log_info, log_step
from genrify.spotify import (
    SpotifyClient,
    filter_playlists_by_name,
    join_artist_names,
    normalize_playlist_id,
)

from ..deps import get_client, raise_http
from .schemas import PlaylistSummary, TrackInfo, TracksResponse, UserInfo

router = APIRouter()


@router.get("/me", response_model=UserInfo)
def get_me(client: SpotifyClient = Depends(get_client)) -> UserInfo:
    try:
        me = client.get_me()
    except GenrifyError as e:
        raise_http(e)
    return UserInfo(id=me.id, display_name=me.display_name)


@router.get("/playlists", response_model=List[PlaylistSummary])
def get_playlists(
    filter: str = Query(default="", description="Case-insensitive name substring"),
    limit: int = Query(default=0, ge=0, description="0 = no limit"),
    client: SpotifyClient = Depends(get_client),
) -> List[PlaylistSummary]:
    """
    List the current user's playlists.

    With a filter, every playlist is fetched so the filter sees all names;
    `limit` then applies to the filtered list.
    """
    log_step("Fetching Spotify playlists for current user...")
    try:
        playlists = client.list_current_user_playlists(0 if filter.strip() else limit)
    except GenrifyError as e:
        raise_http(e)

    filtered = filter_playlists_by_name(playlists, filter)
    if limit > 0:
        filtered = filtered[:limit]
    log_info(f"Spotify playlists: {len(filtered)} returned.")

    return [
        PlaylistSummary(
            id=p.id,
            name=p.name,
            owner=p.owner.display_name or p.owner.id,
            tracks_total=p.tracks.total,
            public=p.public,
        )
        for p in filtered
    ]


@router.get("/playlists/{playlist}/tracks", response_model=TracksResponse)
def get_playlist_tracks(
    playlist: str,
    limit: int = Query(default=0, ge=0),
    client: SpotifyClient = Depends(get_client),
) -> TracksResponse:
    try:
        playlist_id = normalize_playlist_id(playlist)
        tracks = client.list_playlist_tracks(playlist_id, limit)
    except GenrifyError as e:
        raise_http(e)

    infos = [
        TrackInfo(
            id=t.id,
            uri=t.uri,
            name=t.name,
            artists=join_artist_names(t.artists),
            album=t.album.name,
        )
        for t in tracks
    ]
    return TracksResponse(playlist_id=playlist_id, tracks=infos, total=len(infos))
