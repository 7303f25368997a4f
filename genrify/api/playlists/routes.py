from fastapi import APIRouter, Depends, HTTPException

from genrify.core import GenrifyError, MergeOptions, log_info, log_step, log_warning
from genrify.playlist import PlaylistService
from genrify.spotify import normalize_playlist_id, normalize_track_uri

from ..deps import get_playlist_service, raise_http
from .schemas import (
    AddTracksRequest,
    AddTracksResponse,
    DeleteRequest,
    DeleteResponse,
    FindRequest,
    FindResponse,
    MergeRequest,
    MergeResponse,
    PlaylistMatch,
)

router = APIRouter()


@router.post("/find", response_model=FindResponse)
def find_playlists(
    body: FindRequest,
    service: PlaylistService = Depends(get_playlist_service),
) -> FindResponse:
    try:
        matched = service.find_playlists_by_pattern(body.pattern)
    except GenrifyError as e:
        raise_http(e)

    return FindResponse(
        pattern=body.pattern.strip(),
        playlists=[
            PlaylistMatch(id=p.id, name=p.name, tracks_total=p.tracks.total)
            for p in matched
        ],
    )


@router.post("/merge", response_model=MergeResponse)
def merge_playlists(
    body: MergeRequest,
    service: PlaylistService = Depends(get_playlist_service),
) -> MergeResponse:
    """
    Merge playlists into a new one.

    Sources are deleted afterwards only when `delete_sources` is set and the
    merge was verified; an unverified merge leaves the sources untouched.
    """
    if not body.source_ids and not (body.pattern or "").strip():
        raise HTTPException(
            status_code=400,
            detail={"status": "ValidationError", "message": "source_ids or pattern is required"},
        )

    try:
        if body.source_ids:
            sources = [normalize_playlist_id(s) for s in body.source_ids if s.strip()]
        else:
            sources = [p.id for p in service.find_playlists_by_pattern(body.pattern or "")]

        log_step(f"Merging {len(sources)} playlists into '{body.name.strip()}'...")
        result = service.merge_playlists(
            sources,
            body.name,
            MergeOptions(
                deduplicate=body.deduplicate,
                public=body.public,
                description=body.description,
            ),
        )

        deleted = []
        if body.delete_sources and result.verified:
            deleted = service.delete_playlists(sources)
        elif body.delete_sources:
            log_warning("Merge not verified; source playlists were kept.")
    except GenrifyError as e:
        raise_http(e)

    return MergeResponse(
        new_playlist_id=result.new_playlist_id,
        track_count=result.track_count,
        duplicates_removed=result.duplicates_removed,
        verified=result.verified,
        missing_uris=result.missing_uris,
        sources=sources,
        deleted_sources=deleted,
    )


@router.post("/delete", response_model=DeleteResponse)
def delete_playlists(
    body: DeleteRequest,
    service: PlaylistService = Depends(get_playlist_service),
) -> DeleteResponse:
    try:
        ids = [normalize_playlist_id(i) for i in body.ids if i.strip()]
        deleted = service.delete_playlists(ids)
    except GenrifyError as e:
        raise_http(e)

    log_info(f"Deleted {len(deleted)} playlists.")
    return DeleteResponse(deleted=deleted)


@router.post("/{playlist}/tracks", response_model=AddTracksResponse)
def add_tracks(
    playlist: str,
    body: AddTracksRequest,
    service: PlaylistService = Depends(get_playlist_service),
) -> AddTracksResponse:
    try:
        playlist_id = normalize_playlist_id(playlist)
        uris = [normalize_track_uri(t) for t in body.tracks]
        snapshot_id = service.client.add_tracks_to_playlist(playlist_id, uris)
    except GenrifyError as e:
        raise_http(e)

    return AddTracksResponse(playlist_id=playlist_id, added=len(uris), snapshot_id=snapshot_id)
