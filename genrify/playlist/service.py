"""High-level playlist operations built on SpotifyClient.

Each operation issues its remote calls one after another (never
concurrently) to stay under Spotify's rate limits and keep error
attribution simple.

merge_playlists() runs through these stages:

    collect tracks -> deduplicate (optional) -> create playlist
        -> add tracks -> verify -> done

Nothing remote is written before "create playlist". After it, a failure in
any later stage deletes the new playlist again (best effort) before the
error is raised as MergeFailed. A verification shortfall is reported in the
result (verified=False) and does not roll back: the tracks were accepted by
Spotify and the store is only eventually consistent.
"""

import re
import threading
import time
from typing import Callable, List, Optional, Sequence, Tuple, Union

from genrify.config import VERIFY_ATTEMPTS, VERIFY_DELAY_SECONDS
from genrify.core import (
    Cancelled,
    HttpStatusError,
    InvalidPattern,
    MergeFailed,
    MergeOptions,
    MergeResult,
    NoMatches,
    PermissionDenied,
    PlaylistDeleteFailed,
    PlaylistRef,
    SimplifiedPlaylist,
    ValidationError,
    log_info,
    log_step,
    log_success,
    log_warning,
)
from genrify.spotify import SpotifyClient

ProgressCallback = Callable[[str], None]


def deduplicate_uris(uris: Sequence[str]) -> Tuple[List[str], int]:
    """
    Remove duplicate URIs, first occurrence wins.

    Values are trimmed; blank values are dropped and do not count as
    duplicates. Returns (kept, duplicates_removed).
    """
    seen = set()
    kept: List[str] = []
    duplicates = 0
    for uri in uris:
        value = (uri or "").strip()
        if not value:
            continue
        if value in seen:
            duplicates += 1
            continue
        seen.add(value)
        kept.append(value)
    return kept, duplicates


class PlaylistService:
    def __init__(
        self,
        client: SpotifyClient,
        sleep: Callable[[float], None] = time.sleep,
        verify_attempts: int = VERIFY_ATTEMPTS,
        verify_delay: float = VERIFY_DELAY_SECONDS,
    ) -> None:
        self.client = client
        self.sleep = sleep
        self.verify_attempts = verify_attempts
        self.verify_delay = verify_delay

    def find_playlists_by_pattern(self, pattern: str) -> List[SimplifiedPlaylist]:
        """Playlists of the current user whose name matches `pattern` (re.search, case-sensitive)."""
        pattern = (pattern or "").strip()
        if not pattern:
            raise ValidationError("pattern is required")

        try:
            regex = re.compile(pattern)
        except re.error as e:
            raise InvalidPattern(
                f"invalid pattern: {e}", details={"pattern": pattern}
            ) from e

        playlists = self.client.list_current_user_playlists(0)
        matched = [p for p in playlists if regex.search(p.name)]
        if not matched:
            raise NoMatches(pattern)

        log_info(f"{len(matched)}/{len(playlists)} playlists match {pattern!r}.")
        return matched

    def merge_playlists(
        self,
        source_ids: Sequence[str],
        target_name: str,
        options: Optional[MergeOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> MergeResult:
        """
        Create `target_name` holding the tracks of every source playlist, in order.

        `cancel_event` is honoured until the target playlist is created;
        from then on the merge runs to completion or rollback.
        """
        opts = options or MergeOptions()

        target_name = (target_name or "").strip()
        if not target_name:
            raise ValidationError("target name is required")
        sources = [s.strip() for s in source_ids if s and s.strip()]
        if not sources:
            raise ValidationError("at least one source playlist is required")

        def progress(message: str) -> None:
            log_step(message)
            if on_progress:
                on_progress(message)

        def check_cancelled() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise Cancelled("merge cancelled before the playlist was created")

        # 1) Collect every source first so a bad source fails before anything is created
        progress("Collecting tracks from source playlists...")
        uris: List[str] = []
        for source_id in sources:
            check_cancelled()
            try:
                tracks = self.client.list_playlist_tracks(source_id, 0)
            except Exception as e:
                raise MergeFailed("collect tracks", e) from e
            uris.extend(t.uri for t in tracks if t.uri)

        # 2) Deduplicate
        duplicates_removed = 0
        if opts.deduplicate:
            progress("Deduplicating tracks...")
            uris, duplicates_removed = deduplicate_uris(uris)

        # 3) Create target playlist
        check_cancelled()
        progress("Creating target playlist...")
        try:
            created = self.client.create_playlist(target_name, opts.description, opts.public)
        except Exception as e:
            raise MergeFailed("create playlist", e) from e
        playlist_id = created.id

        # 4) Add tracks
        if uris:
            progress(f"Adding {len(uris)} tracks...")
            try:
                self.client.add_tracks_to_playlist(playlist_id, uris)
            except Exception as e:
                self._rollback(playlist_id)
                raise MergeFailed("add tracks", e, rolled_back_playlist_id=playlist_id) from e

        # 5) Verify
        progress("Verifying playlist contents...")
        try:
            verified, missing = self.verify_playlist_contents(playlist_id, uris)
        except Exception as e:
            self._rollback(playlist_id)
            raise MergeFailed("verify", e, rolled_back_playlist_id=playlist_id) from e

        if verified:
            log_success(f"Merged {len(uris)} tracks into '{target_name}' ({playlist_id}).")
        else:
            log_warning(
                f"Playlist {playlist_id} is missing {len(missing)} track(s) after "
                f"{self.verify_attempts} verification attempts."
            )

        return MergeResult(
            new_playlist_id=playlist_id,
            track_count=len(uris),
            duplicates_removed=duplicates_removed,
            verified=verified,
            missing_uris=missing,
        )

    def verify_playlist_contents(
        self,
        playlist_id: str,
        expected_uris: Sequence[str],
    ) -> Tuple[bool, List[str]]:
        """
        Check that every expected URI is present in the playlist.

        Retries up to `verify_attempts` times with `verify_delay` seconds
        between attempts. Returns (True, []) or (False, missing) where
        missing keeps the order of expected_uris.
        """
        playlist_id = (playlist_id or "").strip()
        if not playlist_id:
            raise ValidationError("playlist id is required")

        expected = list(dict.fromkeys(u.strip() for u in expected_uris if u and u.strip()))
        if not expected:
            return True, []

        missing: List[str] = []
        for attempt in range(1, self.verify_attempts + 1):
            present = {t.uri for t in self.client.list_playlist_tracks(playlist_id, 0)}
            missing = [u for u in expected if u not in present]
            if not missing:
                return True, []
            if attempt < self.verify_attempts:
                self.sleep(self.verify_delay)
        return False, missing

    def delete_playlists(self, playlists: Sequence[Union[str, PlaylistRef]]) -> List[str]:
        """
        Unfollow/delete playlists one by one, stopping at the first failure.

        Blank ids are skipped. Returns the ids deleted. A 403 raises
        PermissionDenied for that id; anything else PlaylistDeleteFailed.
        """
        refs = [p if isinstance(p, PlaylistRef) else PlaylistRef(id=p) for p in playlists]
        deleted: List[str] = []

        for ref in refs:
            playlist_id = (ref.id or "").strip()
            if not playlist_id:
                continue
            label = f"'{ref.name}' ({playlist_id})" if ref.name else playlist_id
            log_step(f"Deleting playlist {label}...")
            try:
                self.client.delete_playlist(playlist_id)
            except HttpStatusError as e:
                if e.status == 403:
                    raise PermissionDenied(playlist_id) from e
                raise PlaylistDeleteFailed(playlist_id, e) from e
            except Exception as e:
                raise PlaylistDeleteFailed(playlist_id, e) from e
            deleted.append(playlist_id)

        return deleted

    def _rollback(self, playlist_id: str) -> None:
        log_warning(f"Rolling back: deleting playlist {playlist_id}.")
        try:
            self.client.delete_playlist(playlist_id)
        except Exception as e:
            log_warning(f"Rollback of playlist {playlist_id} failed: {e}")
