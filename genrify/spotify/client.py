"""Spotify Web API client.

SpotifyClient.request() is the single place where HTTP happens. Its policy:
  - bearer token from the injected TokenAccessor on every attempt
  - 401: force one token refresh and retry; a second 401 raises AuthError
  - 429: wait (Retry-After, else exponential backoff) and retry, at most
    RATE_LIMIT_MAX_RETRIES times, then RateLimitExceeded
  - other non-2xx: ApiError when the body is a Spotify error envelope,
    HttpStatusError otherwise
  - transport errors (requests.RequestException) are not retried

The typed helpers below it (get_me, list_playlist_tracks, ...) map the
endpoints genrify uses onto the models in genrify.core.
"""

from contextlib import contextmanager
import json
import time
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence
from urllib.parse import quote

import requests

from genrify.config import (
    HTTP_TIMEOUT_SECONDS,
    PLAYLISTS_PAGE_SIZE,
    RATE_LIMIT_BASE_DELAY,
    RATE_LIMIT_MAX_DELAY,
    RATE_LIMIT_MAX_RETRIES,
    SPOTIFY_API_BASE,
    TRACKS_BATCH_SIZE,
    TRACKS_PAGE_SIZE,
    USER_AGENT,
    AppConfig,
)
from genrify.core import (
    ApiError,
    AuthError,
    FullTrack,
    HttpStatusError,
    Page,
    PlaylistTrackItem,
    RateLimitExceeded,
    SimplifiedPlaylist,
    User,
    ValidationError,
    WriteBlocked,
    log_progress,
    log_warning,
    logger,
)

from .auth import TokenAccessor, build_token_manager
from .paging import collect_paged


def retry_after_delay(header_value: Optional[str], attempt: int) -> float:
    """
    Seconds to wait before retrying a 429.

    A Retry-After header holding a non-negative whole number of seconds wins
    ("0" means retry immediately). Otherwise: 0.25s * 2^attempt, capped at 5s.
    """
    if header_value is not None:
        try:
            seconds = int(header_value.strip())
        except ValueError:
            seconds = -1
        if seconds >= 0:
            return float(seconds)

    return min(RATE_LIMIT_BASE_DELAY * (2**attempt), RATE_LIMIT_MAX_DELAY)


def decode_api_error(body: str, fallback_status: int) -> HttpStatusError:
    """Turn an error response body into ApiError (envelope) or HttpStatusError."""
    try:
        payload = json.loads(body) if body else None
    except ValueError:
        payload = None

    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        status = error.get("status") or fallback_status
        message = error.get("message") or ""
        if error.get("status") or message:
            return ApiError(int(status), str(message))
    return HttpStatusError(fallback_status)


def _clean_id(playlist_id: str) -> str:
    cleaned = (playlist_id or "").strip()
    if not cleaned:
        raise ValidationError("playlist id is required")
    return cleaned


def _clean_uris(uris: Sequence[str]) -> List[str]:
    cleaned = [u.strip() for u in uris if u and u.strip()]
    if not cleaned:
        raise ValidationError("at least one track uri is required")
    return cleaned


class SpotifyClient:
    def __init__(
        self,
        tokens: TokenAccessor,
        *,
        base_url: str = SPOTIFY_API_BASE,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        max_rate_limit_retries: int = RATE_LIMIT_MAX_RETRIES,
        require_write_access: bool = False,
    ) -> None:
        self.tokens = tokens
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.sleep = sleep
        self.max_rate_limit_retries = max_rate_limit_retries
        self.require_write_access = require_write_access
        self._write_depth = 0

    # Write guard ---------------------------------------------------------

    @contextmanager
    def write_access(self) -> Iterator["SpotifyClient"]:
        """Allow non-GET requests while the block runs (only relevant with require_write_access)."""
        self._write_depth += 1
        try:
            yield self
        finally:
            self._write_depth -= 1

    def _check_write(self, method: str, path: str) -> None:
        if method == "GET" or not self.require_write_access:
            return
        if self._write_depth <= 0:
            raise WriteBlocked(method, path)

    # Core request --------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        method = method.upper()
        self._check_write(method, path)

        url = f"{self.base_url}{path}"
        refreshed = False
        rate_retries = 0

        while True:
            headers = {
                "Accept": "application/json",
                "Authorization": f"Bearer {self.tokens.get_access_token()}",
                "User-Agent": USER_AGENT,
            }
            if body is not None:
                headers["Content-Type"] = "application/json"

            logger.debug("%s %s params=%s", method, path, params)
            r = self.session.request(
                method,
                url,
                headers=headers,
                params=params,
                data=json.dumps(body) if body is not None else None,
                timeout=self.timeout,
            )

            if r.status_code == 401:
                if refreshed:
                    err = decode_api_error(r.text, 401)
                    raise AuthError(
                        f"spotify rejected the refreshed token: {err}",
                        details={"status": 401, "path": path},
                    )
                log_warning(f"{method} {path}: 401, refreshing access token once.")
                self.tokens.force_refresh()
                refreshed = True
                continue

            if r.status_code == 429:
                if rate_retries >= self.max_rate_limit_retries:
                    raise RateLimitExceeded(rate_retries)
                wait = retry_after_delay(r.headers.get("Retry-After"), rate_retries)
                rate_retries += 1
                log_warning(
                    f"{method} {path}: rate limited, retry {rate_retries}/"
                    f"{self.max_rate_limit_retries} in {wait:.2f}s."
                )
                self.sleep(wait)
                continue

            if not 200 <= r.status_code < 300:
                raise decode_api_error(r.text, r.status_code)

            if not r.content:
                return None
            return r.json()

    # Endpoints -----------------------------------------------------------

    def get_me(self) -> User:
        return User.model_validate(self.request("GET", "/me") or {})

    def list_current_user_playlists(self, max_items: int = 0) -> List[SimplifiedPlaylist]:
        def _fetch(limit: int, offset: int) -> Page:
            data = self.request(
                "GET", "/me/playlists", params={"limit": limit, "offset": offset}
            )
            return Page[SimplifiedPlaylist].model_validate(data or {})

        return collect_paged(PLAYLISTS_PAGE_SIZE, max_items, _fetch)

    def list_playlist_tracks(self, playlist_id: str, max_items: int = 0) -> List[FullTrack]:
        """
        Tracks of a playlist in playlist order.

        Entries without a track (removed or unavailable items) or without a
        URI are dropped, so with max_items > 0 fewer tracks may come back.
        """
        path = f"/playlists/{quote(_clean_id(playlist_id), safe='')}/tracks"

        def _fetch(limit: int, offset: int) -> Page:
            data = self.request("GET", path, params={"limit": limit, "offset": offset})
            return Page[PlaylistTrackItem].model_validate(data or {})

        items = collect_paged(TRACKS_PAGE_SIZE, max_items, _fetch)
        return [item.track for item in items if item.track and item.track.uri]

    def get_playlist(self, playlist_id: str) -> SimplifiedPlaylist:
        path = f"/playlists/{quote(_clean_id(playlist_id), safe='')}"
        return SimplifiedPlaylist.model_validate(self.request("GET", path) or {})

    def create_playlist(
        self,
        name: str,
        description: str = "",
        public: bool = False,
    ) -> SimplifiedPlaylist:
        name = (name or "").strip()
        if not name:
            raise ValidationError("name is required")
        body = {"name": name, "public": public, "description": description}
        return SimplifiedPlaylist.model_validate(
            self.request("POST", "/me/playlists", body=body) or {}
        )

    def add_tracks_to_playlist(self, playlist_id: str, uris: Sequence[str]) -> str:
        """Add tracks in batches of 100 (API limit). Returns the last snapshot id."""
        path = f"/playlists/{quote(_clean_id(playlist_id), safe='')}/tracks"
        clean = _clean_uris(uris)

        snapshot_id = ""
        for start in range(0, len(clean), TRACKS_BATCH_SIZE):
            batch = clean[start : start + TRACKS_BATCH_SIZE]
            resp = self.request("POST", path, body={"uris": batch}) or {}
            snapshot_id = resp.get("snapshot_id", snapshot_id)
            if len(clean) > TRACKS_BATCH_SIZE:
                log_progress(start + len(batch), len(clean), prefix="Adding tracks")
        return snapshot_id

    def delete_playlist(self, playlist_id: str) -> None:
        """Unfollow a playlist; for the owner this is how Spotify deletes it."""
        path = f"/playlists/{quote(_clean_id(playlist_id), safe='')}/followers"
        self.request("DELETE", path)

    def remove_tracks_from_playlist(self, playlist_id: str, uris: Sequence[str]) -> str:
        path = f"/playlists/{quote(_clean_id(playlist_id), safe='')}/tracks"
        body = {"tracks": [{"uri": u} for u in _clean_uris(uris)]}
        resp = self.request("DELETE", path, body=body) or {}
        return resp.get("snapshot_id", "")


def build_client(cfg: AppConfig, **kwargs: Any) -> SpotifyClient:
    """Client wired to the on-disk token of the current user."""
    session = requests.Session()
    tokens = build_token_manager(cfg, session=session)
    return SpotifyClient(tokens, session=session, timeout=cfg.http_timeout, **kwargs)
