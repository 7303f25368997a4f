import json
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import pytest

from genrify.core import FullTrack, HttpStatusError, SimplifiedPlaylist, User


class FakeResponse:
    """Just enough of requests.Response for SpotifyClient and the token refresh."""

    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        text: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text
        self.content = text.encode("utf-8")
        self.headers = headers or {}

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    """Replays queued responses and records every request."""

    def __init__(self, responses: Optional[List[FakeResponse]] = None) -> None:
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def request(self, method, url, headers=None, params=None, data=None, timeout=None):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": dict(headers or {}),
                "params": params,
                "body": json.loads(data) if data else None,
            }
        )
        if not self.responses:
            raise AssertionError(f"unexpected request {method} {url}")
        return self.responses.pop(0)

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"method": "POST", "url": url, "form": data})
        return self.responses.pop(0)


class FakeTokens:
    def __init__(self) -> None:
        self.current = "tok-0"
        self.refreshes = 0

    def get_access_token(self) -> str:
        return self.current

    def force_refresh(self) -> str:
        self.refreshes += 1
        self.current = f"tok-{self.refreshes}"
        return self.current


class FakeSpotify:
    """
    In-memory stand-in for SpotifyClient used by service, CLI and API tests.

    `tracks` maps playlist id -> list of URIs. `lagging_reads` makes the
    first N reads of a freshly created playlist return nothing, to mimic
    eventual consistency.
    """

    def __init__(
        self,
        playlists: Optional[List[SimplifiedPlaylist]] = None,
        tracks: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        self.playlists = playlists or []
        self.tracks: Dict[str, List[str]] = {k: list(v) for k, v in (tracks or {}).items()}
        self.created: List[SimplifiedPlaylist] = []
        self.deleted: List[str] = []
        self.add_calls: List[List[str]] = []
        self.track_reads: List[str] = []
        self.add_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.list_errors: Dict[str, Exception] = {}
        self.delete_errors: Dict[str, Exception] = {}
        self.lagging_reads = 0
        self.drop_on_add: List[str] = []
        self.writes_allowed = 0

    @contextmanager
    def write_access(self):
        self.writes_allowed += 1
        try:
            yield self
        finally:
            self.writes_allowed -= 1

    def get_me(self) -> User:
        return User(id="user1", display_name="Test User")

    def list_current_user_playlists(self, max_items: int = 0) -> List[SimplifiedPlaylist]:
        if max_items:
            return self.playlists[:max_items]
        return list(self.playlists)

    def list_playlist_tracks(self, playlist_id: str, max_items: int = 0) -> List[FullTrack]:
        self.track_reads.append(playlist_id)
        if playlist_id in self.list_errors:
            raise self.list_errors[playlist_id]
        is_new = any(p.id == playlist_id for p in self.created)
        if is_new and self.lagging_reads > 0:
            self.lagging_reads -= 1
            return []
        uris = self.tracks.get(playlist_id, [])
        if max_items:
            uris = uris[:max_items]
        return [FullTrack(uri=u, name=u.rsplit(":", 1)[-1]) for u in uris]

    def create_playlist(self, name: str, description: str = "", public: bool = False):
        if self.create_error:
            raise self.create_error
        playlist = SimplifiedPlaylist(
            id=f"new{len(self.created) + 1}",
            name=name,
            description=description,
            public=public,
        )
        self.created.append(playlist)
        self.tracks[playlist.id] = []
        return playlist

    def add_tracks_to_playlist(self, playlist_id: str, uris: List[str]) -> str:
        self.add_calls.append(list(uris))
        if self.add_error:
            raise self.add_error
        self.tracks[playlist_id].extend(u for u in uris if u not in self.drop_on_add)
        return "snap"

    def delete_playlist(self, playlist_id: str) -> None:
        if playlist_id in self.delete_errors:
            raise self.delete_errors[playlist_id]
        self.deleted.append(playlist_id)


def make_playlist(playlist_id: str, name: str, total: int = 0) -> SimplifiedPlaylist:
    return SimplifiedPlaylist(id=playlist_id, name=name, tracks={"total": total})


def http_error(status: int) -> HttpStatusError:
    return HttpStatusError(status)


@pytest.fixture
def tokens() -> FakeTokens:
    return FakeTokens()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_spotify() -> FakeSpotify:
    return FakeSpotify(
        playlists=[
            make_playlist("p1", "Workout 2024", 2),
            make_playlist("p2", "Chill", 1),
            make_playlist("p3", "Workout - Legs", 2),
        ],
        tracks={
            "p1": ["spotify:track:1", "spotify:track:2"],
            "p2": ["spotify:track:9"],
            "p3": ["spotify:track:2", "spotify:track:3"],
        },
    )
