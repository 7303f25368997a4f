"""Identifier and display helpers for tracks and playlists.

Users paste ids in three shapes: bare ids, `spotify:<kind>:<id>` URIs and
`https://open.spotify.com/<kind>/<id>` share links. The API wants track URIs
and bare playlist ids, so everything is normalized before it is sent.
"""

import re
from typing import Iterable, List
from urllib.parse import urlsplit

from genrify.core import Artist, SimplifiedPlaylist, ValidationError

TRACK_URI_PREFIX = "spotify:track:"

OPEN_TRACK_URL_RE = re.compile(
    r"^https?://open\.spotify\.com/track/([A-Za-z0-9]+)(\?.*)?$", re.IGNORECASE
)
OPEN_PLAYLIST_URL_RE = re.compile(
    r"^https?://open\.spotify\.com/playlist/([A-Za-z0-9]+)(\?.*)?$", re.IGNORECASE
)
PLAYLIST_URI_RE = re.compile(r"^spotify:playlist:([A-Za-z0-9]+)$", re.IGNORECASE)
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


def _looks_like_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    return bool(parts.netloc or parts.path)


def normalize_track_uri(value: str) -> str:
    """
    Return the canonical `spotify:track:<id>` form of a track reference.

    Accepts a canonical URI (returned unchanged), an open.spotify.com track
    link (query string ignored) or a bare id. Other URLs are rejected.
    """
    s = (value or "").strip()
    if not s:
        raise ValidationError("empty track value")

    if s.lower().startswith(TRACK_URI_PREFIX):
        return s

    match = OPEN_TRACK_URL_RE.match(s)
    if match:
        return f"{TRACK_URI_PREFIX}{match.group(1)}"

    if _looks_like_url(s):
        raise ValidationError(f"unsupported track url: {s}", details={"value": s})

    return f"{TRACK_URI_PREFIX}{s}"


def normalize_playlist_id(value: str) -> str:
    """Return the bare playlist id from an id, a playlist URI or an open.spotify.com link."""
    s = (value or "").strip()
    if not s:
        raise ValidationError("empty playlist id")

    match = PLAYLIST_URI_RE.match(s) or OPEN_PLAYLIST_URL_RE.match(s)
    if match:
        return match.group(1)

    if _looks_like_url(s):
        raise ValidationError(f"unsupported playlist url: {s}", details={"value": s})

    return s


def join_artist_names(artists: Iterable[Artist]) -> str:
    return ", ".join(a.name for a in artists if a.name)


def filter_playlists_by_name(
    playlists: List[SimplifiedPlaylist],
    name_filter: str,
) -> List[SimplifiedPlaylist]:
    """Case-insensitive substring filter; a blank filter keeps everything."""
    want = (name_filter or "").strip().lower()
    if not want:
        return list(playlists)
    return [p for p in playlists if want in p.name.lower()]
