"""Public façade for the genrify.spotify package.

Spotify Web API access: token management, the retrying HTTP client, the
pagination collector and identifier normalization. Other packages should
import these symbols from here instead of the internal modules.
"""

from .auth import (
    TokenAccessor,
    TokenManager,
    TokenStore,
    build_token_manager,
    refresh_access_token,
)
from .client import SpotifyClient, build_client, decode_api_error, retry_after_delay
from .helpers import (
    filter_playlists_by_name,
    join_artist_names,
    normalize_playlist_id,
    normalize_track_uri,
)
from .paging import collect_paged

__all__ = [
    "TokenAccessor",
    "TokenManager",
    "TokenStore",
    "build_token_manager",
    "refresh_access_token",
    "SpotifyClient",
    "build_client",
    "decode_api_error",
    "retry_after_delay",
    "collect_paged",
    "normalize_track_uri",
    "normalize_playlist_id",
    "join_artist_names",
    "filter_playlists_by_name",
]
