"""Public façade for the genrify.core package.

Cross-cutting pieces shared by the Spotify client, the playlist service and
the outer surfaces (CLI, HTTP API): logging helpers, JSON file helpers, the
error taxonomy and the data models. Import them from here rather than from
the submodules.
"""

from .errors import (
    ApiError,
    AuthError,
    Cancelled,
    GenrifyError,
    HttpStatusError,
    InvalidPattern,
    MergeFailed,
    NoMatches,
    PermissionDenied,
    PlaylistDeleteFailed,
    RateLimitExceeded,
    ValidationError,
    WriteBlocked,
)
from .fs_utils import ensure_dir, read_json, remove_file, write_json
from .logging_utils import (
    configure_logging,
    log_error,
    log_info,
    log_progress,
    log_section,
    log_step,
    log_success,
    log_warning,
    logger,
)
from .models import (
    Album,
    Artist,
    FullTrack,
    MergeOptions,
    MergeResult,
    Page,
    PlaylistRef,
    PlaylistTrackItem,
    SimplifiedPlaylist,
    Token,
    User,
)

__all__ = [
    "configure_logging",
    "logger",
    "log_section",
    "log_info",
    "log_step",
    "log_success",
    "log_warning",
    "log_error",
    "log_progress",
    "ensure_dir",
    "read_json",
    "write_json",
    "remove_file",
    "GenrifyError",
    "ValidationError",
    "AuthError",
    "RateLimitExceeded",
    "HttpStatusError",
    "ApiError",
    "InvalidPattern",
    "NoMatches",
    "PermissionDenied",
    "PlaylistDeleteFailed",
    "MergeFailed",
    "WriteBlocked",
    "Cancelled",
    "User",
    "SimplifiedPlaylist",
    "Artist",
    "Album",
    "FullTrack",
    "PlaylistTrackItem",
    "Page",
    "Token",
    "PlaylistRef",
    "MergeOptions",
    "MergeResult",
]
