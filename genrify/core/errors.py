"""Error taxonomy shared by the Spotify client and the playlist service.

Every error raised on purpose by genrify derives from GenrifyError, so callers
(CLI, HTTP layer) can catch the whole family with a single except clause.

Hierarchy:
    GenrifyError
        ValidationError      - blank or missing required input
        AuthError            - no usable token, refresh rejected, 401 after refresh
        RateLimitExceeded    - 429 retries exhausted
        HttpStatusError      - non-2xx response without a decodable envelope
            ApiError         - non-2xx response with {"error": {status, message}}
        InvalidPattern       - playlist name pattern is not a valid regex
        NoMatches            - pattern matched no playlist
        PermissionDenied     - 403 while deleting a playlist
        PlaylistDeleteFailed - any other failure while deleting a playlist
        MergeFailed          - a merge stage failed (stage name in .stage)
        WriteBlocked         - write request issued outside write_access()
        Cancelled            - caller aborted a merge before playlist creation
"""

from typing import Any, Dict, Optional


class GenrifyError(Exception):
    """
    Base class for genrify errors.

    Attributes:
        message: human-readable description.
        details: extra context for logs (playlist id, stage, original error).
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ValidationError(GenrifyError):
    pass


class AuthError(GenrifyError):
    pass


class RateLimitExceeded(GenrifyError):
    def __init__(self, retries: int) -> None:
        super().__init__(
            f"spotify rate limit exceeded after {retries} retries",
            details={"retries": retries},
        )
        self.retries = retries


class HttpStatusError(GenrifyError):
    """Non-2xx response whose body is not a Spotify error envelope."""

    def __init__(self, status: int, message: str = "") -> None:
        text = f"spotify api error: http {status}"
        if message:
            text = f"{text}: {message}"
        super().__init__(text, details={"status": status})
        self.status = status


class ApiError(HttpStatusError):
    """Decoded `{"error": {"status", "message"}}` envelope."""

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(status, message)
        self.api_message = message


class InvalidPattern(GenrifyError):
    pass


class NoMatches(GenrifyError):
    def __init__(self, pattern: str) -> None:
        super().__init__(
            f"no playlists matched pattern {pattern!r}",
            details={"pattern": pattern},
        )
        self.pattern = pattern


class PermissionDenied(GenrifyError):
    def __init__(self, playlist_id: str) -> None:
        super().__init__(
            f"delete playlist {playlist_id}: permission denied",
            details={"playlist_id": playlist_id},
        )
        self.playlist_id = playlist_id


class PlaylistDeleteFailed(GenrifyError):
    def __init__(self, playlist_id: str, cause: Exception) -> None:
        super().__init__(
            f"delete playlist {playlist_id}: {cause}",
            details={"playlist_id": playlist_id, "cause": cause},
        )
        self.playlist_id = playlist_id
        self.cause = cause


class MergeFailed(GenrifyError):
    """
    A merge stage failed.

    `stage` is one of "collect tracks", "create playlist", "add tracks",
    "verify". When the failure happened after the target playlist was
    created, `rolled_back_playlist_id` names the playlist that rollback
    attempted to delete.
    """

    def __init__(
        self,
        stage: str,
        cause: Exception,
        rolled_back_playlist_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"{stage}: {cause}",
            details={
                "stage": stage,
                "cause": cause,
                "rolled_back_playlist_id": rolled_back_playlist_id,
            },
        )
        self.stage = stage
        self.cause = cause
        self.rolled_back_playlist_id = rolled_back_playlist_id


class WriteBlocked(GenrifyError):
    def __init__(self, method: str, path: str) -> None:
        super().__init__(
            f"Blocked Spotify API write ({method}) to {path}",
            details={"method": method, "path": path},
        )
        self.method = method


class Cancelled(GenrifyError):
    def __init__(self, message: str = "Cancelled") -> None:
        super().__init__(message)
