"""Shared FastAPI dependencies and error translation for the routers."""

import threading
from typing import Dict, NoReturn, Tuple

from fastapi import Depends, HTTPException

from genrify.config import AppConfig, load_config, token_file_path
from genrify.core import (
    AuthError,
    Cancelled,
    GenrifyError,
    HttpStatusError,
    InvalidPattern,
    MergeFailed,
    NoMatches,
    PermissionDenied,
    RateLimitExceeded,
    ValidationError,
    WriteBlocked,
    log_error,
)
from genrify.playlist import PlaylistService
from genrify.spotify import SpotifyClient, TokenManager, build_token_manager


def get_config() -> AppConfig:
    return load_config()


# One manager per token file and settings, shared by every request thread,
# so concurrent 401s coalesce into a single refresh.
_token_managers: Dict[Tuple[str, str, float, float], TokenManager] = {}
_token_managers_lock = threading.Lock()


def get_token_manager(cfg: AppConfig = Depends(get_config)) -> TokenManager:
    key = (cfg.client_id, str(token_file_path()), cfg.token_leeway, cfg.http_timeout)
    with _token_managers_lock:
        manager = _token_managers.get(key)
        if manager is None:
            manager = build_token_manager(cfg)
            _token_managers[key] = manager
        return manager


def reset_token_managers() -> None:
    """Forget the shared managers (token file moved, tests)."""
    with _token_managers_lock:
        _token_managers.clear()


def get_client(
    cfg: AppConfig = Depends(get_config),
    tokens: TokenManager = Depends(get_token_manager),
) -> SpotifyClient:
    return SpotifyClient(tokens, timeout=cfg.http_timeout)


def get_playlist_service(client: SpotifyClient = Depends(get_client)) -> PlaylistService:
    return PlaylistService(client)


def _status_for(e: GenrifyError) -> int:
    if isinstance(e, (ValidationError, InvalidPattern)):
        return 400
    if isinstance(e, AuthError):
        return 401
    if isinstance(e, (PermissionDenied, WriteBlocked)):
        return 403
    if isinstance(e, NoMatches):
        return 404
    if isinstance(e, Cancelled):
        return 409
    if isinstance(e, RateLimitExceeded):
        return 429
    return 502


def raise_http(e: GenrifyError) -> NoReturn:
    """Re-raise a domain error as HTTPException with a {"status", "message"} detail."""
    status_code = _status_for(e)
    detail = {"status": type(e).__name__, "message": e.message}
    if isinstance(e, HttpStatusError):
        detail["upstream_status"] = e.status
    if isinstance(e, MergeFailed):
        detail["stage"] = e.stage
        detail["rolled_back_playlist_id"] = e.rolled_back_playlist_id
    if status_code >= 500:
        log_error(f"Spotify operation failed: {e.message}")
    raise HTTPException(status_code=status_code, detail=detail) from e
