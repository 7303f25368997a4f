from fastapi import APIRouter, Depends

from genrify.config import AppConfig, is_configured
from genrify.spotify import TokenManager

from ..deps import get_config, get_token_manager

router = APIRouter()


@router.get("/status")
def auth_status(
    cfg: AppConfig = Depends(get_config),
    tokens: TokenManager = Depends(get_token_manager),
) -> dict:
    """
    Whether a usable Spotify token is on disk.

    A token that is expired but still has a refresh token counts as
    authenticated: the next API call refreshes it.
    """
    status = tokens.status()
    granted = set((status["scope"] or "").split())
    return {
        "configured": is_configured(cfg),
        "authenticated": status["authenticated"],
        "expires_at": status["expires_at"],
        "scope": status["scope"],
        "missing_scopes": [s for s in cfg.scopes if s not in granted],
        "reason": None if status["authenticated"] else "missing_or_invalid_token",
    }
