from dataclasses import asdict, dataclass, field
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from genrify.core.fs_utils import read_json, write_json

load_dotenv()

APP_NAME = "genrify"
USER_AGENT = f"{APP_NAME}/0.1"

# Spotify API constants
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE = os.getenv("SPOTIFY_API_BASE", "https://api.spotify.com/v1")

DEFAULT_REDIRECT_URI = "http://localhost:8888/callback"
DEFAULT_SCOPES = [
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-private",
    "playlist-modify-public",
]

# Request policy
TOKEN_LEEWAY_SECONDS = 60
HTTP_TIMEOUT_SECONDS = 30.0
RATE_LIMIT_MAX_RETRIES = 5
RATE_LIMIT_BASE_DELAY = 0.25
RATE_LIMIT_MAX_DELAY = 5.0

# Spotify hard limits
PLAYLISTS_PAGE_SIZE = 50
TRACKS_PAGE_SIZE = 100
TRACKS_BATCH_SIZE = 100

# Merge verification (the playlist store is eventually consistent)
VERIFY_ATTEMPTS = 3
VERIFY_DELAY_SECONDS = 0.2


def user_config_dir() -> Path:
    """
    Base directory for genrify's config and token files.

    XDG_CONFIG_HOME wins when set (also on macOS) so tests and scripted
    setups get a predictable location.
    """
    xdg = os.getenv("XDG_CONFIG_HOME", "").strip()
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def config_file_path() -> Path:
    return user_config_dir() / "config.json"


def token_file_path() -> Path:
    return Path(os.getenv("GENRIFY_TOKEN_FILE") or user_config_dir() / "token.json")


@dataclass
class AppConfig:
    """
    Effective settings.

    - redirect_uri : not used by genrify itself; kept in config.json for the
      external login tool that writes the token file
    - scopes : scopes the token must carry; /auth/status reports missing ones
    """

    client_id: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    token_leeway: float = TOKEN_LEEWAY_SECONDS
    http_timeout: float = HTTP_TIMEOUT_SECONDS


def split_scopes(value: str) -> List[str]:
    """Split a scope list separated by spaces and/or commas."""
    parts = value.replace(",", " ").split()
    return [p.strip() for p in parts if p.strip()]


def _merge_file_values(cfg: AppConfig, data: dict) -> None:
    if data.get("spotify_client_id"):
        cfg.client_id = str(data["spotify_client_id"])
    if data.get("spotify_redirect_uri"):
        cfg.redirect_uri = str(data["spotify_redirect_uri"])
    scopes = data.get("spotify_scopes")
    if isinstance(scopes, list) and scopes:
        cfg.scopes = [str(s) for s in scopes]
    if data.get("token_leeway") is not None:
        cfg.token_leeway = float(data["token_leeway"])
    if data.get("http_timeout") is not None:
        cfg.http_timeout = float(data["http_timeout"])


def _apply_env_overrides(cfg: AppConfig) -> None:
    value = os.getenv("SPOTIFY_CLIENT_ID", "").strip()
    if value:
        cfg.client_id = value
    value = os.getenv("SPOTIFY_REDIRECT_URI", "").strip()
    if value:
        cfg.redirect_uri = value
    value = os.getenv("SPOTIFY_SCOPES", "").strip()
    if value:
        cfg.scopes = split_scopes(value)
    value = os.getenv("GENRIFY_TOKEN_LEEWAY", "").strip()
    if value:
        cfg.token_leeway = float(value)
    value = os.getenv("GENRIFY_HTTP_TIMEOUT", "").strip()
    if value:
        cfg.http_timeout = float(value)


def _normalize(cfg: AppConfig) -> None:
    cfg.client_id = cfg.client_id.strip()
    cfg.redirect_uri = cfg.redirect_uri.strip() or DEFAULT_REDIRECT_URI
    cfg.scopes = [s.strip() for s in cfg.scopes if s.strip()] or list(DEFAULT_SCOPES)
    if cfg.token_leeway < 0:
        cfg.token_leeway = 0


def load_config(path: Optional[Path] = None) -> AppConfig:
    """
    Build the effective configuration.

    Order: defaults, then config.json, then environment (.env included),
    then normalization (trimmed values, defaults for blank redirect/scopes).
    A missing or corrupted config file is treated as empty.
    """
    cfg = AppConfig()
    data = read_json(path or config_file_path(), default=None)
    if isinstance(data, dict):
        _merge_file_values(cfg, data)
    _apply_env_overrides(cfg)
    _normalize(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Optional[Path] = None) -> Path:
    target = path or config_file_path()
    data = asdict(cfg)
    payload = {
        "spotify_client_id": data["client_id"],
        "spotify_redirect_uri": data["redirect_uri"],
        "spotify_scopes": data["scopes"],
        "token_leeway": data["token_leeway"],
        "http_timeout": data["http_timeout"],
    }
    write_json(target, payload, private=True)
    return target


def is_configured(cfg: AppConfig) -> bool:
    return bool(cfg.client_id.strip())
