"""Token access for the Spotify client.

The HTTP client never reads or writes tokens itself: it is handed a
TokenAccessor and only asks it for a bearer string. TokenManager is the
implementation used by the CLI and the HTTP API; it keeps the token in a
JSON file and refreshes it through the accounts service when it is within
`leeway` seconds of expiry.

The interactive login (authorization-code + PKCE) is not part of genrify;
a token file produced by another tool, or written with TokenStore.save(),
is expected to exist.
"""

from pathlib import Path
import threading
from typing import Any, Callable, Dict, Optional, Protocol

import requests

from genrify.config import (
    SPOTIFY_TOKEN_URL,
    TOKEN_LEEWAY_SECONDS,
    USER_AGENT,
    AppConfig,
    token_file_path,
)
from genrify.core import (
    AuthError,
    Token,
    log_step,
    log_warning,
    logger,
    read_json,
    remove_file,
    write_json,
)


class TokenAccessor(Protocol):
    """Capability handed to SpotifyClient."""

    def get_access_token(self) -> str: ...

    def force_refresh(self) -> str: ...


class TokenStore:
    """Token persisted as JSON at `path` (mode 0600)."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Token]:
        def _on_error(e: Exception) -> None:
            log_warning(f"Token file {self.path} is corrupted; ignoring it.")

        data = read_json(self.path, default=None, on_error=_on_error)
        if not isinstance(data, dict) or not data.get("access_token"):
            return None
        try:
            return Token.model_validate(data)
        except ValueError as e:
            log_warning(f"Token file {self.path} has an invalid structure ({e}).")
            return None

    def save(self, token: Token) -> None:
        write_json(self.path, token.model_dump(mode="json"), private=True)

    def clear(self) -> bool:
        return remove_file(self.path)


def _describe_token_error(response: requests.Response) -> str:
    try:
        payload: Dict[str, Any] = response.json()
    except ValueError:
        payload = {}
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, str) and error:
        description = payload.get("error_description")
        return f"{error} ({description})" if description else error
    return f"HTTP {response.status_code}"


def refresh_access_token(
    client_id: str,
    refresh_token: str,
    *,
    session: Optional[requests.Session] = None,
    token_url: str = SPOTIFY_TOKEN_URL,
    timeout: float = 30.0,
) -> Token:
    """
    Exchange a refresh token for a new access token (PKCE public client).

    Spotify may omit `refresh_token` in the response; the old one then stays
    valid and is carried over into the returned Token.
    """
    if not refresh_token:
        raise AuthError("missing refresh token; log in again")
    if not client_id:
        raise AuthError("missing Spotify client id (set SPOTIFY_CLIENT_ID)")

    http = session or requests.Session()
    r = http.post(
        token_url,
        data={
            "client_id": client_id,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        },
        headers={"User-Agent": USER_AGENT},
        timeout=timeout,
    )
    if not r.ok:
        raise AuthError(
            f"token refresh failed: {_describe_token_error(r)}",
            details={"status": r.status_code},
        )

    try:
        payload = r.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        raise AuthError(
            "token refresh failed: response is not a JSON object",
            details={"status": r.status_code},
        )
    if not payload.get("access_token"):
        raise AuthError("token refresh failed: missing access_token in response")
    return Token.from_token_response(payload, previous_refresh_token=refresh_token)


Refresher = Callable[[str], Token]


class TokenManager:
    """
    TokenAccessor over a TokenStore.

    Refreshes are serialized by a lock and coalesced. Each thread remembers
    the token generation it was last handed; a forced refresh from a thread
    whose token has since been replaced returns the newer token instead of
    issuing a second refresh request.
    """

    def __init__(
        self,
        store: TokenStore,
        refresher: Refresher,
        leeway: float = TOKEN_LEEWAY_SECONDS,
    ) -> None:
        self.store = store
        self.refresher = refresher
        self.leeway = leeway
        self._lock = threading.Lock()
        self._generation = 0
        self._seen = threading.local()

    def _load(self) -> Token:
        token = self.store.load()
        if token is None:
            raise AuthError("not logged in (missing token)")
        return token

    def _refresh_locked(self, token: Token) -> str:
        if not token.refresh_token:
            raise AuthError("access token expired and no refresh token present")
        log_step("Refreshing Spotify access token...")
        new_token = self.refresher(token.refresh_token)
        if not new_token.refresh_token:
            new_token.refresh_token = token.refresh_token
        self.store.save(new_token)
        self._generation += 1
        return new_token.access_token

    def get_access_token(self) -> str:
        with self._lock:
            token = self._load()
            if not token.expired(self.leeway):
                access_token = token.access_token
            else:
                access_token = self._refresh_locked(token)
            self._seen.generation = self._generation
            return access_token

    def force_refresh(self) -> str:
        # Threads that never asked for a token fall back to the current generation.
        seen = getattr(self._seen, "generation", self._generation)
        with self._lock:
            token = self._load()
            if self._generation != seen and not token.expired(self.leeway):
                logger.debug("Reusing token refreshed by a concurrent caller.")
                self._seen.generation = self._generation
                return token.access_token
            if not token.refresh_token:
                raise AuthError("missing refresh token; log in again")
            access_token = self._refresh_locked(token)
            self._seen.generation = self._generation
            return access_token

    def status(self) -> Dict[str, Any]:
        token = self.store.load()
        if token is None:
            return {"authenticated": False, "expires_at": None, "scope": None}
        return {
            "authenticated": not token.expired(self.leeway) or bool(token.refresh_token),
            "expires_at": token.expires_at.isoformat(),
            "scope": token.scope,
        }


def build_token_manager(
    cfg: AppConfig,
    store: Optional[TokenStore] = None,
    session: Optional[requests.Session] = None,
) -> TokenManager:
    def _refresh(refresh_token: str) -> Token:
        return refresh_access_token(
            cfg.client_id,
            refresh_token,
            session=session,
            timeout=cfg.http_timeout,
        )

    return TokenManager(
        store=store or TokenStore(token_file_path()),
        refresher=_refresh,
        leeway=cfg.token_leeway,
    )
