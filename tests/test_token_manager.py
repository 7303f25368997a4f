from datetime import datetime, timedelta, timezone
import os
from pathlib import Path
import threading
from typing import List, Optional

import pytest

from genrify.core import AuthError, Token
from genrify.spotify import TokenManager, TokenStore, refresh_access_token

from conftest import FakeResponse, FakeSession


def _token(access: str = "access", seconds: int = 3600, refresh: Optional[str] = "refresh") -> Token:
    return Token(
        access_token=access,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=seconds),
        refresh_token=refresh,
        scope="playlist-read-private",
    )


class CountingRefresher:
    def __init__(self, refresh_token: Optional[str] = None) -> None:
        self.calls: List[str] = []
        self.refresh_token = refresh_token

    def __call__(self, refresh_token: str) -> Token:
        self.calls.append(refresh_token)
        return _token(access=f"new-{len(self.calls)}", refresh=self.refresh_token)


def test_token_expired_respects_leeway() -> None:
    assert _token(seconds=30).expired(leeway=60)
    assert not _token(seconds=120).expired(leeway=60)
    assert _token(access="").expired()


def test_token_expired_treats_naive_datetime_as_utc() -> None:
    token = Token(
        access_token="a",
        expires_at=datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1),
    )
    assert not token.expired()


def test_token_store_roundtrip(tmp_path: Path) -> None:
    store = TokenStore(tmp_path / "genrify" / "token.json")
    token = _token()

    store.save(token)
    loaded = store.load()

    assert loaded is not None
    assert loaded.access_token == "access"
    assert loaded.refresh_token == "refresh"
    assert loaded.expires_at == token.expires_at
    if os.name == "posix":
        assert (store.path.stat().st_mode & 0o777) == 0o600


def test_token_store_missing_corrupted_or_invalid_returns_none(tmp_path: Path) -> None:
    store = TokenStore(tmp_path / "token.json")
    assert store.load() is None

    store.path.write_text("{ not json", encoding="utf-8")
    assert store.load() is None

    store.path.write_text('{"access_token": "a"}', encoding="utf-8")
    assert store.load() is None


def test_token_store_clear(tmp_path: Path) -> None:
    store = TokenStore(tmp_path / "token.json")
    store.save(_token())

    assert store.clear() is True
    assert store.clear() is False
    assert store.load() is None


def test_refresh_access_token_keeps_previous_refresh_token() -> None:
    session = FakeSession(
        [FakeResponse(200, {"access_token": "fresh", "token_type": "Bearer", "expires_in": 3600})]
    )

    token = refresh_access_token("client-id", "old-refresh", session=session)

    assert token.access_token == "fresh"
    assert token.refresh_token == "old-refresh"
    assert not token.expired()
    form = session.calls[0]["form"]
    assert form == {
        "client_id": "client-id",
        "grant_type": "refresh_token",
        "refresh_token": "old-refresh",
    }


def test_refresh_access_token_uses_rotated_refresh_token() -> None:
    session = FakeSession(
        [FakeResponse(200, {"access_token": "fresh", "expires_in": 3600, "refresh_token": "rotated"})]
    )

    token = refresh_access_token("client-id", "old-refresh", session=session)

    assert token.refresh_token == "rotated"


def test_refresh_access_token_reports_oauth_error() -> None:
    session = FakeSession(
        [FakeResponse(400, {"error": "invalid_grant", "error_description": "Refresh token revoked"})]
    )

    with pytest.raises(AuthError, match=r"invalid_grant \(Refresh token revoked\)"):
        refresh_access_token("client-id", "old-refresh", session=session)


def test_refresh_access_token_reports_http_status_without_body() -> None:
    session = FakeSession([FakeResponse(503, text="")])

    with pytest.raises(AuthError, match="HTTP 503"):
        refresh_access_token("client-id", "old-refresh", session=session)


def test_refresh_access_token_requires_refresh_token_and_client_id() -> None:
    session = FakeSession()

    with pytest.raises(AuthError):
        refresh_access_token("client-id", "", session=session)
    with pytest.raises(AuthError):
        refresh_access_token("", "refresh", session=session)
    assert session.calls == []


def test_manager_returns_fresh_token_without_refresh(tmp_path: Path) -> None:
    store = TokenStore(tmp_path / "token.json")
    store.save(_token(access="still-good"))
    refresher = CountingRefresher()

    manager = TokenManager(store, refresher, leeway=60)

    assert manager.get_access_token() == "still-good"
    assert refresher.calls == []


def test_manager_refreshes_near_expiry_and_persists(tmp_path: Path) -> None:
    store = TokenStore(tmp_path / "token.json")
    store.save(_token(access="stale", seconds=10, refresh="r1"))
    refresher = CountingRefresher()

    manager = TokenManager(store, refresher, leeway=60)

    assert manager.get_access_token() == "new-1"
    assert refresher.calls == ["r1"]
    saved = store.load()
    assert saved.access_token == "new-1"
    # Refresher returned no refresh token, the old one is kept.
    assert saved.refresh_token == "r1"


def test_manager_without_token_is_not_logged_in(tmp_path: Path) -> None:
    manager = TokenManager(TokenStore(tmp_path / "token.json"), CountingRefresher())

    with pytest.raises(AuthError, match="not logged in"):
        manager.get_access_token()


def test_manager_expired_without_refresh_token(tmp_path: Path) -> None:
    store = TokenStore(tmp_path / "token.json")
    store.save(_token(seconds=-10, refresh=None))
    manager = TokenManager(store, CountingRefresher())

    with pytest.raises(AuthError):
        manager.get_access_token()
    with pytest.raises(AuthError):
        manager.force_refresh()


def test_force_refresh_always_refreshes_when_sequential(tmp_path: Path) -> None:
    store = TokenStore(tmp_path / "token.json")
    store.save(_token())
    refresher = CountingRefresher(refresh_token="r2")
    manager = TokenManager(store, refresher)

    assert manager.force_refresh() == "new-1"
    assert manager.force_refresh() == "new-2"
    assert refresher.calls == ["refresh", "r2"]


def test_concurrent_force_refresh_is_coalesced(tmp_path: Path) -> None:
    store = TokenStore(tmp_path / "token.json")
    store.save(_token())
    calls: List[str] = []

    def refresher(refresh_token: str) -> Token:
        calls.append(refresh_token)
        return _token(access=f"new-{len(calls)}", refresh="rotated")

    manager = TokenManager(store, refresher)
    both_have_token = threading.Barrier(2)
    results: List[str] = []

    def rejected_request() -> None:
        manager.get_access_token()
        both_have_token.wait(timeout=5)
        results.append(manager.force_refresh())

    threads = [threading.Thread(target=rejected_request) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert calls == ["refresh"]
    assert results == ["new-1", "new-1"]


def test_force_refresh_after_another_thread_refreshed_reuses_token(tmp_path: Path) -> None:
    store = TokenStore(tmp_path / "token.json")
    store.save(_token(access="old"))
    refresher = CountingRefresher(refresh_token="rotated")
    manager = TokenManager(store, refresher)
    token_read = threading.Event()
    main_refreshed = threading.Event()
    results: List[str] = []

    def slow_request() -> None:
        results.append(manager.get_access_token())
        token_read.set()
        main_refreshed.wait(timeout=5)
        results.append(manager.force_refresh())

    worker = threading.Thread(target=slow_request)
    worker.start()
    token_read.wait(timeout=5)
    manager.force_refresh()
    main_refreshed.set()
    worker.join(timeout=5)

    # The worker entered force_refresh only after the refresh had finished.
    assert refresher.calls == ["refresh"]
    assert results == ["old", "new-1"]


def test_refresh_access_token_rejects_non_json_success() -> None:
    session = FakeSession([FakeResponse(200, text="<html>captive portal</html>")])

    with pytest.raises(AuthError, match="token refresh failed"):
        refresh_access_token("client-id", "old-refresh", session=session)


def test_refresh_access_token_rejects_non_object_json() -> None:
    session = FakeSession([FakeResponse(200, [{"access_token": "x"}])])

    with pytest.raises(AuthError, match="token refresh failed"):
        refresh_access_token("client-id", "old-refresh", session=session)


def test_status_reports_token_state(tmp_path: Path) -> None:
    store = TokenStore(tmp_path / "token.json")
    manager = TokenManager(store, CountingRefresher())

    assert manager.status() == {"authenticated": False, "expires_at": None, "scope": None}

    store.save(_token(seconds=-10, refresh="r"))
    status = manager.status()
    assert status["authenticated"] is True
    assert status["scope"] == "playlist-read-private"
