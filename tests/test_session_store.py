import os
import stat
from datetime import datetime, timedelta

import pytest

from numberdesk.auth.models import AuthSession
from numberdesk.auth.security import TokenCipher
from numberdesk.auth.storage import CredentialStorage
from numberdesk.auth.store import SessionStore


def _isolated_store(tmp_path, monkeypatch, ttl_hours=24.0):
    monkeypatch.setenv("HOME", str(tmp_path))
    cipher = TokenCipher(str(tmp_path / "keys" / "master.key"))
    storage = CredentialStorage(str(tmp_path / "state.db"), cipher)
    return SessionStore(storage, ttl_hours=ttl_hours)


def test_token_is_encrypted_at_rest(tmp_path, monkeypatch):
    store = _isolated_store(tmp_path, monkeypatch)
    store.establish("op-secret-token")

    with open(tmp_path / "state.db", "rb") as f:
        assert b"op-secret-token" not in f.read()

    mode = stat.S_IMODE(os.stat(tmp_path / "keys" / "master.key").st_mode)
    assert mode == 0o600


def test_session_survives_restart(tmp_path, monkeypatch):
    store = _isolated_store(tmp_path, monkeypatch)
    store.establish("op-token-1")

    restarted = _isolated_store(tmp_path, monkeypatch)
    assert restarted.authenticated is False
    assert restarted.load() is True
    assert restarted.bearer_token() == "op-token-1"


def test_expired_persisted_session_is_dropped(tmp_path, monkeypatch):
    store = _isolated_store(tmp_path, monkeypatch)
    past = datetime.now() - timedelta(hours=30)
    store.storage.save(AuthSession.issue("stale", ttl_hours=24, now=past))

    assert store.load() is False
    assert store.authenticated is False
    assert store.storage.load() is None


def test_session_expiring_in_memory_is_invalidated(tmp_path, monkeypatch):
    store = _isolated_store(tmp_path, monkeypatch)
    flips = []
    store.subscribe(flips.append)
    store.establish("short-lived")
    store._session = AuthSession(token="short-lived", expires_at=datetime.now() - timedelta(seconds=1))

    assert store.bearer_token() is None
    assert flips == [True, False]
    assert store.storage.load() is None


def test_listeners_only_hear_flips(tmp_path, monkeypatch):
    store = _isolated_store(tmp_path, monkeypatch)
    flips = []
    unsubscribe = store.subscribe(flips.append)

    store.invalidate()
    store.establish("a")
    store.establish("b")
    store.invalidate("unauthorized")
    store.invalidate("logout")
    assert flips == [True, False]

    unsubscribe()
    store.establish("c")
    assert flips == [True, False]


def test_failing_listener_does_not_block_the_write(tmp_path, monkeypatch):
    store = _isolated_store(tmp_path, monkeypatch)
    heard = []

    def broken(_):
        raise RuntimeError("listener bug")

    store.subscribe(broken)
    store.subscribe(heard.append)
    store.establish("tok")

    assert store.authenticated is True
    assert heard == [True]


def test_key_mismatch_reads_as_no_session(tmp_path, monkeypatch):
    store = _isolated_store(tmp_path, monkeypatch)
    store.establish("tok")
    os.remove(tmp_path / "keys" / "master.key")

    rekeyed = _isolated_store(tmp_path, monkeypatch)
    assert rekeyed.load() is False


def test_cipher_seals_tokens_and_rejects_foreign_ones(tmp_path):
    cipher = TokenCipher(str(tmp_path / "a.key"))
    other = TokenCipher(str(tmp_path / "b.key"))

    sealed = cipher.encrypt_token("op-token-7")
    assert sealed != "op-token-7"
    assert cipher.decrypt_token(sealed) == "op-token-7"
    assert other.decrypt_token(sealed) is None
    assert cipher.decrypt_token("") is None
    with pytest.raises(ValueError):
        cipher.encrypt_token("")
