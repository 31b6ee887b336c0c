"""Tests for credentials.py: memory and file-backed credential stores."""
import json

from wealthify.credentials import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_PROFILE_KEY,
    FileCredentialStore,
    MemoryCredentialStore,
)
from wealthify.models.auth import Credentials


def _creds(**overrides):
    values = {"access_token": "acc", "refresh_token": "ref", "profile": {"email": "asha@example.com"}}
    values.update(overrides)
    return Credentials(**values)


# ── MemoryCredentialStore ────────────────────────────────────────────

def test_memory_empty_by_default():
    assert MemoryCredentialStore().get() is None


def test_memory_set_get_clear():
    store = MemoryCredentialStore()
    store.set(_creds())
    assert store.get().access_token == "acc"
    store.clear()
    assert store.get() is None


# ── FileCredentialStore ──────────────────────────────────────────────

def test_file_missing_is_empty(tmp_path):
    assert FileCredentialStore(tmp_path / "creds.json").get() is None


def test_file_persists_three_keys(tmp_path):
    path = tmp_path / "nested" / "creds.json"
    FileCredentialStore(path).set(_creds())

    data = json.loads(path.read_text())
    assert data == {
        ACCESS_TOKEN_KEY: "acc",
        REFRESH_TOKEN_KEY: "ref",
        USER_PROFILE_KEY: {"email": "asha@example.com"},
    }
    assert FileCredentialStore(path).get() == _creds()


def test_file_is_private(tmp_path):
    path = tmp_path / "creds.json"
    FileCredentialStore(path).set(_creds())
    assert path.stat().st_mode & 0o777 == 0o600


def test_file_clear_removes_everything(tmp_path):
    path = tmp_path / "creds.json"
    store = FileCredentialStore(path)
    store.set(_creds())
    store.clear()
    assert not path.exists()
    assert store.get() is None
    store.clear()


def test_file_with_one_token_reads_as_empty(tmp_path):
    path = tmp_path / "creds.json"
    path.write_text(json.dumps({ACCESS_TOKEN_KEY: "acc"}))
    assert FileCredentialStore(path).get() is None


def test_file_unreadable_reads_as_empty(tmp_path):
    path = tmp_path / "creds.json"
    path.write_text("{not json")
    assert FileCredentialStore(path).get() is None


def test_file_overwrite_replaces_profile(tmp_path):
    store = FileCredentialStore(tmp_path / "creds.json")
    store.set(_creds())
    store.set(_creds(access_token="acc2", profile=None))
    creds = store.get()
    assert creds.access_token == "acc2"
    assert creds.profile is None
