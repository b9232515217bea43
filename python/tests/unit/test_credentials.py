import os
from datetime import datetime, timezone

import pytest

from linear_cli.config import (
    MissingAPIKeyError,
    load_settings,
    require_api_key,
    resolve_api_key,
)
from linear_cli.credentials import CredentialStore, CredentialStoreError, default_store_path

SAVED_AT = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


def test_default_store_path_honours_xdg(tmp_path):
    assert default_store_path({"XDG_DATA_HOME": str(tmp_path)}) == tmp_path / "linear" / "auth.json"


def test_save_load_delete(tmp_path):
    store = CredentialStore(tmp_path / "linear" / "auth.json")
    assert store.load() is None

    store.save("lin_api_abc", SAVED_AT)
    assert oct(os.stat(store.path).st_mode & 0o777) == oct(0o600)
    stored = store.load()
    assert stored.api_key == "lin_api_abc"
    assert stored.saved_at == SAVED_AT

    store.delete()
    assert store.load() is None
    store.delete()


def test_save_rejects_empty_key(tmp_path):
    store = CredentialStore(tmp_path / "auth.json")
    with pytest.raises(ValueError):
        store.save("")


def test_malformed_file_raises(tmp_path):
    path = tmp_path / "auth.json"
    path.write_text("not json", encoding="utf-8")
    with pytest.raises(CredentialStoreError):
        CredentialStore(path).load()


def test_empty_key_in_file_counts_as_missing(tmp_path):
    path = tmp_path / "auth.json"
    path.write_text('{"api_key": ""}', encoding="utf-8")
    assert CredentialStore(path).load() is None


def test_api_key_precedence(tmp_path):
    store = CredentialStore(tmp_path / "auth.json")
    store.save("from-file", SAVED_AT)
    env = {"LINEAR_API_KEY": "from-env"}

    assert resolve_api_key("from-flag", store, env) == ("from-flag", "flag")
    assert resolve_api_key(None, store, env) == ("from-env", "env")
    assert resolve_api_key(None, store, {}) == ("from-file", "file")
    assert resolve_api_key(None, CredentialStore(tmp_path / "none.json"), {}) == ("", "none")


def test_require_api_key_raises_when_missing(tmp_path):
    with pytest.raises(MissingAPIKeyError):
        require_api_key(None, CredentialStore(tmp_path / "auth.json"), {})


def test_load_settings(tmp_path):
    settings = load_settings(
        None, {"LINEAR_API_URL": "https://linear.test/", "XDG_DATA_HOME": str(tmp_path)}
    )
    assert settings.base_url == "https://linear.test/"
    assert settings.timeout_seconds == 10.0
    assert settings.schema_path == tmp_path / "linear" / "schema.json"

    assert load_settings(2.5, {}).timeout_seconds == 2.5
    with pytest.raises(ValueError):
        load_settings(0, {})
