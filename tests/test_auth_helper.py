"""Remembered-login blob and the stores underneath it."""
import json

import keyring
import pytest
from cryptography.fernet import Fernet
from keyring.backends import fail

from auth_helper import (
    CREDENTIALS_KEY,
    REMEMBER_MS,
    forget_credentials,
    load_remembered_credentials,
    remember_credentials,
)
from connectors.credential_store import JsonFileStore, KeyringStore, MemoryStore, open_store
from connectors.shopware_connector import ShopConfig

CONFIG = ShopConfig(url='https://www.schlafgut.com', client_id='SWIATEST', client_secret='top-secret')
NOW_MS = 1_700_000_000_000


class TestRememberedCredentials:
    def test_blob_shape(self):
        store = MemoryStore()

        expiry = remember_credentials(store, CONFIG, now_ms=NOW_MS)

        assert expiry == NOW_MS + 30 * 24 * 60 * 60 * 1000
        assert json.loads(store.get(CREDENTIALS_KEY)) == {
            'config': {'url': 'https://www.schlafgut.com', 'clientId': 'SWIATEST', 'clientSecret': 'top-secret'},
            'expiry': expiry,
        }

    def test_loaded_within_window(self):
        store = MemoryStore()
        remember_credentials(store, CONFIG, now_ms=NOW_MS)

        assert load_remembered_credentials(store, now_ms=NOW_MS + REMEMBER_MS - 1) == CONFIG

    def test_expired_blob_is_removed(self):
        store = MemoryStore()
        remember_credentials(store, CONFIG, now_ms=NOW_MS)

        assert load_remembered_credentials(store, now_ms=NOW_MS + REMEMBER_MS) is None
        assert store.get(CREDENTIALS_KEY) is None

    @pytest.mark.parametrize('raw', [
        'not json',
        '[]',
        json.dumps({'expiry': NOW_MS + 1000}),
        json.dumps({'config': {'url': 'https://x'}, 'expiry': NOW_MS + 1000}),
    ])
    def test_unusable_blob_is_removed(self, raw):
        store = MemoryStore({CREDENTIALS_KEY: raw})

        assert load_remembered_credentials(store, now_ms=NOW_MS) is None
        assert store.get(CREDENTIALS_KEY) is None

    def test_nothing_stored(self):
        assert load_remembered_credentials(MemoryStore(), now_ms=NOW_MS) is None

    def test_forget(self):
        store = MemoryStore()
        remember_credentials(store, CONFIG, now_ms=NOW_MS)

        forget_credentials(store)

        assert store.get(CREDENTIALS_KEY) is None


class TestJsonFileStore:
    def test_plain_text_without_key(self, tmp_path, monkeypatch):
        monkeypatch.delenv('DASHBOARD_SECRET_KEY', raising=False)
        path = tmp_path / 'data' / 'store.json'
        store = JsonFileStore(str(path))

        store.set('k', 'value')

        assert store.get('k') == 'value'
        assert json.loads(path.read_text()) == {'k': {'value': 'value'}}

    def test_encrypted_with_key(self, tmp_path, monkeypatch):
        monkeypatch.setenv('DASHBOARD_SECRET_KEY', Fernet.generate_key().decode())
        path = tmp_path / 'store.json'
        store = JsonFileStore(str(path))

        remember_credentials(store, CONFIG, now_ms=NOW_MS)

        assert 'top-secret' not in path.read_text()
        assert 'enc' in json.loads(path.read_text())[CREDENTIALS_KEY]
        assert load_remembered_credentials(store, now_ms=NOW_MS) == CONFIG

    def test_wrong_key_reads_as_absent(self, tmp_path, monkeypatch):
        path = tmp_path / 'store.json'
        monkeypatch.setenv('DASHBOARD_SECRET_KEY', Fernet.generate_key().decode())
        JsonFileStore(str(path)).set('k', 'value')

        monkeypatch.setenv('DASHBOARD_SECRET_KEY', Fernet.generate_key().decode())

        assert JsonFileStore(str(path)).get('k') is None

    def test_invalid_key_does_not_raise(self, tmp_path, monkeypatch):
        monkeypatch.setenv('DASHBOARD_SECRET_KEY', 'not-a-fernet-key')
        path = tmp_path / 'store.json'
        path.write_text(json.dumps({CREDENTIALS_KEY: {'enc': 'gAAAAA-stale'}}))
        store = JsonFileStore(str(path))

        remember_credentials(store, CONFIG, now_ms=NOW_MS)

        assert 'top-secret' not in path.read_text()
        assert load_remembered_credentials(store, now_ms=NOW_MS) is None

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / 'store.json'
        path.write_text('{broken')

        assert JsonFileStore(str(path)).get('k') is None

    def test_delete(self, tmp_path, monkeypatch):
        monkeypatch.delenv('DASHBOARD_SECRET_KEY', raising=False)
        store = JsonFileStore(str(tmp_path / 'store.json'))
        store.set('a', '1')
        store.set('b', '2')

        store.delete('a')
        store.delete('missing')

        assert store.get('a') is None
        assert store.get('b') == '2'


def test_open_store_backends(tmp_path):
    assert isinstance(open_store('memory'), MemoryStore)
    assert isinstance(open_store('keyring'), KeyringStore)
    file_store = open_store('file', str(tmp_path / 'store.json'))
    assert isinstance(file_store, JsonFileStore)
    assert file_store.path == str(tmp_path / 'store.json')
    with pytest.raises(ValueError):
        open_store('redis')


@pytest.fixture
def no_keyring_backend():
    previous = keyring.get_keyring()
    keyring.set_keyring(fail.Keyring())
    yield
    keyring.set_keyring(previous)


def test_keyring_store_without_backend(no_keyring_backend):
    store = KeyringStore()

    remember_credentials(store, CONFIG, now_ms=NOW_MS)

    assert store.get(CREDENTIALS_KEY) is None
    assert load_remembered_credentials(store, now_ms=NOW_MS) is None
    forget_credentials(store)
