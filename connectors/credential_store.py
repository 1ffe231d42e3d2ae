"""Small key-value stores for persisted dashboard state.

Three backends share one interface:

- `JsonFileStore` keeps values in a JSON file (default `data/dashboard_store.json`).
  When `DASHBOARD_SECRET_KEY` holds a Fernet key the values are encrypted,
  otherwise they are written in plain text. Generate a key with:

    from cryptography.fernet import Fernet
    print(Fernet.generate_key().decode())

- `KeyringStore` uses the OS keychain through `keyring`.
- `MemoryStore` keeps everything in a dict (tests, ephemeral sessions).

Keep the secret key out of source control.
"""
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Optional

import keyring
from cryptography.fernet import Fernet, InvalidToken
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger('shop_dashboard')

STORE_FILE = os.path.join('data', 'dashboard_store.json')
KEYRING_SERVICE = 'shop_dashboard'


def can_encrypt() -> bool:
    return bool(os.environ.get('DASHBOARD_SECRET_KEY'))


def _cipher() -> Optional[Fernet]:
    key = os.environ.get('DASHBOARD_SECRET_KEY')
    if not key:
        return None
    try:
        return Fernet(key.encode() if isinstance(key, str) else key)
    except ValueError:
        logger.error('Invalid secret key in DASHBOARD_SECRET_KEY; encrypted values are unavailable')
        return None


class KeyValueStore(ABC):
    """String values under string keys."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """JSON file store; entries are `{"enc": ...}` or `{"value": ...}`."""

    def __init__(self, path: str = STORE_FILE):
        self.path = path

    def _load(self) -> Dict[str, Dict[str, str]]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.warning('Store file %s is unreadable; treating it as empty', self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Dict[str, str]]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)

    def get(self, key: str) -> Optional[str]:
        entry = self._load().get(key)
        if not isinstance(entry, dict):
            return None
        if 'enc' in entry:
            cipher = _cipher()
            if cipher is None:
                return None
            try:
                return cipher.decrypt(entry['enc'].encode()).decode()
            except (InvalidToken, ValueError):
                logger.warning('Could not decrypt stored value for %s', key)
                return None
        return entry.get('value')

    def set(self, key: str, value: str) -> None:
        data = self._load()
        cipher = _cipher()
        if cipher is not None:
            data[key] = {'enc': cipher.encrypt(value.encode()).decode()}
        elif can_encrypt():
            logger.warning('Not storing %s: the secret key is invalid', key)
            return
        else:
            data[key] = {'value': value}
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


class KeyringStore(KeyValueStore):
    def __init__(self, service: str = KEYRING_SERVICE):
        self.service = service

    def get(self, key: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service, key)
        except KeyringError:
            logger.exception('Keyring lookup failed for %s', key)
            return None

    def set(self, key: str, value: str) -> None:
        try:
            keyring.set_password(self.service, key, value)
        except KeyringError:
            logger.exception('Keyring write failed for %s; value not persisted', key)

    def delete(self, key: str) -> None:
        try:
            keyring.delete_password(self.service, key)
        except PasswordDeleteError:
            pass
        except KeyringError:
            logger.exception('Keyring delete failed for %s', key)


def open_store(backend: str = 'file', path: str = STORE_FILE) -> KeyValueStore:
    """Return the store for a configured backend name."""
    if backend == 'file':
        return JsonFileStore(path)
    if backend == 'keyring':
        return KeyringStore()
    if backend == 'memory':
        return MemoryStore()
    raise ValueError(f'Unknown credential store backend: {backend!r}')
