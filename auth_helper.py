"""
"Remember me" handling for the dashboard login.

Stores the shop credentials together with an expiry timestamp in a
`KeyValueStore`, so a revisit within the validity window skips the login form.
The blob shape is `{"config": {"url", "clientId", "clientSecret"}, "expiry": <epoch ms>}`.
"""

import json
import logging
import time
from typing import Optional

from connectors.credential_store import KeyValueStore
from connectors.shopware_connector import ShopConfig

CREDENTIALS_KEY = 'shopware-creds-v2'
REMEMBER_DAYS = 30
REMEMBER_MS = REMEMBER_DAYS * 24 * 60 * 60 * 1000

logger = logging.getLogger('shop_dashboard')


def _now_ms() -> int:
    return int(time.time() * 1000)


def remember_credentials(store: KeyValueStore, config: ShopConfig, now_ms: Optional[int] = None) -> int:
    """
    Persist `config` for the next 30 days.

    Args:
        store: Where to keep the blob
        config: Credentials entered in the login form
        now_ms: Current time in epoch milliseconds (defaults to the clock)

    Returns:
        The expiry timestamp written, in epoch milliseconds
    """
    now_ms = _now_ms() if now_ms is None else now_ms
    expiry = now_ms + REMEMBER_MS
    store.set(CREDENTIALS_KEY, json.dumps({'config': config.to_dict(), 'expiry': expiry}))
    logger.info('Remembered credentials for %s until %d', config.url, expiry)
    return expiry


def load_remembered_credentials(store: KeyValueStore, now_ms: Optional[int] = None) -> Optional[ShopConfig]:
    """
    Return the remembered config if it exists and has not expired.

    Expired, corrupt or incomplete blobs are removed from the store.
    """
    raw = store.get(CREDENTIALS_KEY)
    if not raw:
        return None
    now_ms = _now_ms() if now_ms is None else now_ms
    try:
        parsed = json.loads(raw)
        expiry = parsed.get('expiry')
        if parsed.get('config') and expiry and now_ms < expiry:
            return ShopConfig.from_dict(parsed['config'])
    except (ValueError, TypeError, KeyError, AttributeError):
        logger.warning('Discarding unreadable remembered credentials')
    store.delete(CREDENTIALS_KEY)
    return None


def forget_credentials(store: KeyValueStore) -> None:
    store.delete(CREDENTIALS_KEY)
