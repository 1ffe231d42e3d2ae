"""Environment-driven settings for the shop dashboard."""
import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_SHOP_URL = 'https://www.schlafgut.com'
ALL_CHANNELS = 'ALL'


def _env_flag(name: str, default: str = '0') -> bool:
    return str(os.environ.get(name, default)).lower() in ('1', 'true', 'yes')


@dataclass
class DashboardSettings:
    """
    Runtime configuration.

    Attributes:
        shop_url: Base URL of the Shopware shop (fixed in the login form)
        request_timeout: Seconds before an API request is abandoned
        channels: Selectable sales channel names; `ALL` is always offered too
        default_channel: Channel selected after login
        credential_store: `file`, `keyring` or `memory`
        store_path: Location of the JSON file store
        log_dir: Directory for `dashboard.log`
        demo_mode: Answer API calls from the synthetic demo transport
    """

    shop_url: str = DEFAULT_SHOP_URL
    request_timeout: float = 20.0
    channels: List[str] = field(default_factory=lambda: ['schlafgut.com', 'API Channelengine'])
    default_channel: str = 'schlafgut.com'
    credential_store: str = 'file'
    store_path: str = os.path.join('data', 'dashboard_store.json')
    log_dir: str = 'logs'
    demo_mode: bool = False

    @classmethod
    def from_env(cls) -> 'DashboardSettings':
        defaults = cls()
        channels_raw = os.environ.get('DASHBOARD_CHANNELS')
        channels = [c.strip() for c in channels_raw.split(',') if c.strip()] if channels_raw else defaults.channels
        return cls(
            shop_url=os.environ.get('SHOPWARE_URL', DEFAULT_SHOP_URL).rstrip('/'),
            request_timeout=float(os.environ.get('SHOPWARE_TIMEOUT', defaults.request_timeout)),
            channels=channels,
            default_channel=os.environ.get('DASHBOARD_DEFAULT_CHANNEL', defaults.default_channel),
            credential_store=os.environ.get('DASHBOARD_CREDENTIAL_STORE', defaults.credential_store),
            store_path=os.environ.get('DASHBOARD_STORE_PATH', defaults.store_path),
            log_dir=os.environ.get('DASHBOARD_LOG_DIR', defaults.log_dir),
            demo_mode=_env_flag('DASHBOARD_DEMO'),
        )

    @property
    def channel_options(self) -> List[str]:
        return list(self.channels) + [ALL_CHANNELS]
