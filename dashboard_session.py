"""Explicit login session for the dashboard.

One `DashboardSession` lives for as long as the dashboard is open. Logging in
creates a fresh `ShopwareClient`; logging out closes it and clears all data.

State machine::

    LOGGED_OUT -> AUTHENTICATING -> READY <-> REFRESHING

A failure while no data has been loaded yet returns to LOGGED_OUT and is raised
to the caller (shown as a login error). A failure during a later refresh is
logged and recorded in `error_log`, and the last good data stays in place.

Fetches are serialized with a lock, so overlapping triggers (manual refresh,
filter change, initial load) run one after another and the last request issued
is the last one written.
"""
import datetime
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from connectors.models import DashboardData
from connectors.shopware_connector import ShopConfig, ShopwareClient
from date_ranges import MODE_TODAY, DateWindow, resolve_range
from settings import ALL_CHANNELS

logger = logging.getLogger('shop_dashboard')

MAX_ERROR_LOG = 50


class SessionState(enum.Enum):
    LOGGED_OUT = 'logged_out'
    AUTHENTICATING = 'authenticating'
    READY = 'ready'
    REFRESHING = 'refreshing'


@dataclass
class DashboardFilters:
    channel: str = ALL_CHANNELS
    date_mode: str = MODE_TODAY
    custom_start: Optional[datetime.date] = None
    custom_end: Optional[datetime.date] = None
    only_paid: bool = False

    @property
    def channel_filter(self) -> Optional[str]:
        if not self.channel or self.channel == ALL_CHANNELS:
            return None
        return self.channel

    def date_window(self, now: Optional[datetime.datetime] = None) -> DateWindow:
        return resolve_range(self.date_mode, now, self.custom_start, self.custom_end)


ClientFactory = Callable[[ShopConfig], ShopwareClient]


class DashboardSession:
    def __init__(self, client_factory: ClientFactory = ShopwareClient,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now):
        self._client_factory = client_factory
        self._clock = clock
        self._lock = threading.Lock()
        self.client: Optional[ShopwareClient] = None
        self.config: Optional[ShopConfig] = None
        self.state = SessionState.LOGGED_OUT
        self.data: Optional[DashboardData] = None
        self.login_error: Optional[str] = None
        self.error_log: List[Tuple[datetime.datetime, str]] = []

    @property
    def is_logged_in(self) -> bool:
        return self.client is not None

    def login(self, config: ShopConfig, filters: DashboardFilters) -> DashboardData:
        """Start a session for `config` and load the first dashboard."""
        with self._lock:
            self._discard_client()
            self.data = None
            self.error_log = []
            self.login_error = None
            self.config = config
            self.client = self._client_factory(config)
            self.state = SessionState.AUTHENTICATING
            return self._load(filters)

    def refresh(self, filters: DashboardFilters) -> Optional[DashboardData]:
        """Reload with `filters`; returns the fresh or the retained data."""
        with self._lock:
            if self.client is None:
                raise RuntimeError('refresh() called without an active login')
            self.state = SessionState.REFRESHING
            return self._load(filters)

    def logout(self) -> None:
        with self._lock:
            self._discard_client()
            self.config = None
            self.data = None
            self.login_error = None
            self.error_log = []
            self.state = SessionState.LOGGED_OUT

    def _load(self, filters: DashboardFilters) -> Optional[DashboardData]:
        try:
            start, end = filters.date_window(self._clock())
            data = self.client.fetch_dashboard(filters.channel_filter, start, end, filters.only_paid)
        except Exception as exc:
            if self.data is None:
                logger.warning('Initial dashboard load failed: %s', exc)
                self.login_error = str(exc) or 'Verbindung fehlgeschlagen'
                self._discard_client()
                self.config = None
                self.state = SessionState.LOGGED_OUT
                raise
            logger.exception('Dashboard refresh failed; keeping previous data')
            self._record_error(str(exc) or exc.__class__.__name__)
            self.state = SessionState.READY
            return self.data

        self.data = data
        self.login_error = None
        self.state = SessionState.READY
        return data

    def _record_error(self, message: str) -> None:
        self.error_log.append((self._clock(), message))
        del self.error_log[:-MAX_ERROR_LOG]

    def _discard_client(self) -> None:
        if self.client is not None:
            self.client.close()
        self.client = None
