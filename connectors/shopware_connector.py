"""Shopware 6 Admin API connector.

Authenticates with the client-credentials grant, runs one aggregated order
search per dashboard refresh and normalizes the response into the shapes in
`connectors.models`.

The bearer token is cached on the client instance and has no tracked expiry:
a 401 from the search endpoint triggers exactly one re-authentication and one
resend of the identical request. Missing or partial fields in the response are
defaulted instead of failing the whole fetch.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from connectors.models import ChannelMetric, DashboardData, OrderSummary

logger = logging.getLogger('shop_dashboard')

TOKEN_PATH = '/api/oauth/token'
SEARCH_ORDER_PATH = '/api/search/order'
RECENT_ORDERS_LIMIT = 5
PAID_STATE = 'paid'
CHANNEL_COLORS = ['#000000', '#189eff', '#a8a8a8', '#e5e7eb']
DEFAULT_TIMEOUT = 20


class ShopwareError(Exception):
    """Base class for connector failures."""


class AuthenticationError(ShopwareError):
    def __init__(self, message: str = 'Authentication failed'):
        super().__init__(message)


class RequestError(ShopwareError):
    def __init__(self, message: str = 'Failed to fetch orders'):
        super().__init__(message)


@dataclass(frozen=True)
class ShopConfig:
    url: str
    client_id: str
    client_secret: str

    def __post_init__(self):
        object.__setattr__(self, 'url', self.url.rstrip('/'))

    def to_dict(self) -> Dict[str, str]:
        return {'url': self.url, 'clientId': self.client_id, 'clientSecret': self.client_secret}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShopConfig':
        return cls(url=data['url'], client_id=data['clientId'], client_secret=data['clientSecret'])


def format_utc(value: datetime) -> str:
    """Render the wall-clock fields of `value` with a fixed `+00:00` offset.

    The local calendar date and time are kept as-is rather than converted, so
    "today 00:00" stays on today's date whatever the local offset is.
    """
    return value.strftime('%Y-%m-%dT%H:%M:%S') + '+00:00'


def round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def build_search_payload(channel_filter: Optional[str], start: datetime, end: datetime, only_paid: bool) -> Dict[str, Any]:
    """Build the order search body: filters, sort, associations and aggregations."""
    filters: List[Dict[str, Any]] = [
        {
            'type': 'range',
            'field': 'orderDate',
            'parameters': {'gte': format_utc(start), 'lte': format_utc(end)},
        }
    ]
    if channel_filter:
        filters.append({'type': 'equals', 'field': 'salesChannel.name', 'value': channel_filter})
    if only_paid:
        filters.append({
            'type': 'equals',
            'field': 'transactions.stateMachineState.technicalName',
            'value': PAID_STATE,
        })

    associations: Dict[str, Any] = {
        'stateMachineState': {},
        'orderCustomer': {},
        'salesChannel': {},
    }
    if only_paid:
        associations['transactions'] = {'associations': {'stateMachineState': {}}}

    return {
        'page': 1,
        'limit': RECENT_ORDERS_LIMIT,
        'total-count-mode': 1,
        'filter': filters,
        'sort': [{'field': 'orderDateTime', 'order': 'DESC'}],
        'associations': associations,
        'aggregations': [
            {'name': 'todaysStats', 'type': 'stats', 'field': 'amountTotal'},
            {
                'name': 'channels',
                'type': 'terms',
                'field': 'salesChannel.name',
                'aggregation': {'name': 'revenue', 'type': 'stats', 'field': 'amountTotal'},
            },
        ],
    }


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_number(value: Any) -> float:
    try:
        return float(value) if value else 0.0
    except (TypeError, ValueError):
        return 0.0


def _parse_order(o: Dict[str, Any]) -> OrderSummary:
    state = _as_dict(o.get('stateMachineState'))
    customer = _as_dict(o.get('orderCustomer'))
    channel = _as_dict(o.get('salesChannel'))
    return OrderSummary(
        id=str(o.get('id') or ''),
        order_number=str(o.get('orderNumber') or ''),
        amount_total=_as_number(o.get('amountTotal')),
        order_date_time=str(o.get('orderDateTime') or ''),
        state_name=state.get('name') or 'Unknown',
        state_technical_name=state.get('technicalName') or 'unknown',
        customer_first_name=customer.get('firstName') or '',
        customer_last_name=customer.get('lastName') or '',
        customer_email=customer.get('email') or '',
        sales_channel_name=channel.get('name') or 'Unknown',
    )


def normalize_dashboard(body: Dict[str, Any]) -> DashboardData:
    """Map a search response into `DashboardData`, defaulting anything missing."""
    body = _as_dict(body)
    aggregations = _as_dict(body.get('aggregations'))
    stats = _as_dict(aggregations.get('todaysStats'))
    total_revenue = _as_number(stats.get('sum'))
    average_basket = _as_number(stats.get('avg'))
    try:
        total_orders = int(body.get('total') or 0)
    except (TypeError, ValueError):
        total_orders = 0

    buckets = _as_dict(aggregations.get('channels')).get('buckets') or []
    channels: List[ChannelMetric] = []
    for index, bucket in enumerate(b for b in buckets if isinstance(b, dict)):
        revenue = _as_number(_as_dict(bucket.get('revenue')).get('sum'))
        share = revenue / total_revenue * 100 if total_revenue > 0 else 0
        channels.append(ChannelMetric(
            name=str(bucket.get('key') or 'Unknown'),
            revenue=revenue,
            percentage=round_half_up(share),
            color=CHANNEL_COLORS[index % len(CHANNEL_COLORS)],
        ))

    records = body.get('data') or []
    orders = [_parse_order(o) for o in records if isinstance(o, dict)][:RECENT_ORDERS_LIMIT]

    return DashboardData(
        daily_revenue=total_revenue,
        total_orders=total_orders,
        average_basket=average_basket,
        recent_orders=orders,
        sales_channels=channels,
    )


class ShopwareClient:
    """Session client for one login.

    Requests are issued sequentially on the calling thread. A new client is
    created per login and discarded (`close()`) on logout.
    """

    def __init__(self, config: ShopConfig, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.config = config
        self.timeout = timeout
        self._http = session if session is not None else requests.Session()
        self._token: Optional[str] = None

    @property
    def token(self) -> Optional[str]:
        return self._token

    def authenticate(self) -> str:
        payload = {
            'grant_type': 'client_credentials',
            'client_id': self.config.client_id,
            'client_secret': self.config.client_secret,
        }
        try:
            r = self._http.post(
                self.config.url + TOKEN_PATH,
                json=payload,
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning('Token request to %s failed: %s', self.config.url, exc)
            raise AuthenticationError() from exc

        if not r.ok:
            logger.warning('Authentication rejected by %s (HTTP %s)', self.config.url, r.status_code)
            raise AuthenticationError()
        try:
            token = r.json().get('access_token')
        except (ValueError, AttributeError) as exc:
            raise AuthenticationError() from exc
        if not token:
            raise AuthenticationError()

        self._token = token
        logger.info('Authenticated against %s', self.config.url)
        return token

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self._token}',
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        }

    def _post_search(self, payload: Dict[str, Any]) -> requests.Response:
        try:
            return self._http.post(
                self.config.url + SEARCH_ORDER_PATH,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning('Order search against %s failed: %s', self.config.url, exc)
            raise RequestError() from exc

    def fetch_dashboard(self, channel_filter: Optional[str], start: datetime, end: datetime, only_paid: bool) -> DashboardData:
        """Run the dashboard search for one window and return normalized data."""
        if not self._token:
            self.authenticate()

        payload = build_search_payload(channel_filter, start, end, only_paid)
        r = self._post_search(payload)
        if r.status_code == 401:
            logger.info('Token rejected, re-authenticating once')
            self.authenticate()
            r = self._post_search(payload)

        if not r.ok:
            logger.warning('Order search returned HTTP %s', r.status_code)
            raise RequestError()
        try:
            body = r.json()
        except ValueError as exc:
            raise RequestError() from exc

        data = normalize_dashboard(body)
        logger.info(
            'Fetched dashboard: %d orders, %.2f revenue, channel=%s, paid_only=%s',
            data.total_orders, data.daily_revenue, channel_filter or 'ALL', only_paid,
        )
        return data

    def close(self) -> None:
        self._token = None
        self._http.close()
