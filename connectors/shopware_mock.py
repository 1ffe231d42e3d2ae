"""Synthetic Shopware API for demo mode and tests.

`MockShopwareHttp` stands in for the `requests.Session` used by
`ShopwareClient`. It answers the token and order-search endpoints from a set of
generated orders and honors the parts of the search body the dashboard sends:
range/equals filters, sort, limit, total count and the stats/terms
aggregations.
"""
import datetime
import secrets
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

DEMO_CHANNELS = ['schlafgut.com', 'API Channelengine', 'Amazon']
DEMO_CLIENT_ID = 'SWIADEMO'
DEMO_CLIENT_SECRET = 'demo'

_ORDER_STATES = [('Offen', 'open'), ('In Bearbeitung', 'in_progress'), ('Abgeschlossen', 'completed'), ('Abgebrochen', 'cancelled')]
_PAYMENT_STATES = [('Bezahlt', 'paid'), ('Offen', 'open'), ('Erstattet', 'refunded')]
_FIRST_NAMES = ['Anna', 'Lukas', 'Marie', 'Jonas', 'Sophie', 'Felix', 'Lena', 'Paul']
_LAST_NAMES = ['Müller', 'Schmidt', 'Schneider', 'Fischer', 'Weber', 'Meyer', 'Wagner', 'Becker']
_PRICES = [49.9, 89.0, 129.0, 199.0, 349.0, 599.0, 899.0, 1299.0]

FIELD_COLUMNS = {
    'orderDate': 'order_dt',
    'orderDateTime': 'order_dt',
    'amountTotal': 'amount_total',
    'salesChannel.name': 'channel',
    'stateMachineState.technicalName': 'state_technical',
    'transactions.stateMachineState.technicalName': 'payment_technical',
}


class MockResponse:
    def __init__(self, status_code: int, payload: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    @property
    def text(self) -> str:
        return '' if self._payload is None else str(self._payload)

    def json(self) -> Dict[str, Any]:
        if self._payload is None:
            raise ValueError('No JSON body')
        return self._payload


def generate_mock_orders(days: int = 30, n_per_day: int = 12, channels: Optional[List[str]] = None,
                         now: Optional[datetime.datetime] = None, seed: int = 2024) -> pd.DataFrame:
    """Generate a reproducible set of orders across the last `days` days (today included)."""
    rng = np.random.default_rng(seed)
    channels = channels or DEMO_CHANNELS
    today = (now or datetime.datetime.now()).date()
    rows = []
    number = 10000
    for d in range(days):
        day = today - datetime.timedelta(days=d)
        for _ in range(rng.poisson(n_per_day)):
            number += 1
            seconds = int(rng.integers(0, 24 * 3600))
            order_dt = datetime.datetime.combine(day, datetime.time()) + datetime.timedelta(seconds=seconds)
            state_name, state_tech = _ORDER_STATES[int(rng.choice(len(_ORDER_STATES), p=[0.3, 0.3, 0.35, 0.05]))]
            pay_name, pay_tech = _PAYMENT_STATES[int(rng.choice(len(_PAYMENT_STATES), p=[0.75, 0.2, 0.05]))]
            first = str(rng.choice(_FIRST_NAMES))
            last = str(rng.choice(_LAST_NAMES))
            rows.append({
                'id': rng.bytes(16).hex(),
                'order_number': str(number),
                'amount_total': float(rng.choice(_PRICES)),
                'order_dt': order_dt,
                'state_name': state_name,
                'state_technical': state_tech,
                'payment_name': pay_name,
                'payment_technical': pay_tech,
                'first_name': first,
                'last_name': last,
                'email': f'{first.lower()}.{number}@example.com',
                'channel': str(rng.choice(channels, p=_channel_weights(len(channels)))),
            })
    columns = ['id', 'order_number', 'amount_total', 'order_dt', 'state_name', 'state_technical',
               'payment_name', 'payment_technical', 'first_name', 'last_name', 'email', 'channel']
    return pd.DataFrame(rows, columns=columns)


def _channel_weights(n: int) -> np.ndarray:
    weights = np.arange(n, 0, -1, dtype=float)
    return weights / weights.sum()


def _to_wall_clock(value: str) -> pd.Timestamp:
    ts = pd.Timestamp(value)
    return ts.tz_localize(None) if ts.tzinfo is not None else ts


def _stats(series: pd.Series) -> Dict[str, Any]:
    if series.empty:
        return {'count': 0, 'sum': 0.0, 'avg': None, 'min': None, 'max': None}
    return {
        'count': int(series.count()),
        'sum': round(float(series.sum()), 2),
        'avg': round(float(series.mean()), 2),
        'min': float(series.min()),
        'max': float(series.max()),
    }


class MockShopwareHttp:
    """requests.Session-compatible fake of the Shopware Admin API.

    `reject_next_searches` makes the next N search calls answer 401 regardless
    of the token, which exercises the client's re-authentication path.
    """

    def __init__(self, orders: Optional[pd.DataFrame] = None, client_id: str = DEMO_CLIENT_ID,
                 client_secret: str = DEMO_CLIENT_SECRET, reject_next_searches: int = 0):
        self.orders = orders if orders is not None else generate_mock_orders()
        self.client_id = client_id
        self.client_secret = client_secret
        self.reject_next_searches = reject_next_searches
        self.issued_tokens: List[str] = []
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def post(self, url: str, json: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None,
             timeout: Optional[float] = None) -> MockResponse:
        self.calls.append({'url': url, 'json': json, 'headers': dict(headers or {})})
        if url.endswith('/api/oauth/token'):
            return self._token(json or {})
        if url.endswith('/api/search/order'):
            return self._search(json or {}, headers or {})
        return MockResponse(404, {'errors': [{'detail': 'Not found'}]})

    def close(self) -> None:
        self.closed = True

    def _token(self, body: Dict[str, Any]) -> MockResponse:
        if (body.get('grant_type') != 'client_credentials'
                or body.get('client_id') != self.client_id
                or body.get('client_secret') != self.client_secret):
            return MockResponse(401, {'errors': [{'code': '9', 'detail': 'The client credentials are invalid.'}]})
        token = secrets.token_hex(16)
        self.issued_tokens.append(token)
        return MockResponse(200, {'token_type': 'Bearer', 'expires_in': 600, 'access_token': token})

    def _search(self, body: Dict[str, Any], headers: Dict[str, str]) -> MockResponse:
        if self.reject_next_searches > 0:
            self.reject_next_searches -= 1
            return MockResponse(401, {'errors': [{'detail': 'Access token expired'}]})
        auth = headers.get('Authorization', '')
        if not auth.startswith('Bearer ') or auth[len('Bearer '):] not in self.issued_tokens:
            return MockResponse(401, {'errors': [{'detail': 'Access token invalid'}]})
        try:
            frame = self._apply_filters(self.orders, body.get('filter') or [])
            aggregations = self._aggregate(frame, body.get('aggregations') or [])
        except KeyError as exc:
            return MockResponse(400, {'errors': [{'detail': f'Unknown field {exc}'}]})

        for sort in reversed(body.get('sort') or []):
            column = FIELD_COLUMNS.get(sort.get('field'))
            if column:
                frame = frame.sort_values(column, ascending=str(sort.get('order', 'ASC')).upper() != 'DESC', kind='stable')

        limit = int(body.get('limit') or 25)
        page = int(body.get('page') or 1)
        page_frame = frame.iloc[(page - 1) * limit:page * limit]
        associations = body.get('associations') or {}
        payload = {
            'total': int(len(frame)),
            'data': [self._order_json(row, associations) for row in page_frame.to_dict('records')],
            'aggregations': aggregations,
        }
        return MockResponse(200, payload)

    @staticmethod
    def _apply_filters(frame: pd.DataFrame, filters: List[Dict[str, Any]]) -> pd.DataFrame:
        for flt in filters:
            column = FIELD_COLUMNS[flt['field']]
            if flt.get('type') == 'range':
                params = flt.get('parameters') or {}
                if 'gte' in params:
                    frame = frame[frame[column] >= _to_wall_clock(params['gte'])]
                if 'lte' in params:
                    frame = frame[frame[column] <= _to_wall_clock(params['lte'])]
            elif flt.get('type') == 'equals':
                frame = frame[frame[column] == flt.get('value')]
        return frame

    @staticmethod
    def _aggregate(frame: pd.DataFrame, aggregations: List[Dict[str, Any]]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for agg in aggregations:
            column = FIELD_COLUMNS[agg['field']]
            if agg.get('type') == 'stats':
                result[agg['name']] = _stats(frame[column])
            elif agg.get('type') == 'terms':
                nested = agg.get('aggregation')
                buckets = []
                for key, group in frame.groupby(column, sort=False):
                    bucket: Dict[str, Any] = {'key': key, 'count': int(len(group))}
                    if nested:
                        bucket[nested['name']] = _stats(group[FIELD_COLUMNS[nested['field']]])
                    buckets.append(bucket)
                buckets.sort(key=lambda b: b['count'], reverse=True)
                result[agg['name']] = {'buckets': buckets}
        return result

    @staticmethod
    def _order_json(row: Dict[str, Any], associations: Dict[str, Any]) -> Dict[str, Any]:
        order = {
            'id': row['id'],
            'orderNumber': row['order_number'],
            'amountTotal': row['amount_total'],
            'orderDateTime': pd.Timestamp(row['order_dt']).strftime('%Y-%m-%dT%H:%M:%S.000+00:00'),
        }
        if 'stateMachineState' in associations:
            order['stateMachineState'] = {'name': row['state_name'], 'technicalName': row['state_technical']}
        if 'orderCustomer' in associations:
            order['orderCustomer'] = {'firstName': row['first_name'], 'lastName': row['last_name'], 'email': row['email']}
        if 'salesChannel' in associations:
            order['salesChannel'] = {'name': row['channel']}
        if 'transactions' in associations:
            order['transactions'] = [{
                'stateMachineState': {'name': row['payment_name'], 'technicalName': row['payment_technical']},
            }]
        return order
