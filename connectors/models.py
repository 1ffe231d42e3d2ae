"""Display-ready shapes returned by the Shopware connector.

These are the normalized results of one order search: KPI values, the most
recent orders and the revenue split per sales channel. The dashboard renders
them directly or through the DataFrame helpers below.
"""
from dataclasses import dataclass, field
from typing import List

import pandas as pd


@dataclass
class OrderSummary:
    id: str
    order_number: str
    amount_total: float
    order_date_time: str
    state_name: str = 'Unknown'
    state_technical_name: str = 'unknown'
    customer_first_name: str = ''
    customer_last_name: str = ''
    customer_email: str = ''
    sales_channel_name: str = 'Unknown'

    @property
    def customer_name(self) -> str:
        return f'{self.customer_first_name} {self.customer_last_name}'.strip()


@dataclass
class ChannelMetric:
    name: str
    revenue: float
    percentage: int
    color: str


@dataclass
class DashboardData:
    """Result of a single dashboard refresh.

    `total_orders` is the total match count reported by the shop, while
    `recent_orders` only holds the first page (at most 5 orders, newest first).
    """

    daily_revenue: float = 0.0
    total_orders: int = 0
    average_basket: float = 0.0
    recent_orders: List[OrderSummary] = field(default_factory=list)
    sales_channels: List[ChannelMetric] = field(default_factory=list)

    def orders_frame(self) -> pd.DataFrame:
        """Recent orders as a DataFrame with display column names."""
        rows = [
            {
                'Bestellnr.': o.order_number,
                'Datum': o.order_date_time,
                'Kunde': o.customer_name,
                'Kanal': o.sales_channel_name,
                'Status': o.state_name,
                'Betrag': o.amount_total,
            }
            for o in self.recent_orders
        ]
        frame = pd.DataFrame(rows, columns=['Bestellnr.', 'Datum', 'Kunde', 'Kanal', 'Status', 'Betrag'])
        # shown as the wall-clock fields the shop returned
        dates = pd.to_datetime(frame['Datum'], errors='coerce', utc=True, format='ISO8601')
        frame['Datum'] = dates.dt.strftime('%d.%m.%Y %H:%M').fillna(frame['Datum'])
        return frame

    def channels_frame(self) -> pd.DataFrame:
        rows = [
            {'channel': c.name, 'revenue': c.revenue, 'percentage': c.percentage, 'color': c.color}
            for c in self.sales_channels
        ]
        return pd.DataFrame(rows, columns=['channel', 'revenue', 'percentage', 'color'])
