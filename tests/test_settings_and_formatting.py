import os

from app_dashboard import channel_label, format_eur, format_eur_cents
from connectors.models import ChannelMetric, DashboardData, OrderSummary
from settings import DEFAULT_SHOP_URL, DashboardSettings


def test_settings_defaults(monkeypatch):
    for name in ('SHOPWARE_URL', 'SHOPWARE_TIMEOUT', 'DASHBOARD_CHANNELS', 'DASHBOARD_DEFAULT_CHANNEL',
                 'DASHBOARD_CREDENTIAL_STORE', 'DASHBOARD_STORE_PATH', 'DASHBOARD_LOG_DIR', 'DASHBOARD_DEMO'):
        monkeypatch.delenv(name, raising=False)

    settings = DashboardSettings.from_env()

    assert settings.shop_url == DEFAULT_SHOP_URL
    assert settings.request_timeout == 20.0
    assert settings.channel_options == ['schlafgut.com', 'API Channelengine', 'ALL']
    assert settings.credential_store == 'file'
    assert settings.store_path == os.path.join('data', 'dashboard_store.json')
    assert settings.demo_mode is False


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv('SHOPWARE_URL', 'https://shop.example.com/')
    monkeypatch.setenv('SHOPWARE_TIMEOUT', '5')
    monkeypatch.setenv('DASHBOARD_CHANNELS', 'Storefront, Amazon ,')
    monkeypatch.setenv('DASHBOARD_CREDENTIAL_STORE', 'keyring')
    monkeypatch.setenv('DASHBOARD_DEMO', 'yes')

    settings = DashboardSettings.from_env()

    assert settings.shop_url == 'https://shop.example.com'
    assert settings.request_timeout == 5.0
    assert settings.channels == ['Storefront', 'Amazon']
    assert settings.credential_store == 'keyring'
    assert settings.demo_mode is True


def test_currency_formatting():
    assert format_eur(12345.6) == '12.346 €'
    assert format_eur(0) == '0 €'
    assert format_eur_cents(1234.5) == '1.234,50 €'
    assert format_eur_cents(37.54) == '37,54 €'


def test_channel_label():
    assert channel_label('ALL') == 'Alle Kanäle'
    assert channel_label('schlafgut.com') == 'schlafgut.com'


def test_dashboard_frames():
    data = DashboardData(
        daily_revenue=300.0,
        total_orders=9,
        recent_orders=[OrderSummary(id='1', order_number='10001', amount_total=300.0,
                                    order_date_time='2024-01-01T10:00:00', customer_first_name='Anna',
                                    customer_last_name='Müller', sales_channel_name='schlafgut.com')],
        sales_channels=[ChannelMetric(name='schlafgut.com', revenue=300.0, percentage=100, color='#000000')],
    )

    orders = data.orders_frame()
    assert list(orders.columns) == ['Bestellnr.', 'Datum', 'Kunde', 'Kanal', 'Status', 'Betrag']
    assert orders.iloc[0]['Kunde'] == 'Anna Müller'
    assert orders.iloc[0]['Datum'] == '01.01.2024 10:00'
    assert data.channels_frame().iloc[0]['percentage'] == 100
    assert DashboardData().orders_frame().empty


def test_order_dates_are_formatted_for_display():
    data = DashboardData(recent_orders=[
        OrderSummary(id='1', order_number='10002', amount_total=10.0,
                     order_date_time='2024-01-01T12:00:00.000+00:00'),
        OrderSummary(id='2', order_number='10003', amount_total=20.0, order_date_time=''),
    ])

    dates = list(data.orders_frame()['Datum'])

    assert dates == ['01.01.2024 12:00', '']
