import datetime
import logging
from typing import Optional

import plotly.graph_objs as go
import streamlit as st

from auth_helper import forget_credentials, load_remembered_credentials, remember_credentials
from connectors.credential_store import open_store
from connectors.models import DashboardData
from connectors.shopware_connector import ShopConfig, ShopwareClient, ShopwareError
from connectors.shopware_mock import MockShopwareHttp
from dashboard_session import DashboardFilters, DashboardSession
from date_ranges import MODE_CUSTOM, MODE_LABELS, MODE_TODAY
from logging_setup import configure_logging, tail_log
from settings import ALL_CHANNELS, DashboardSettings

logger = logging.getLogger('shop_dashboard')


def format_eur(value: float) -> str:
    """de-DE currency without decimals, e.g. 12345.6 -> '12.346 €'."""
    return f'{value:,.0f}'.replace(',', '.') + ' €'


def format_eur_cents(value: float) -> str:
    return f'{value:,.2f}'.replace(',', '_').replace('.', ',').replace('_', '.') + ' €'


def channel_label(channel: str) -> str:
    return 'Alle Kanäle' if channel == ALL_CHANNELS else channel


def _client_factory(settings: DashboardSettings):
    if settings.demo_mode:
        demo_http = MockShopwareHttp()
        return lambda config: ShopwareClient(config, session=demo_http, timeout=settings.request_timeout)
    return lambda config: ShopwareClient(config, timeout=settings.request_timeout)


def _current_filters(settings: DashboardSettings) -> DashboardFilters:
    today = datetime.date.today()
    return DashboardFilters(
        channel=st.session_state.get('selected_channel', settings.default_channel),
        date_mode=st.session_state.get('date_mode', MODE_TODAY),
        custom_start=st.session_state.get('custom_start', today),
        custom_end=st.session_state.get('custom_end', today),
        only_paid=st.session_state.get('only_paid', False),
    )


def _login(session: DashboardSession, config: ShopConfig, settings: DashboardSettings) -> None:
    filters = _current_filters(settings)
    try:
        session.login(config, filters)
    except ShopwareError as e:
        st.session_state['login_error'] = str(e)
    except Exception as e:
        logger.exception('Unexpected login failure')
        st.session_state['login_error'] = str(e) or 'Verbindung fehlgeschlagen'
    else:
        st.session_state.pop('login_error', None)
        st.session_state['last_filters'] = filters


def render_login(session: DashboardSession, settings: DashboardSettings, store) -> None:
    st.markdown('## Dashboard Login')
    st.caption(settings.shop_url.replace('https://', '').replace('www.', ''))
    if st.session_state.get('login_error'):
        st.error(f"Fehler: {st.session_state['login_error']}")

    with st.form('login_form'):
        client_id = st.text_input('Access Key ID', placeholder='SWIA...')
        client_secret = st.text_input('Secret Access Key', type='password')
        remember = st.checkbox('Angemeldet bleiben (30 Tage)', value=True)
        submitted = st.form_submit_button('Verbinden')

    if submitted:
        if not client_id or not client_secret:
            st.session_state['login_error'] = 'Bitte Access Key ID und Secret eingeben'
            st.rerun()
        config = ShopConfig(url=settings.shop_url, client_id=client_id.strip(), client_secret=client_secret.strip())
        if remember:
            remember_credentials(store, config)
        else:
            forget_credentials(store)
        with st.spinner('Lade Daten...'):
            _login(session, config, settings)
        st.rerun()


def render_channels(data: DashboardData) -> None:
    if not data.sales_channels:
        return
    st.markdown('#### Verkaufskanäle')
    for channel in data.sales_channels:
        col_name, col_value = st.columns([3, 2])
        col_name.markdown(
            f"<span style='color:{channel.color}'>&#9679;</span> **{channel.name}**",
            unsafe_allow_html=True,
        )
        col_value.markdown(f'{format_eur(channel.revenue)} · {channel.percentage}%')
        st.progress(min(max(channel.percentage, 0), 100) / 100)

    frame = data.channels_frame()
    fig = go.Figure(go.Pie(
        labels=frame['channel'],
        values=frame['revenue'],
        hole=0.6,
        marker=dict(colors=list(frame['color'])),
        sort=False,
    ))
    fig.update_layout(showlegend=False, margin=dict(l=0, r=0, t=0, b=0), height=260)
    st.plotly_chart(fig, use_container_width=True)


def render_dashboard(session: DashboardSession, settings: DashboardSettings, store, log_file: str) -> None:
    options = settings.channel_options
    if st.session_state.get('selected_channel') not in options:
        st.session_state['selected_channel'] = settings.default_channel if settings.default_channel in options else options[0]

    with st.sidebar:
        st.markdown(f"**Shop:** {session.config.url if session.config else settings.shop_url}")
        st.selectbox('Verkaufskanal', options, format_func=channel_label, key='selected_channel')
        st.markdown('**Zeitraum**')
        st.radio('Modus', list(MODE_LABELS), format_func=MODE_LABELS.get, key='date_mode', horizontal=False)
        if st.session_state.get('date_mode') == MODE_CUSTOM:
            today = datetime.date.today()
            st.date_input('Von', value=st.session_state.get('custom_start', today), key='custom_start')
            st.date_input('Bis', value=st.session_state.get('custom_end', today), key='custom_end')
        st.checkbox('Nur bezahlte Bestellungen', key='only_paid')
        refresh_clicked = st.button('Aktualisieren')
        if st.button('Abmelden', key='logout_btn'):
            forget_credentials(store)
            session.logout()
            for key in ('selected_channel', 'date_mode', 'only_paid', 'last_filters'):
                st.session_state.pop(key, None)
            st.rerun()

    filters = _current_filters(settings)
    if refresh_clicked or st.session_state.get('last_filters') != filters:
        with st.spinner('Lade Daten...'):
            session.refresh(filters)
        st.session_state['last_filters'] = filters

    data = session.data
    if data is None:
        return

    live = filters.date_mode == MODE_TODAY
    badge = 'Live Heute' if live else 'Filter aktiv'
    if filters.only_paid:
        badge += ' · Paid'
    st.caption(f'{badge} · {channel_label(filters.channel)}')

    st.markdown(
        f"<h1 style='text-align:center;font-size:4rem;margin-bottom:0'>{format_eur(data.daily_revenue)}</h1>",
        unsafe_allow_html=True,
    )
    st.markdown(
        f"<p style='text-align:center;color:#999'>{'Umsatz (Bezahlt)' if filters.only_paid else 'Umsatz (Gesamt)'}</p>",
        unsafe_allow_html=True,
    )

    col1, col2 = st.columns(2)
    col1.metric('Bezahlte Orders' if filters.only_paid else 'Bestellungen', data.total_orders)
    col2.metric('Ø Warenkorb', format_eur_cents(data.average_basket))

    render_channels(data)

    if data.recent_orders:
        st.markdown('#### Letzte Bestellungen')
        frame = data.orders_frame()
        frame['Betrag'] = frame['Betrag'].map(format_eur_cents)
        st.dataframe(frame, hide_index=True, use_container_width=True)

    with st.sidebar.expander('Logs', expanded=False):
        if session.error_log:
            st.markdown('**Fehler bei Aktualisierung**')
            for ts, message in session.error_log[-5:]:
                st.write(f"{ts.strftime('%H:%M:%S')} {message}")
        logs_text = tail_log(log_file, n=200)
        if logs_text:
            st.text_area('Recent logs', value=logs_text, height=240)
        else:
            st.write('No logs yet.')


def run_dashboard() -> None:
    settings = DashboardSettings.from_env()
    log_file = configure_logging(settings.log_dir)
    st.set_page_config(page_title='Shop Pulse', layout='centered')

    store = open_store(settings.credential_store, settings.store_path)
    if 'dashboard' not in st.session_state:
        st.session_state['dashboard'] = DashboardSession(client_factory=_client_factory(settings))
    session: DashboardSession = st.session_state['dashboard']

    # Auto-login with remembered credentials on first run
    if not session.is_logged_in and not st.session_state.get('auto_login_tried'):
        st.session_state['auto_login_tried'] = True
        remembered: Optional[ShopConfig] = load_remembered_credentials(store)
        if remembered:
            logger.info('Restoring remembered login for %s', remembered.url)
            with st.spinner('Lade Daten...'):
                _login(session, remembered, settings)

    if session.is_logged_in and session.data is not None:
        render_dashboard(session, settings, store, log_file)
    else:
        render_login(session, settings, store)


if __name__ == '__main__':
    run_dashboard()
