"""Polymind - Streamlit dashboard for Polymarket events and AI analysis."""

import time
from datetime import datetime

import streamlit as st
from config.settings import Settings, configure_logging
from dashboard import Dashboard
from analysis.segmenter import preview_segments, render_segments
from schemas.analysis import AnalysisConfig, SegmentKind, ToolStatus


st.set_page_config(
    page_title="Polymind",
    page_icon="📈",
    layout="wide"
)

POLL_INTERVAL = 0.5  # seconds between reruns while an analysis streams


@st.cache_resource
def get_dashboard() -> Dashboard:
    """One dashboard per server process."""
    settings = Settings()
    configure_logging(settings.verbose)
    return Dashboard(settings=settings)


@st.cache_data(ttl=60, show_spinner=False)
def load_event(slug: str):
    return get_dashboard().get_event(slug)


def format_volume(volume: float) -> str:
    if volume >= 1_000_000:
        return f"${volume / 1_000_000:.1f}M"
    if volume >= 1_000:
        return f"${volume / 1_000:.1f}K"
    return f"${volume:.0f}"


def format_date(value: str) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%b %d, %Y")
    except ValueError:
        return value


dashboard = get_dashboard()

# Initialize session state
if "page" not in st.session_state:
    st.session_state.page = 0

if "selected_slug" not in st.session_state:
    st.session_state.selected_slug = None

# Analysis sessions belong to this browser session, not the shared dashboard
if "event_sessions" not in st.session_state:
    st.session_state.event_sessions = dashboard.create_event_sessions()


def select_event(slug):
    st.session_state.selected_slug = slug


# Sidebar: settings
st.sidebar.header("Settings")

with st.sidebar.form("ai_settings"):
    config = dashboard.ai_config
    base_url = st.text_input("Base URL", value=config.base_url)
    api_key = st.text_input("API Key", value=config.api_key, type="password")
    model = st.text_input("Model", value=config.model)
    search_api_key = st.text_input(
        "Tavily API Key",
        value=config.search_api_key,
        type="password",
        help="Optional. Enables the search_web tool during analysis"
    )
    prompt_template = st.text_area(
        "Prompt Template",
        value=config.prompt_template,
        height=240,
        help="Placeholders: ${event.title}, ${event.description}, ${marketsText}"
    )
    if st.form_submit_button("Save"):
        dashboard.save_ai_config(AnalysisConfig(
            base_url=base_url,
            api_key=api_key,
            model=model,
            prompt_template=prompt_template,
            search_api_key=search_api_key
        ))
        st.sidebar.success("Settings saved")

# Sidebar: history
st.sidebar.markdown("---")
st.sidebar.header("History")

history_entries = dashboard.history.entries
if not history_entries:
    st.sidebar.caption("No analyses yet")

for entry in history_entries[:20]:
    with st.sidebar.expander(entry.event_title or entry.event_slug):
        st.caption(f"{entry.model} · {datetime.fromtimestamp(entry.timestamp / 1000):%Y-%m-%d %H:%M}")
        for index, (kind, markdown, _is_open) in enumerate(preview_segments(entry.content)):
            if kind == SegmentKind.REASONING:
                # expanders cannot nest, so thinking stays behind a checkbox
                if st.checkbox("Show thinking process", key=f"think-{entry.id}-{index}"):
                    st.caption(markdown)
            else:
                st.markdown(markdown)
        col_open, col_delete = st.columns(2)
        col_open.button("Open", key=f"open-{entry.id}", on_click=select_event, args=(entry.event_slug,))
        if col_delete.button("Delete", key=f"delete-{entry.id}"):
            dashboard.history.remove_entry(entry.id)
            st.rerun()

if history_entries and st.sidebar.button("Clear history"):
    dashboard.history.clear_all()
    st.rerun()


def render_event_grid():
    """Paginated grid of active events."""
    st.title("Polymind")
    st.markdown("Browse Polymarket events and ask AI for a probability analysis")

    events = dashboard.list_events(page=st.session_state.page)
    if dashboard.gamma.get_last_error():
        st.error(f"Failed to load events: {dashboard.gamma.get_last_error()}")

    columns = st.columns(3)
    for index, event in enumerate(events):
        with columns[index % 3]:
            with st.container(border=True):
                if event.image:
                    st.image(event.image, width=48)
                st.markdown(f"**{event.title}**")
                st.caption(
                    f"Vol {format_volume(event.volume)} · "
                    f"{len(event.active_markets())} markets · "
                    f"ends {format_date(event.end_date)}"
                )
                st.button("Open", key=f"event-{event.id}", on_click=select_event, args=(event.slug,))

    col_prev, col_page, col_next = st.columns([1, 2, 1])
    if col_prev.button("Previous", disabled=st.session_state.page == 0):
        st.session_state.page -= 1
        st.rerun()
    col_page.caption(f"Page {st.session_state.page + 1}")
    if col_next.button("Next", disabled=len(events) < dashboard.settings.page_size):
        st.session_state.page += 1
        st.rerun()


def render_markets(event):
    """Markets with prices and order books."""
    for market in event.active_markets():
        outcomes = market.outcome_list()
        prices = market.price_list()
        with st.expander(market.question):
            cols = st.columns(max(len(outcomes), 1))
            for col, outcome, price in zip(cols, outcomes, prices):
                col.metric(outcome, f"{price * 100:.1f}%")
            st.caption(f"Best bid {market.best_bid} · best ask {market.best_ask} · spread {market.spread}")

            token_ids = market.token_ids()
            if token_ids and st.checkbox("Show order book", key=f"book-{market.id}"):
                book = dashboard.get_order_book(token_ids[0])
                col_bids, col_asks = st.columns(2)
                col_bids.markdown("**Bids**")
                col_bids.table([entry.model_dump() for entry in book.bids[:10]])
                col_asks.markdown("**Asks**")
                col_asks.table([entry.model_dump() for entry in book.asks[:10]])


def render_analysis(session):
    """Tool activity, reasoning blocks and the streamed answer."""
    state = session.state()
    if not state.started:
        return

    title = "AI Analysis (cached)" if state.restored else "AI Analysis"
    st.subheader(title)

    if state.loading and not state.content and not state.tool_activities:
        st.info("Analyzing markets...")

    for activity in state.tool_activities:
        icon = {
            ToolStatus.RUNNING: "⏳",
            ToolStatus.SUCCESS: "✅",
            ToolStatus.ERROR: "⚠️",
            ToolStatus.INFO: "ℹ️",
        }[activity.status]
        line = f"{icon} **{activity.tool}** {activity.status.value}"
        if activity.query:
            line += f" · query: {activity.query}"
        if activity.message:
            line += f" · {activity.message}"
        st.markdown(line)

    for kind, markdown, is_open in render_segments(state.content):
        if kind == SegmentKind.REASONING:
            with st.expander("Thinking process", expanded=state.loading and is_open):
                st.markdown(markdown)
        else:
            st.markdown(markdown)

    if state.loading and state.content:
        st.caption("Thinking..." if session.is_thinking else "Writing...")

    if state.error:
        st.error(state.error)


def render_event_detail(slug):
    """Event detail page with the AI analysis panel."""
    event = load_event(slug)
    if st.button("← Back"):
        st.session_state.selected_slug = None
        st.rerun()

    if event is None:
        st.error("Event not found.")
        return

    st.title(event.title)
    st.caption(
        f"Volume {format_volume(event.volume)} · Liquidity {format_volume(event.liquidity)} · "
        f"Ends {format_date(event.end_date)} · https://polymarket.com/event/{event.slug}"
    )
    if event.description:
        with st.expander("Rules"):
            st.markdown(event.description)

    render_markets(event)

    session = st.session_state.event_sessions.session_for(event)
    state = session.state()

    missing_config = not dashboard.ai_config.api_key or not dashboard.ai_config.base_url
    label = "Analyzing..." if state.loading else ("Re-run AI Analysis" if state.started else "AI Analysis")
    if st.button(label, type="primary", disabled=state.loading or missing_config):
        session.start()
        st.rerun()
    if missing_config:
        st.caption("Configure the API Key and Base URL in Settings first")

    render_analysis(session)

    # Poll while the worker thread streams
    if session.state().loading:
        time.sleep(POLL_INTERVAL)
        st.rerun()


if st.session_state.selected_slug:
    render_event_detail(st.session_state.selected_slug)
else:
    render_event_grid()

# Footer
st.sidebar.markdown("---")
st.sidebar.markdown("Built with Streamlit")
