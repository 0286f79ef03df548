import logging
import random

import folium
import pandas as pd
import streamlit as st
from streamlit_folium import st_folium

from errors import DbError, RetryExhausted
from geocoding import geocode_in_bbox
from local_flags import LocalFlags, new_client_id
from overpass import OverpassClient
from payment_status import Category
from retry import LoadTracker, RetryPolicy
from settings import Settings
from venue_state import FILTERS, load_collection
from vote_store import VoteStore

settings = Settings.from_env()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("muc_pay")

st.set_page_config(page_title="MUC-PAY", layout="wide")
st.title("💳 MUC-PAY: Where can I pay by card in Munich?")

VOTE_MESSAGES = [
    "Sauber! Thanks for helping Munich. 🥨",
    "Vote saved! One step closer to the 21st century. 🚀",
    "Boom! Another one mapped. 👊",
    "Doing the lord's work. Thanks! 🙌",
    "Got it! Death to the ATM run. 🏃💨",
    "You are a legend. Vote saved. ✅",
    "Not all heroes wear capes. Some map payment methods. 🙌",
]
REPORT_MESSAGES = [
    "Report submitted! Thanks for keeping the map accurate. 🙏",
    "Got it! We'll check this venue. Thanks! 👍",
    "Report received! Helping keep Munich's map clean. 🧹",
    "Thanks for the heads up! Report submitted. ✅",
]
FILTER_LABELS = {"all": "All", "card": "Card 🟢", "giro": "Giro 🟡", "cash": "Cash 🔴"}

# -------------------------
# VOTE STORE CREDENTIALS
# -------------------------
st.sidebar.header("🔑 Vote store")
if not settings.has_store_credentials:
    settings.supabase_url = settings.supabase_url or st.sidebar.text_input("Supabase URL")
    settings.supabase_key = settings.supabase_key or st.sidebar.text_input("Supabase anon key", type="password")

if not settings.has_store_credentials:
    st.sidebar.warning("Enter the Supabase URL and key to load votes.")
    st.stop()

# -------------------------
# SESSION STATE
# -------------------------
policy = RetryPolicy(max_retries=settings.max_retries, base_delay=settings.retry_base_delay)
if "tracker" not in st.session_state:
    st.session_state.tracker = LoadTracker(policy)
if "collection" not in st.session_state:
    st.session_state.collection = None
if "map_center" not in st.session_state:
    st.session_state.map_center = settings.center
if "toast" not in st.session_state:
    st.session_state.toast = None


def browser_client_id():
    """Per-browser id kept in the page URL, so flags follow the client and not the server."""
    cid = st.query_params.get("client")
    if not cid:
        cid = st.session_state.get("client_id") or new_client_id()
        st.query_params["client"] = cid
    st.session_state.client_id = cid
    return cid


tracker = st.session_state.tracker
flags = LocalFlags(settings.flags_path, browser_client_id())
store = VoteStore(
    settings.supabase_url, settings.supabase_key,
    timeout=settings.store_timeout, page_size=settings.page_size,
)


def load():
    fetcher = OverpassClient(settings.overpass_url, timeout=settings.overpass_timeout)
    with st.spinner("Loading venues... 🗺️"):
        try:
            st.session_state.collection = load_collection(
                fetcher, store, settings.bbox, settings.amenities, policy, tracker
            )
        except RetryExhausted as e:
            logger.error("Giving up on venue data: %s", e)


def find_venue(collection, clicked):
    if not clicked:
        return None
    lat, lon = clicked.get("lat"), clicked.get("lng")
    if lat is None or lon is None:
        return None
    best = min(collection, key=lambda v: (v.lat - lat) ** 2 + (v.lon - lon) ** 2, default=None)
    if best and abs(best.lat - lat) < 1e-5 and abs(best.lon - lon) < 1e-5:
        return best
    return None


if st.session_state.collection is None and not tracker.exhausted:
    load()

collection = st.session_state.collection

if collection is None:
    st.error(tracker.error or "Failed to load venue data.")
    if st.button("🔄 Tap to retry"):
        tracker.reset()
        st.rerun()
    st.stop()

if st.session_state.toast:
    st.toast(st.session_state.toast)
    st.session_state.toast = None

# -------------------------
# WELCOME / LEGEND
# -------------------------
with st.expander("👋 Welcome to MUC-PAY!", expanded=False):
    st.markdown(
        "This map is a community project to help you avoid the \"Cash Only\" frustration in Munich.\n\n"
        "- 🟢 **All Common Cards**: accepts most modern cards (Visa, Mastercard, Apple Pay, etc.)\n"
        "- 🟡 **Girocard**: accepts German bank cards (Girocard/EC) only\n"
        "- 🔴 **Cash**: primarily cash, or known to reject cards\n"
        "- ⚪ **Unknown**: no one has voted here yet\n\n"
        "Click any dot on the map and cast your single vote."
    )

# -------------------------
# COVERAGE
# -------------------------
stats = collection.stats
col1, col2 = st.columns([3, 1])
with col1:
    st.markdown(f"Munich Progress: **{stats.percent}%**")
    st.progress(stats.percent / 100)
with col2:
    st.metric("Mapped", f"{stats.mapped}/{stats.total}")

choice = st.radio("Filter", FILTERS, format_func=FILTER_LABELS.get, horizontal=True)

address_input = st.sidebar.text_input("📍 Center map on (e.g., Marienplatz)")
if st.sidebar.button("Go") and address_input:
    coords = geocode_in_bbox(address_input, settings.bbox)
    if coords:
        st.session_state.map_center = coords
    else:
        st.sidebar.error("Address not found in Munich.")

# -------------------------
# MAP
# -------------------------
m = folium.Map(location=st.session_state.map_center, zoom_start=12, tiles="CartoDB positron")
for venue in collection.filtered(choice):
    folium.CircleMarker(
        [venue.lat, venue.lon],
        radius=6,
        weight=1,
        color="#fff",
        fill=True,
        fill_color=venue.status.color,
        fill_opacity=1.0,
        tooltip=f"{venue.display_name}: {venue.status.text}",
    ).add_to(m)
map_state = st_folium(m, width=1000, height=600, returned_objects=["last_object_clicked"])

# -------------------------
# SELECTED VENUE
# -------------------------
venue = find_venue(collection, (map_state or {}).get("last_object_clicked"))
if venue:
    st.subheader(venue.display_name)
    st.write(f"Status: **{venue.status.text}**")
    st.caption(
        f"Cash: {venue.tally.cash_votes} | Giro: {venue.tally.giro_votes} | Card: {venue.tally.card_votes}"
    )

    if flags.has_voted(venue.id):
        st.success("✅ You voted!")
    else:
        buttons = st.columns(3)
        for col, category, label in zip(
            buttons,
            (Category.CASH, Category.GIRO, Category.CARD),
            ("Cash", "Girocard", "All Cards"),
        ):
            if col.button(label, key=f"vote-{category.value}"):
                try:
                    collection.cast_vote(venue.id, category, store)
                except DbError as e:
                    logger.error("Database save error: %s", e)
                    st.error("Failed to save vote. Please try again.")
                else:
                    flags.mark_voted(venue.id)
                    st.session_state.toast = random.choice(VOTE_MESSAGES)
                    st.rerun()

    if flags.has_reported(venue.id):
        st.warning("⚠️ Already reported")
    elif st.button("🚩 Report as closed/moved"):
        try:
            store.insert_report(venue.id, venue.display_name)
        except DbError as e:
            logger.error("Report submission error: %s", e)
            st.error("Failed to submit report. Please try again.")
        else:
            flags.mark_reported(venue.id)
            st.session_state.toast = random.choice(REPORT_MESSAGES)
            st.rerun()

with st.expander("📋 Venues"):
    df = pd.DataFrame([
        {
            "name": v.display_name,
            "status": v.status.category.value,
            "cash": v.tally.cash_votes,
            "giro": v.tally.giro_votes,
            "card": v.tally.card_votes,
            "id": v.id,
        }
        for v in collection.filtered(choice)
    ])
    if df.empty:
        st.info("No venues in this category yet.")
    else:
        st.dataframe(df.sort_values("name"), use_container_width=True)
