"""
UX Heuristic Audit - Streamlit Application
Main entry point for the Streamlit web interface.
"""

import sys
from pathlib import Path

import streamlit as st

# Ensure project root is on the path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from utils.config import bridge_streamlit_secrets, get_secret, load_env_file

load_env_file()
bridge_streamlit_secrets()

st.set_page_config(
    page_title="UX Heuristic Audit",
    page_icon="\U0001f50d",  # magnifying glass
    layout="wide",
)

from utils.brand import inject_brand_css

inject_brand_css()

from utils.auth import check_password
if not check_password():
    st.stop()

from heuristics.catalog import HEURISTIC_SETS, HEURISTICS
from utils.store import JobStore, SettingsStore

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

with st.sidebar:
    st.caption("UX Heuristic Audit")
    st.divider()

    provider = (get_secret("LLM_PROVIDER", "anthropic") or "anthropic").lower()
    if provider == "gemini":
        api_key_available = bool(get_secret("GEMINI_API_KEY"))
        provider_label = "Gemini"
    else:
        api_key_available = bool(get_secret("ANTHROPIC_API_KEY"))
        provider_label = "Anthropic"

    if api_key_available:
        st.success(f"LLM: {provider_label} connected", icon="✅")
    else:
        st.error(f"LLM: {provider_label} key missing", icon="❌")

    if get_secret("FIRECRAWL_API_KEY"):
        st.success("Crawler: Firecrawl connected", icon="\U0001f578")
    else:
        st.warning("Crawler: no Firecrawl key (single pages only)", icon="\U0001f6ab")

    if SettingsStore().has_figma_token():
        st.info("Figma: token saved", icon="\U0001f3a8")

# ---------------------------------------------------------------------------
# Main content - Landing page
# ---------------------------------------------------------------------------

st.title("Find the usability problems before your users do")
st.markdown(
    "Evaluate any page, or an entire site, against established usability heuristics. "
    "Every violation comes with a severity, its location on the page and a concrete fix."
)

st.divider()

jobs = JobStore().list_jobs()
completed = [j for j in jobs if j.status == "completed"]

col1, col2, col3 = st.columns(3)
col1.metric("Heuristics in catalog", len(HEURISTICS))
col2.metric("Heuristic sets", len([s for s in HEURISTIC_SETS if not s.is_custom]))
col3.metric("Completed site crawls", len(completed))

st.divider()

st.subheader("How It Works")

st.markdown(
    """
**1. Analyze a Page** --- Pick a heuristic set (or your own combination), enter a URL and
get a scored review with an annotated screenshot.

**2. Crawl a Site** --- Choose a crawl depth, and every discovered page is evaluated in
batches. Results aggregate into one site score with de-duplicated findings.

**3. Research Diagrams** --- Turn study notes into mind maps, information architecture
and journey maps, then export them as HTML, JSON or straight to Figma.
"""
)
