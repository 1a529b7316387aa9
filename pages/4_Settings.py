"""
Settings -- Figma access token and default heuristics.
"""

import sys
from pathlib import Path

import streamlit as st

# Ensure project root is on the path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from utils.config import bridge_streamlit_secrets, load_env_file

load_env_file(override=False)
bridge_streamlit_secrets()

st.set_page_config(page_title="Settings", page_icon="⚙️", layout="wide")

from utils.brand import inject_brand_css
inject_brand_css()

from utils.auth import check_password
if not check_password():
    st.stop()

from heuristics.resolver import describe_selection
from utils.errors import AuditError
from utils.store import FIGMA_TOKEN_HELP_URL, SettingsStore
from utils.widgets import render_heuristics_selector

settings_store = SettingsStore()
settings = settings_store.get_settings()

st.header("Settings")

# ---------------------------------------------------------------------------
# Figma
# ---------------------------------------------------------------------------

st.subheader("Figma")
if settings.figma_access_token:
    token = settings.figma_access_token
    st.success(f"Token saved (ending in ...{token[-4:]})")
    if st.button("Remove token"):
        settings_store.clear_figma_token()
        st.rerun()
else:
    st.caption(f"Needed to export research diagrams. [How to create a token]({FIGMA_TOKEN_HELP_URL})")

with st.form("figma_token"):
    new_token = st.text_input("Personal access token", type="password")
    if st.form_submit_button("Save token"):
        if new_token.strip():
            settings_store.save_figma_token(new_token)
            st.success("Token saved.")
            st.rerun()
        else:
            st.error("Enter a token first.")

st.divider()

# ---------------------------------------------------------------------------
# Default heuristics
# ---------------------------------------------------------------------------

st.subheader("Default heuristics")
st.caption("Preselected when you analyze a page or start a crawl.")
selection = render_heuristics_selector("settings_heuristics", default=settings_store.get_default_heuristics())

if st.button("Save default heuristics", type="primary"):
    try:
        definitions = describe_selection(selection)
    except AuditError as e:
        st.error(str(e))
    else:
        if not definitions:
            st.error("Select at least one heuristic.")
        else:
            settings_store.save_default_heuristics(selection)
            st.success(f"Saved {len(definitions)} heuristics as the default.")
