"""
Optional password gate for the Streamlit app.
Set APP_PASSWORD in Streamlit secrets or .env to enable it.
"""

import hmac

import streamlit as st

from utils.config import get_secret


def check_password() -> bool:
    """Returns True if the user has entered the correct password.

    With no APP_PASSWORD configured the gate is open (local use).
    """
    expected = get_secret("APP_PASSWORD")
    if not expected:
        return True

    if st.session_state.get("authenticated"):
        return True

    st.markdown(
        "<h2 style='text-align:center; margin-top: 4rem;'>UX Heuristic Audit</h2>"
        "<p style='text-align:center; color: #64748b;'>Usability reviews for pages and whole sites</p>",
        unsafe_allow_html=True,
    )

    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        password = st.text_input("Enter password to continue", type="password", key="login_pw")
        if st.button("Log in", type="primary", use_container_width=True):
            if hmac.compare_digest(password.encode(), expected.encode()):
                st.session_state["authenticated"] = True
                st.rerun()
            else:
                st.error("Incorrect password.")

    return False
