"""
Shared styles for the Streamlit app.
Inject via inject_brand_css() at the top of each page.
"""

from markupsafe import escape
import streamlit as st

from utils.scoring import SEVERITY_COLORS, Severity

BRAND_CSS = """
<style>
@import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700&display=swap');

html, body, [class*="css"] {
    font-family: 'Inter', 'Roboto', sans-serif;
}

h1, h2, h3, h4,
[data-testid="stHeadingWithActionElements"] {
    font-family: 'Inter', 'Roboto', sans-serif !important;
    font-weight: 700 !important;
    color: #0f172a !important;
}

[data-testid="stSidebar"] {
    background-color: #1e1b4b !important;
}

[data-testid="stSidebar"] * {
    color: #eef2ff !important;
}

.stButton > button[kind="primary"],
.stFormSubmitButton > button[kind="primary"] {
    background-color: #4f46e5 !important;
    color: #ffffff !important;
    border: none !important;
    border-radius: 6px !important;
    font-weight: 600 !important;
}

.stButton > button[kind="primary"]:hover,
.stFormSubmitButton > button[kind="primary"]:hover {
    background-color: #4338ca !important;
}

[data-testid="stMetric"] {
    background-color: #f1f5f9;
    border-radius: 8px;
    padding: 16px;
}

.stProgress > div > div > div > div {
    background-color: #4f46e5 !important;
}

.severity-pill {
    display: inline-block;
    padding: 2px 10px;
    border-radius: 12px;
    color: #ffffff;
    font-size: 12px;
    font-weight: 600;
}

.progress-card {
    border: 1px solid #e2e8f0;
    border-radius: 10px;
    padding: 16px 20px;
    background: #f8fafc;
    margin-bottom: 12px;
}

.progress-card .status {
    color: #4f46e5;
    font-weight: 600;
}
</style>
"""


def inject_brand_css():
    """Inject brand CSS into the current Streamlit page."""
    st.markdown(BRAND_CSS, unsafe_allow_html=True)


def severity_pill(severity: Severity) -> str:
    """HTML pill for a severity level."""
    return (f'<span class="severity-pill" style="background: {SEVERITY_COLORS[severity]};">'
            f'{escape(severity.value.title())}</span>')


def score_color(score: int) -> str:
    if score >= 80:
        return "#16a34a"
    if score >= 60:
        return "#ca8a04"
    return "#dc2626"
