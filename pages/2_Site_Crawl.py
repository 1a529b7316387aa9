"""
Site Crawl -- crawl a whole site and evaluate every page.
"""

import sys
import time
import threading
from pathlib import Path

import streamlit as st
import streamlit.components.v1 as components

# Ensure project root is on the path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from utils.config import POLL_INTERVAL, bridge_streamlit_secrets, get_secret, load_env_file

load_env_file(override=False)
bridge_streamlit_secrets()

st.set_page_config(page_title="Site Crawl", page_icon="\U0001f578", layout="wide")

from utils.brand import inject_brand_css
inject_brand_css()

from utils.auth import check_password
if not check_password():
    st.stop()

from audit import build_context
from orchestrator.orchestrator import Orchestrator
from utils.crawler import CRAWL_MODES, DEFAULT_CRAWL_MODE
from utils.errors import AuditError
from utils.report import generate_site_report
from utils.store import CrawlStatus, JobStore, SettingsStore
from utils.validation import CrawlRequest, validate_form
from utils.widgets import render_crawl_progress, render_heuristics_selector, render_violations

store = JobStore()

st.header("Crawl a Site")

if not get_secret("FIRECRAWL_API_KEY"):
    st.warning("Site crawls need a FIRECRAWL_API_KEY. Single pages can still be analyzed without one.")

# ---------------------------------------------------------------------------
# Section A: Configuration
# ---------------------------------------------------------------------------

col1, col2 = st.columns(2)
with col1:
    url = st.text_input("Site URL", placeholder="https://example.com")
    project_name = st.text_input("Project name (optional)", placeholder="Example redesign")
with col2:
    mode_ids = list(CRAWL_MODES)
    mode = st.radio(
        "Crawl mode",
        mode_ids,
        index=mode_ids.index(DEFAULT_CRAWL_MODE),
        format_func=lambda m: f"{m.title()} - up to {CRAWL_MODES[m].limit} pages",
    )
    config = CRAWL_MODES[mode]
    st.caption(f"{config.description} Estimated cost: ~{config.estimated_credits} credits.")

selection = render_heuristics_selector("crawl_heuristics", default=SettingsStore().get_default_heuristics())

start = st.button("Start Crawl", type="primary", disabled=bool(st.session_state.get("crawl_active_id")))


def _poll_crawl(orchestrator: Orchestrator, crawl_id: str):
    """Advance the crawl in the background until it reaches a terminal state."""
    job = store.get_job(crawl_id)
    while job and not job.is_finished:
        time.sleep(POLL_INTERVAL)
        try:
            job = orchestrator.check_crawl_status(crawl_id)
        except Exception as e:
            store.update_job(crawl_id, status=CrawlStatus.ERROR, error_message=str(e))
            return


if start:
    try:
        request = validate_form(CrawlRequest, {"url": url, "mode": mode, "project_name": project_name})
        context = build_context(selection)
        orchestrator = Orchestrator(context, store=store)
        job = orchestrator.start_site_crawl(request.url, request.mode, request.project_name)
    except AuditError as e:
        st.error(str(e))
    else:
        thread = threading.Thread(target=_poll_crawl, args=(orchestrator, job.id), daemon=True)
        thread.start()
        st.session_state["crawl_active_id"] = job.id
        st.session_state["crawl_view_id"] = job.id
        st.rerun()

# ---------------------------------------------------------------------------
# Section B: Progress of the active crawl
# ---------------------------------------------------------------------------

active_id = st.session_state.get("crawl_active_id")
if active_id:
    job = store.get_job(active_id)
    if job is None:
        st.session_state.pop("crawl_active_id", None)
    else:
        st.subheader("Current crawl")
        render_crawl_progress(job)
        if job.is_finished:
            st.session_state.pop("crawl_active_id", None)
        else:
            time.sleep(3)
            st.rerun()

# ---------------------------------------------------------------------------
# Section C: Results
# ---------------------------------------------------------------------------

jobs = store.list_jobs()
if jobs:
    st.divider()
    st.subheader("Crawls")
    job_ids = [j.id for j in jobs]
    labels = {j.id: f"{j.project_name or j.url} - {j.created_at[:16].replace('T', ' ')} ({j.status})" for j in jobs}
    default_id = st.session_state.get("crawl_view_id", job_ids[0])
    view_id = st.selectbox("Show crawl", job_ids, index=job_ids.index(default_id) if default_id in job_ids else 0,
                           format_func=labels.get)
    st.session_state["crawl_view_id"] = view_id

    job = store.get_job(view_id)
    if job.id != active_id:
        render_crawl_progress(job)

    if job.status == CrawlStatus.COMPLETED:
        report = Orchestrator(build_context(job.selection), store=store).load_site_report(job.id)
        tab_findings, tab_pages, tab_report = st.tabs(["Findings", "Pages", "Report"])

        with tab_findings:
            for severity, items in report.violations_by_severity().items():
                if items:
                    st.markdown(f"**{severity.title()} severity ({len(items)})**")
                    render_violations(items)

        with tab_pages:
            for page in sorted(report.pages, key=lambda p: p.score):
                label = f"{page.score} - {page.title or page.url} ({page.page_type})"
                with st.expander(label):
                    st.caption(page.url)
                    if page.is_error_page:
                        st.info("Detected as an error page; not evaluated.")
                    if page.screenshot:
                        st.image(page.screenshot, use_container_width=True)
                    render_violations(page.violations)

        with tab_report:
            html_content = generate_site_report(report)
            components.html(html_content, height=800, scrolling=True)
            st.download_button("Download HTML Report", html_content,
                               file_name=f"{job.project_name or 'site'}-ux-audit.html", mime="text/html")
