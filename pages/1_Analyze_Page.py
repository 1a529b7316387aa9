"""
Analyze Page -- evaluate one page against the selected heuristics.
"""

import sys
import time
import queue
import threading
from pathlib import Path

import streamlit as st
import streamlit.components.v1 as components

# Ensure project root is on the path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from utils.config import bridge_streamlit_secrets, load_env_file

load_env_file(override=False)
bridge_streamlit_secrets()

st.set_page_config(page_title="Analyze Page", page_icon="\U0001f50e", layout="wide")

from utils.brand import inject_brand_css, score_color
inject_brand_css()

from utils.auth import check_password
if not check_password():
    st.stop()

from heuristics.resolver import describe_selection
from utils.errors import AuditError
from utils.store import SettingsStore
from utils.validation import validate_public_url
from utils.widgets import render_heuristics_selector, render_strengths, render_violations

PHASE_PROGRESS = {
    "Fetching": 0.15,
    "Evaluation": 0.60,
    "Report Generation": 0.90,
    "Complete": 1.0,
}

# ---------------------------------------------------------------------------
# Section A: Configuration
# ---------------------------------------------------------------------------

st.header("Analyze a Page")

url = st.text_input("Page URL", placeholder="https://example.com/pricing")
default_selection = SettingsStore().get_default_heuristics()
selection = render_heuristics_selector("page_heuristics", default=default_selection)

col1, col2 = st.columns(2)
annotate = col1.checkbox("Annotate screenshot", value=True)
skip_screenshots = col2.checkbox("Skip screenshots", value=False)

start = st.button("Analyze", type="primary",
                  disabled=st.session_state.get("page_running", False))


# ---------------------------------------------------------------------------
# Audit thread function -- serializes results for session_state safety
# ---------------------------------------------------------------------------


def _run_analysis(url: str, selection, annotate: bool, skip_screenshots: bool, progress_queue: queue.Queue):
    """Run the single-page pipeline in a background thread."""
    try:
        import asyncio
        from audit import annotate_result, crop_result, run_audit_pipeline
        from utils.report import export_json, generate_html_report

        def progress_callback(phase, status, detail=""):
            progress_queue.put({"phase": phase, "status": status, "detail": detail})

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            result, _context = loop.run_until_complete(run_audit_pipeline(
                url, selection, progress_callback=progress_callback, skip_screenshots=skip_screenshots,
            ))
        finally:
            loop.close()

        progress_queue.put({"phase": "Report Generation", "status": "started", "detail": "Rendering report..."})
        annotated, legend, crops = "", [], {}
        if annotate:
            try:
                annotated, legend = annotate_result(result)
                crops = crop_result(result)
            except (OSError, ValueError) as e:
                progress_queue.put({"phase": "Report Generation", "status": "warning",
                                    "detail": f"Could not annotate screenshot: {e}"})

        html_content = generate_html_report(result, project_name=result.website_name,
                                            annotated_screenshot=annotated, legend=legend)

        progress_queue.put({
            "phase": "Complete",
            "status": "completed",
            "detail": "Analysis finished!",
            "result": {
                "result": result,
                "annotated": annotated,
                "numbers": {id(v): n for n, v in legend},
                "crops": crops,
                "html_content": html_content,
                "json_content": export_json(result.to_dict()),
            },
        })

    except AuditError as e:
        progress_queue.put({"phase": "Error", "status": "failed", "detail": str(e)})
    except Exception as e:
        import traceback
        traceback.print_exc()
        progress_queue.put({"phase": "Error", "status": "failed", "detail": str(e)})


# ---------------------------------------------------------------------------
# Handle submission -- start thread ONCE
# ---------------------------------------------------------------------------

if start:
    error = None
    try:
        validate_public_url(url)
        describe_selection(selection)
    except AuditError as e:
        error = str(e)
    if selection.is_custom and not selection.custom_ids:
        error = "Select at least one heuristic."

    if error:
        st.error(error)
    else:
        for key in list(st.session_state.keys()):
            if key.startswith("page_") and not key.startswith("page_heuristics"):
                st.session_state.pop(key, None)

        pq = queue.Queue()
        t = threading.Thread(target=_run_analysis, args=(url.strip(), selection, annotate, skip_screenshots, pq),
                             daemon=True)
        t.start()

        st.session_state["page_queue"] = pq
        st.session_state["page_thread"] = t
        st.session_state["page_running"] = True
        st.session_state["page_last_pct"] = 0.0
        st.session_state["page_last_phase"] = "Initializing"
        st.rerun()

# ---------------------------------------------------------------------------
# Progress polling (non-blocking, rerun-safe)
# ---------------------------------------------------------------------------

if st.session_state.get("page_running") and not st.session_state.get("page_complete"):
    pq = st.session_state.get("page_queue")
    thread = st.session_state.get("page_thread")

    if pq is None or thread is None:
        st.error("Analysis state was lost. Please start again.")
        st.session_state["page_running"] = False
        st.stop()

    last_pct = st.session_state.get("page_last_pct", 0.0)
    last_phase = st.session_state.get("page_last_phase", "Initializing")

    done = False
    while True:
        try:
            msg = pq.get_nowait()
        except queue.Empty:
            break

        phase = msg.get("phase", "")
        status = msg.get("status", "")
        detail = msg.get("detail", "")

        last_pct = max(last_pct, PHASE_PROGRESS.get(phase, last_pct))
        last_phase = phase

        if status == "warning":
            st.session_state["page_warning"] = detail

        if status == "failed":
            st.session_state["page_running"] = False
            st.session_state["page_error"] = detail
            st.rerun()

        if phase == "Complete" and status == "completed":
            st.session_state["page_result"] = msg.get("result", {})
            st.session_state["page_complete"] = True
            st.session_state["page_running"] = False
            done = True
            break

    st.session_state["page_last_pct"] = last_pct
    st.session_state["page_last_phase"] = last_phase

    if done:
        st.rerun()

    st.progress(min(last_pct, 0.99), text=f"{last_phase}...")

    if thread.is_alive():
        time.sleep(2)
        st.rerun()
    elif not st.session_state.get("page_complete"):
        st.error("Analysis ended unexpectedly. Check the logs.")
        st.session_state["page_running"] = False

# ---------------------------------------------------------------------------
# Section B: Results
# ---------------------------------------------------------------------------

if st.session_state.get("page_complete"):
    payload = st.session_state.get("page_result", {})
    result = payload.get("result")

    if result is None:
        st.warning("Results are unavailable. Please run the analysis again.")
    else:
        st.success(f"Analysis complete --- {result.website_name}")
        if st.session_state.get("page_warning"):
            st.warning(st.session_state["page_warning"])

        col1, col2, col3, col4 = st.columns(4)
        col1.markdown(
            f"<div style='font-size: 48px; font-weight: 700; color: {score_color(result.overall_score)};'>"
            f"{result.overall_score}</div>",
            unsafe_allow_html=True,
        )
        col2.metric("Grade", result.grade.value)
        col3.metric("Violations", len(result.violations))
        col4.metric("Strengths", len(result.strengths))
        if result.breakdown and result.breakdown.industry:
            st.caption(f"Industry comparison: {result.breakdown.industry.category}")

        tab_findings, tab_screenshot, tab_report = st.tabs(["Findings", "Screenshot", "Report"])

        with tab_findings:
            for severity, items in result.violations_by_severity().items():
                if items:
                    st.subheader(f"{severity.title()} severity ({len(items)})")
                    render_violations(items, payload.get("numbers"), payload.get("crops"))
            st.subheader("Strengths")
            render_strengths(result.strengths)

        with tab_screenshot:
            screenshot = payload.get("annotated") or result.screenshot
            if screenshot:
                st.image(screenshot, use_container_width=True)
            else:
                st.info("No screenshot was captured for this page.")

        with tab_report:
            html_content = payload.get("html_content", "")
            components.html(html_content, height=800, scrolling=True)
            dl1, dl2 = st.columns(2)
            dl1.download_button("Download HTML Report", html_content,
                                file_name="ux-audit.html", mime="text/html")
            dl2.download_button("Download JSON", payload.get("json_content", "{}"),
                                file_name="ux-audit.json", mime="application/json")

        if st.button("Analyze Another Page"):
            for key in list(st.session_state.keys()):
                if key.startswith("page_") and not key.startswith("page_heuristics"):
                    st.session_state.pop(key, None)
            st.rerun()

if st.session_state.get("page_error") and not st.session_state.get("page_complete"):
    st.error(f"Last analysis failed: {st.session_state['page_error']}")
    if st.button("Clear Error and Try Again"):
        for key in list(st.session_state.keys()):
            if key.startswith("page_") and not key.startswith("page_heuristics"):
                st.session_state.pop(key, None)
        st.rerun()
