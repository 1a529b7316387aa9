"""Reusable Streamlit widgets: heuristics selector, crawl progress card, findings list."""

from typing import List, Optional

from markupsafe import escape
import streamlit as st

from heuristics.catalog import CUSTOM_SET_ID, HEURISTIC_SETS, HEURISTICS
from heuristics.selection import HeuristicSelection, SelectionState
from utils.brand import severity_pill
from utils.scoring import Strength, Violation
from utils.store import CrawlJob, CrawlStatus


def _set_label(set_id: str) -> str:
    for heuristic_set in HEURISTIC_SETS:
        if heuristic_set.id == set_id:
            if heuristic_set.size:
                return f"{heuristic_set.label} ({heuristic_set.size})"
            return heuristic_set.label
    return set_id


def render_heuristics_selector(key: str = "heuristics",
                               default: Optional[HeuristicSelection] = None) -> HeuristicSelection:
    """
    Set picker plus per-heuristic checkboxes.

    The SelectionState lives in session_state so it survives reruns; widget
    callbacks keep the radio and the checkboxes in step with it.
    """
    state_key = f"{key}_state"
    radio_key = f"{key}_set"
    if state_key not in st.session_state:
        st.session_state[state_key] = SelectionState(default)
    state: SelectionState = st.session_state[state_key]

    if radio_key not in st.session_state:
        st.session_state[radio_key] = state.selection.set_id
    for heuristic in HEURISTICS:
        checkbox_key = f"{key}_{heuristic.id}"
        if checkbox_key not in st.session_state:
            st.session_state[checkbox_key] = state.is_checked(heuristic.id)

    def on_set_change():
        state.choose_set(st.session_state[radio_key])
        if st.session_state[radio_key] != CUSTOM_SET_ID:
            for h in HEURISTICS:
                st.session_state[f"{key}_{h.id}"] = False

    def on_toggle(heuristic_id: str):
        state.toggle(heuristic_id, st.session_state[f"{key}_{heuristic_id}"])
        st.session_state[radio_key] = CUSTOM_SET_ID

    set_ids = [s.id for s in HEURISTIC_SETS]
    st.radio("Heuristic set", set_ids, format_func=_set_label, key=radio_key,
             on_change=on_set_change, horizontal=True)

    with st.expander(f"Choose individual heuristics ({state.selected_count} selected)",
                     expanded=state.selection.is_custom):
        columns = st.columns(2)
        for index, heuristic in enumerate(HEURISTICS):
            with columns[index % 2]:
                st.checkbox(heuristic.label, key=f"{key}_{heuristic.id}", help=heuristic.description,
                            on_change=on_toggle, args=(heuristic.id,))

    selection = state.selection
    if selection.is_custom and not selection.custom_ids:
        st.warning("Select at least one heuristic.")
    return selection


def render_crawl_progress(job: CrawlJob):
    """Status card for a crawl job."""
    st.markdown(
        f'<div class="progress-card"><span class="status">{escape(job.status_message)}</span>'
        f' &middot; {escape(job.url)} ({escape(job.mode)} mode)</div>',
        unsafe_allow_html=True,
    )

    if job.status == CrawlStatus.CRAWLING:
        st.progress(min(job.crawl_progress(), 1.0),
                    text=f"Crawled {job.crawled_pages} of {job.total_pages or '?'} pages")
    elif job.status == CrawlStatus.ANALYZING:
        eta = f", about {job.estimated_time_remaining} remaining" if job.estimated_time_remaining else ""
        st.progress(min(job.analysis_progress(), 1.0),
                    text=f"Analyzed {job.analyzed_pages} of {job.total_pages} pages{eta}")
    elif job.status == CrawlStatus.COMPLETED:
        col1, col2, col3 = st.columns(3)
        col1.metric("Overall score", job.overall_score if job.overall_score is not None else "-")
        col2.metric("Pages analyzed", job.analyzed_pages)
        col3.metric("Unique violations", len(job.violations))
    elif job.status in (CrawlStatus.ERROR, CrawlStatus.FAILED):
        st.error(job.error_message or job.status_message)
        if job.should_restart:
            st.info("The crawl expired before analysis finished. Start a new crawl to try again.")


def render_violations(violations: List[Violation], numbers: Optional[dict] = None, crops: Optional[dict] = None):
    """Expandable findings, badge numbers prefixed where the screenshot shows them."""
    if not violations:
        st.success("No violations found.")
        return
    numbers = numbers or {}
    crops = crops or {}
    for violation in violations:
        prefix = f"#{numbers[id(violation)]} " if id(violation) in numbers else ""
        with st.expander(f"{prefix}{violation.title}"):
            st.markdown(severity_pill(violation.severity) + f" &nbsp; {escape(violation.heuristic)}",
                        unsafe_allow_html=True)
            if violation.description:
                st.write(violation.description)
            if violation.location:
                st.caption(f"Location: {violation.location}")
            if id(violation) in crops:
                st.image(crops[id(violation)], caption="Affected region")
            if violation.recommendation:
                st.info(f"Recommendation: {violation.recommendation}")


def render_strengths(strengths: List[Strength]):
    if not strengths:
        st.caption("No strengths recorded.")
        return
    for strength in strengths:
        st.success(f"**{strength.heuristic}**: {strength.description}")
