"""
Research Diagrams -- mind maps, information architecture and journey maps from study notes.
"""

import sys
from pathlib import Path

import streamlit as st
import streamlit.components.v1 as components

# Ensure project root is on the path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from utils.config import bridge_streamlit_secrets, load_env_file

load_env_file(override=False)
bridge_streamlit_secrets()

st.set_page_config(page_title="Research Diagrams", page_icon="\U0001f9e0", layout="wide")

from utils.brand import inject_brand_css
inject_brand_css()

from utils.auth import check_password
if not check_password():
    st.stop()

from agents.diagram_agents import DIAGRAM_AGENTS
from utils.errors import AuditError, PaymentRequiredError, RateLimitError, ValidationError
from utils.figma import FigmaClient, build_plugin_payload
from utils.report import DIAGRAM_RENDERERS, export_json
from utils.store import FIGMA_TOKEN_HELP_URL, SettingsStore
from utils.validation import build_persona, build_study_data

DIAGRAM_LABELS = {
    "mind_map": "Mind Map",
    "information_architecture": "Information Architecture",
    "user_journey_map": "User Journey Map",
}

st.header("Research Diagrams")

diagram_type = st.radio("Diagram", list(DIAGRAM_LABELS), format_func=DIAGRAM_LABELS.get, horizontal=True)

with st.form("diagram_inputs"):
    if diagram_type == "mind_map":
        inputs = {
            "topic": st.text_input("Topic", placeholder="Checkout abandonment"),
            "context": st.text_area("Context", placeholder="What we know so far, who the users are..."),
        }
    elif diagram_type == "information_architecture":
        inputs = {
            "project_name": st.text_input("Project name", placeholder="Help center"),
            "description": st.text_area("Description"),
            "user_needs": st.text_area("User needs"),
        }
    else:
        st.markdown("**Persona** (optional)")
        persona_fields = {
            "name": st.text_input("Name", placeholder="First-time buyer"),
            "description": st.text_area("Description", placeholder="Shops on mobile, time-poor, price-sensitive"),
            "goals": st.text_area("Goals (one per line)"),
            "pain_points": st.text_area("Pain points (one per line)"),
        }
        inputs = {"scenario": st.text_area("Scenario", placeholder="Buys a gift for a friend's birthday")}

    with st.expander("Study plan and observations (optional)"):
        plan_fields = {
            "title": st.text_input("Study title"),
            "problem_statement": st.text_area("Problem statement"),
            "solution_goal": st.text_area("Solution goal"),
        }
        observations = st.text_area("Observations (one per line)",
                                    help="Findings or quotes to ground the diagram")
    submitted = st.form_submit_button("Generate", type="primary")

if submitted:
    try:
        study_data = build_study_data(observations=observations, **plan_fields)
        if diagram_type == "user_journey_map":
            inputs["persona"] = build_persona(**persona_fields)
    except ValidationError as e:
        for message in e.errors:
            st.error(message)
        st.stop()

    if study_data:
        inputs["study_data"] = study_data
    st.session_state["study_observations"] = (study_data or {}).get("observations", [])
    agent = DIAGRAM_AGENTS[diagram_type]()
    with st.spinner(f"Generating {DIAGRAM_LABELS[diagram_type].lower()}..."):
        try:
            st.session_state["diagram_result"] = (diagram_type, agent.generate(**inputs))
        except (RateLimitError, PaymentRequiredError) as e:
            st.error(e.user_message)
        except AuditError as e:
            st.error(str(e))

stored = st.session_state.get("diagram_result")
if stored and stored[0] == diagram_type:
    _, data = stored
    if "error" in data:
        st.error(data["error"])
        with st.expander("Model output"):
            st.code(data.get("raw", ""))
    else:
        html_content = DIAGRAM_RENDERERS[diagram_type](data)
        components.html(html_content, height=700, scrolling=True)

        col1, col2 = st.columns(2)
        col1.download_button("Download HTML", html_content, file_name=f"{diagram_type}.html", mime="text/html")
        col2.download_button("Download JSON", export_json(data), file_name=f"{diagram_type}.json",
                             mime="application/json")

        st.subheader("Export to Figma")
        settings = SettingsStore()
        if settings.has_figma_token():
            if st.button("Create Figma file"):
                try:
                    result = FigmaClient(settings.get_figma_token()).export(diagram_type, data)
                    st.success(f"Created [{result.file_key}]({result.file_url})")
                except AuditError as e:
                    st.error(str(e))
            study_observations = st.session_state.get("study_observations")
            if study_observations and st.button("Export observations to Figma"):
                try:
                    result = FigmaClient(settings.get_figma_token()).export(
                        "observations", {"observations": study_observations})
                    st.success(f"Created [{result.file_key}]({result.file_url})")
                except AuditError as e:
                    st.error(str(e))
        else:
            st.info(f"Save a Figma access token in Settings to export directly. "
                    f"[How to create a token]({FIGMA_TOKEN_HELP_URL})")

        with st.expander("Import with the Figma plugin"):
            st.caption("Paste this into the UX Research Importer plugin.")
            st.code(build_plugin_payload(diagram_type, data), language="json")
