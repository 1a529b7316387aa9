"""
Shared fixtures for the audit test suite.

No test touches the network: the LLM, the crawl service and Figma are all
replaced with mocks, and every store writes under tmp_path.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from heuristics import HeuristicSelection
from orchestrator.context_store import ContextStore, PageData
from utils.store import JobStore, SettingsStore

SECRET_ENV = ("ANTHROPIC_API_KEY", "GEMINI_API_KEY", "LLM_PROVIDER", "FIRECRAWL_API_KEY", "APP_PASSWORD")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep real API keys and the project data directory out of the tests."""
    for key in SECRET_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("UX_AUDIT_DATA_DIR", str(tmp_path / "data"))


@pytest.fixture
def landing_html():
    """A small but complete marketing page with a viewport tag and a labelled form."""
    return """
    <html>
      <head>
        <title>Acme Analytics</title>
        <meta name="viewport" content="width=device-width, initial-scale=1">
        <meta name="description" content="Dashboards for product teams">
      </head>
      <body>
        <h1>Understand your users</h1>
        <a href="/pricing">Pricing</a>
        <a href="https://acme.io/about">About</a>
        <a href="https://twitter.com/acme">Twitter</a>
        <img src="/hero.png" alt="Dashboard preview">
        <form action="/signup" method="post">
          <label for="email">Email</label>
          <input id="email" type="email" name="email">
          <input type="hidden" name="csrf" value="x">
          <input type="submit" value="Start trial">
        </form>
        <script>window.tracking = true;</script>
        <p>Trusted by 4,000 product teams.</p>
      </body>
    </html>
    """


@pytest.fixture
def error_html():
    """A soft 404 page."""
    return """
    <html>
      <head><title>404 - Page Not Found</title></head>
      <body class="error-page"><h1>Page not found</h1><p>Sorry, nothing here.</p></body>
    </html>
    """


@pytest.fixture
def fake_llm():
    """LLM client double returning one violation and one strength."""
    llm = MagicMock()
    llm.provider = "anthropic"
    llm.is_available.return_value = True
    llm.analyze_with_prompt_async = AsyncMock(return_value={
        "violations": [
            {
                "heuristic": "Visibility of System Status",
                "severity": "medium",
                "title": "No feedback after submitting the signup form",
                "description": "The button gives no loading state.",
                "recommendation": "Show a spinner and a confirmation message.",
                "boundingBox": {"x": 10, "y": 20, "width": 30, "height": 10},
                "confidence": 0.8,
            }
        ],
        "strengths": [
            {"heuristic": "Aesthetic and Minimalist Design", "description": "Clean hero section", "confidence": 0.9}
        ],
    })
    llm.validate_response.side_effect = lambda response, fields: (response, [])
    return llm


@pytest.fixture
def unavailable_llm():
    llm = MagicMock()
    llm.provider = "anthropic"
    llm.is_available.return_value = False
    llm.analyze_with_prompt_async = AsyncMock()
    return llm


@pytest.fixture
def context():
    return ContextStore(selection=HeuristicSelection("nn_10"))


@pytest.fixture
def job_store(tmp_path):
    return JobStore(base_dir=tmp_path / "store")


@pytest.fixture
def settings_store(tmp_path):
    return SettingsStore(base_dir=tmp_path / "store")


@pytest.fixture
def make_page(landing_html):
    def _make(url="https://acme.io/", html=None, **kwargs):
        return PageData(url=url, html=landing_html if html is None else html, **kwargs)
    return _make
