import socket
from unittest.mock import patch

import pytest

from utils.errors import ValidationError
from utils.validation import (
    CrawlRequest,
    ObservationForm,
    PersonaForm,
    ReportRequest,
    StudyPlanForm,
    build_persona,
    build_study_data,
    validate_form,
    validate_public_url,
)


class TestPublicUrl:
    """Only public http(s) targets may be fetched or crawled."""

    def test_accepts_public_url(self):
        assert validate_public_url("  https://acme.io/pricing ") == "https://acme.io/pricing"

    @pytest.mark.parametrize("url,message", [
        ("", "URL is required"),
        ("ftp://acme.io", "Only HTTP(S) URLs are allowed"),
        ("javascript:alert(1)", "Only HTTP(S) URLs are allowed"),
        ("https://", "Invalid URL format"),
        ("http://localhost:8501", "Private/internal URLs"),
        ("http://127.0.0.1", "Private/internal URLs"),
        ("http://10.0.0.4", "Private/internal URLs"),
        ("http://172.20.1.1", "Private/internal URLs"),
        ("http://192.168.0.1", "Private/internal URLs"),
        ("http://169.254.169.254/latest/meta-data", "Private/internal URLs"),
        ("http://metadata.google.internal", "Private/internal URLs"),
        ("http://[::1]/", "Private/internal URLs"),
    ])
    def test_rejects_unsafe_urls(self, url, message):
        with pytest.raises(ValidationError, match=message):
            validate_public_url(url)

    def test_public_range_near_private_block_is_allowed(self):
        assert validate_public_url("http://172.32.0.1")

    @patch("utils.validation.socket.getaddrinfo")
    def test_dns_resolving_to_private_address(self, mock_getaddrinfo):
        mock_getaddrinfo.return_value = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.1.2.3", 0))]
        with pytest.raises(ValidationError, match="Private/internal URLs"):
            validate_public_url("https://internal.acme.io", resolve_dns=True)

    @patch("utils.validation.socket.getaddrinfo")
    def test_dns_resolving_to_public_address(self, mock_getaddrinfo):
        mock_getaddrinfo.return_value = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("93.184.216.34", 0))]
        assert validate_public_url("https://acme.io", resolve_dns=True) == "https://acme.io"

    @patch("utils.validation.socket.getaddrinfo", side_effect=socket.gaierror("no such host"))
    def test_unresolvable_host(self, mock_getaddrinfo):
        with pytest.raises(ValidationError, match="Cannot resolve hostname"):
            validate_public_url("https://nope.invalid", resolve_dns=True)


class TestForms:
    """Form schemas used by the research and crawl screens."""

    def test_study_plan_collects_every_error(self):
        with pytest.raises(ValidationError) as exc:
            validate_form(StudyPlanForm, {"title": "ab", "problem_statement": "short", "solution_goal": "short"})
        assert len(exc.value.errors) == 3

    def test_observation(self):
        form = validate_form(ObservationForm, {"observation_type": "quote", "content": "  I could not find the cart  "})
        assert form.content == "I could not find the cart"

    def test_persona_items_length(self):
        with pytest.raises(ValidationError):
            validate_form(PersonaForm, {"name": "Busy parent", "description": "Shops on mobile at night", "goals": ["ok"]})

    def test_crawl_request(self):
        request = validate_form(CrawlRequest, {"url": "https://acme.io", "mode": "quick", "project_name": "Acme"})
        assert request.mode == "quick"

    @pytest.mark.parametrize("data", [
        {"url": "http://localhost"},
        {"url": "https://acme.io", "mode": "everything"},
        {"url": "https://acme.io", "project_name": "x" * 201},
    ])
    def test_crawl_request_rejected(self, data):
        with pytest.raises(ValidationError):
            validate_form(CrawlRequest, data)

    def test_report_name_defaults_and_truncates(self):
        assert validate_form(ReportRequest, {"project_name": "   "}).project_name == "UX Analysis"
        assert len(validate_form(ReportRequest, {"project_name": "y" * 500}).project_name) == 200


class TestResearchInputs:
    """Free-text research inputs turned into validated diagram data."""

    def test_persona(self):
        persona = build_persona(
            name="  Busy parent ",
            description="Shops on mobile late at night",
            goals="Find a gift fast\n\n  Spend under fifty dollars  ",
            pain_points="Tiny buttons",
        )
        assert persona == {
            "name": "Busy parent",
            "description": "Shops on mobile late at night",
            "goals": ["Find a gift fast", "Spend under fifty dollars"],
            "pain_points": ["Tiny buttons"],
        }

    def test_no_persona(self):
        assert build_persona(name="  ", goals="\n") is None

    def test_incomplete_persona(self):
        with pytest.raises(ValidationError) as exc:
            build_persona(name="Busy parent")
        assert exc.value.errors[0].startswith("description:")

    def test_study_plan_and_observations(self):
        data = build_study_data(
            title="Checkout study",
            problem_statement="Half of mobile carts are abandoned",
            solution_goal="Cut abandonment by a fifth",
            observations="Hesitated at the shipping step\n\nAsked where the promo field was",
        )
        assert data["study_plan"]["title"] == "Checkout study"
        assert [o["content"] for o in data["observations"]] == [
            "Hesitated at the shipping step",
            "Asked where the promo field was",
        ]
        assert data["observations"][0]["observation_type"] == "note"

    def test_observations_only(self):
        assert set(build_study_data(observations="Could not find search")) == {"observations"}

    def test_nothing_entered(self):
        assert build_study_data() is None

    def test_short_observation_names_its_line(self):
        with pytest.raises(ValidationError, match="Observation 2"):
            build_study_data(observations="Hesitated at the shipping step\nok")

    def test_partial_study_plan(self):
        with pytest.raises(ValidationError):
            build_study_data(title="Checkout study")
