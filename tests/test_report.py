import json

import pytest

from utils.charts import create_category_chart, create_severity_chart
from utils.report import (
    DIAGRAM_RENDERERS,
    emotion_emoji,
    export_json,
    generate_html_report,
    generate_ia_html,
    generate_journey_html,
    generate_mind_map_html,
    generate_site_report,
    markdown_to_html,
)
from utils.scoring import (
    AnalysisResult,
    BoundingBox,
    PageAnalysis,
    Severity,
    Strength,
    Violation,
    build_site_report,
    calculate_research_score,
)


@pytest.fixture
def violations():
    return [
        Violation(heuristic="Visibility of System Status", severity=Severity.HIGH,
                  title="Checkout gives no progress feedback", description="**No spinner** after pay",
                  recommendation="Show step progress", bounding_box=BoundingBox(10, 10, 20, 10),
                  page_url="https://acme.io/checkout"),
        Violation(heuristic="Help and Documentation", severity=Severity.LOW, title="FAQ is hard to find"),
        Violation(heuristic="Error Prevention", severity=Severity.MEDIUM, title="Delete has no confirmation"),
    ]


@pytest.fixture
def result(violations):
    strengths = [Strength("Consistency and Standards", "Buttons share one style")]
    breakdown = calculate_research_score(violations, strengths)
    return AnalysisResult(
        url="https://acme.io/checkout",
        website_name="Acme",
        overall_score=breakdown.overall_score,
        violations=violations,
        strengths=strengths,
        heuristic_ids=["visibility", "help", "error_prevention"],
        breakdown=breakdown,
    )


class TestMarkdown:
    def test_bold_and_lists(self):
        html = markdown_to_html("**Fix this**\n- one\n- two\n1. first")
        assert "<strong>Fix this</strong>" in html
        assert "<ul>\n<li>one</li>\n<li>two</li>\n</ul>" in html
        assert "<ol>\n<li>first</li>\n</ol>" in html

    def test_input_is_escaped(self):
        html = markdown_to_html("<script>alert(1)</script>")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_only_http_links(self):
        assert '<a href="https://acme.io">docs</a>' in markdown_to_html("[docs](https://acme.io)")
        assert "<a" not in markdown_to_html("[x](javascript:alert(1))")

    def test_empty(self):
        assert markdown_to_html("") == ""
        assert markdown_to_html(None) == ""

    @pytest.mark.parametrize("level,emoji", [(5, "😊"), (4, "😊"), (3, "😐"), (1, "😟"), ("bad", "😐")])
    def test_emotion_emoji(self, level, emoji):
        assert emotion_emoji(level) == emoji


class TestCharts:
    def test_severity_chart_is_data_uri(self, tmp_path):
        output = tmp_path / "severity.png"
        uri = create_severity_chart({"high": 2, "medium": 1, "low": 0}, output_path=str(output))
        assert uri.startswith("data:image/png;base64,")
        assert output.exists()

    def test_category_chart_needs_three_categories(self):
        assert create_category_chart({"visibility": 80, "help": 90}) == ""
        assert create_category_chart({"visibility": 80, "help": 90, "match": 70}).startswith("data:image/png")


class TestPageReport:
    """HTML report for a single page."""

    def test_report_contents(self, result, tmp_path):
        output = tmp_path / "reports" / "acme.html"
        html = generate_html_report(result, output_path=str(output), project_name="Acme Checkout Review")

        assert output.read_text(encoding="utf-8") == html
        assert "<title>Acme Checkout Review - UX Heuristic Audit</title>" in html
        assert "Checkout gives no progress feedback" in html
        assert "<strong>No spinner</strong>" in html
        assert "Buttons share one style" in html
        assert "3 heuristics evaluated" in html
        assert f"Grade {result.grade.value}" in html

    def test_project_name_defaults_to_website(self, result):
        assert "<h1>Acme</h1>" in generate_html_report(result)

    def test_project_name_is_escaped_and_truncated(self, result):
        html = generate_html_report(result, project_name="<b>" + "x" * 300)
        assert "<b>x" not in html
        assert "&lt;b&gt;" + "x" * 197 + "</h1>" in html

    def test_legend_is_rendered(self, result, violations):
        html = generate_html_report(result, annotated_screenshot="data:image/png;base64,AAAA",
                                    legend=[(1, violations[0])])
        assert 'src="data:image/png;base64,AAAA"' in html
        assert '<li value="1">' in html

    def test_empty_severity_sections(self):
        html = generate_html_report(AnalysisResult(url="https://acme.io", website_name="Acme", overall_score=100))
        assert "No high severity violations." in html


class TestSiteReport:
    def test_site_report(self, violations):
        pages = [
            PageAnalysis(url="https://acme.io/", title="Home", page_type="homepage", score=88, violations=violations[1:]),
            PageAnalysis(url="https://acme.io/checkout", title="Checkout", page_type="checkout", score=70,
                         violations=violations[:1]),
            PageAnalysis(url="https://acme.io/404", page_type="other", score=50, is_error_page=True),
        ]
        html = generate_site_report(build_site_report("https://acme.io", "Acme Site", pages))

        assert "Site crawl audit" in html
        assert "homepage: 1, checkout: 1, other: 1" in html
        assert "(error page)" in html
        assert 'Page: <a href="https://acme.io/checkout">' in html
        assert html.index("https://acme.io/404") < html.index(">Home<")


class TestDiagrams:
    def test_mind_map(self):
        html = generate_mind_map_html({
            "centralTopic": "Onboarding",
            "branches": [{"id": "b1", "label": "Signup friction", "color": "#ef4444",
                          "children": [{"id": "c1", "label": "Too many fields"}]}],
            "connections": [{"from": "b1", "to": "b2", "label": "causes"}],
        })
        assert "<title>Mind Map: Onboarding</title>" in html
        assert "Too many fields" in html
        assert "b1 &rarr; b2: causes" in html

    def test_information_architecture(self):
        html = generate_ia_html({
            "title": "Help Center IA",
            "hierarchy": [{"label": "Guides", "type": "section", "children": [{"label": "Billing"}]}],
            "navigation": {"primary": ["Guides"], "secondary": [], "utility": ["Search"]},
            "taxonomies": [{"name": "Topics", "terms": ["Billing", "Accounts"]}],
        })
        assert "<h1>Help Center IA</h1>" in html
        assert "Billing" in html and "Accounts" in html
        assert "<h3>Utility</h3>" in html
        assert "<h3>Secondary</h3>" not in html

    def test_journey_map(self, tmp_path):
        output = tmp_path / "journey.html"
        html = generate_journey_html({
            "title": "First purchase",
            "stages": [
                {"id": "s1", "name": "Discover", "emotionLevel": 4, "painPoints": ["Slow search"]},
                {"id": "s2", "name": "Pay", "emotionLevel": 2, "opportunities": ["Apple Pay"]},
            ],
        }, output_path=str(output))
        assert output.exists()
        assert "Discover" in html and "😊" in html and "😟" in html
        assert "Slow search" in html and "Apple Pay" in html

    def test_renderers_cover_every_diagram(self):
        assert set(DIAGRAM_RENDERERS) == {"mind_map", "information_architecture", "user_journey_map"}

    def test_export_json(self, tmp_path, result):
        output = tmp_path / "result.json"
        content = export_json(result.to_dict(), output_path=str(output))
        data = json.loads(output.read_text())
        assert data == json.loads(content)
        assert data["websiteName"] == "Acme"
        assert data["violations"][0]["boundingBox"] == {"x": 10.0, "y": 10.0, "width": 20.0, "height": 10.0}
