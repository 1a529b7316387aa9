"""HTML and JSON report generation for audits and research diagrams."""

import re
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from utils.charts import create_category_chart, create_severity_chart
from utils.scoring import (
    SEVERITY_COLORS,
    AnalysisResult,
    Severity,
    SiteReport,
    industry_comparison,
)
from utils.validation import ReportRequest, validate_form

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"


def markdown_to_html(text):
    """Convert basic markdown to HTML (lists, bold, links). Input is escaped first."""
    if not text:
        return ""
    text = str(escape(str(text)))
    # Convert **bold** to <strong>
    text = re.sub(r'\*\*(.*?)\*\*', r'<strong>\1</strong>', text)
    # Convert [link text](url) to <a>
    text = re.sub(r'\[([^\]]+)\]\((https?://[^)\s]+)\)', r'<a href="\2">\1</a>', text)
    lines = text.split('\n')
    html_lines = []
    in_ul = False
    in_ol = False
    for line in lines:
        stripped = line.strip()
        is_bullet = stripped.startswith('- ') or stripped.startswith('* ')
        is_ordered = bool(re.match(r'^\d+\.\s', stripped))

        if is_bullet:
            if in_ol:
                html_lines.append('</ol>')
                in_ol = False
            if not in_ul:
                html_lines.append('<ul>')
                in_ul = True
            html_lines.append(f'<li>{stripped[2:]}</li>')
        elif is_ordered:
            if in_ul:
                html_lines.append('</ul>')
                in_ul = False
            if not in_ol:
                html_lines.append('<ol>')
                in_ol = True
            content = re.sub(r'^\d+\.\s', '', stripped)
            html_lines.append(f'<li>{content}</li>')
        else:
            if in_ul:
                html_lines.append('</ul>')
                in_ul = False
            if in_ol:
                html_lines.append('</ol>')
                in_ol = False
            if stripped:
                html_lines.append(f'<p>{stripped}</p>')
    if in_ul:
        html_lines.append('</ul>')
    if in_ol:
        html_lines.append('</ol>')
    return '\n'.join(html_lines)


def emotion_emoji(level) -> str:
    try:
        level = int(level)
    except (TypeError, ValueError):
        level = 3
    if level >= 4:
        return "😊"
    if level >= 3:
        return "😐"
    return "😟"


def _create_jinja_env() -> Environment:
    """Create a Jinja2 Environment with custom filters."""
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(['html']),
    )
    env.filters['markdown_to_html'] = lambda text: Markup(markdown_to_html(text))
    env.filters['emotion_emoji'] = emotion_emoji
    return env


def _write(html_content: str, output_path: Optional[str]) -> str:
    if output_path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(html_content, encoding='utf-8')
        logger.info("Report written to %s", output_file)
    return html_content


def _project_name(name: Optional[str]) -> str:
    return validate_form(ReportRequest, {"project_name": name or ""}).project_name


def _severity_sections(grouped: Dict[str, List[Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "severity": severity.value,
            "label": severity.value.title(),
            "color": SEVERITY_COLORS[severity],
            "violations": grouped.get(severity.value, []),
        }
        for severity in (Severity.HIGH, Severity.MEDIUM, Severity.LOW)
    ]


def generate_html_report(
    result: AnalysisResult,
    output_path: Optional[str] = None,
    project_name: str = "",
    annotated_screenshot: str = "",
    legend: Optional[List] = None,
) -> str:
    """
    Render the report for a single-page audit.

    Args:
        result: Outcome of Orchestrator.analyze_page
        output_path: Optional file to write the HTML to
        project_name: Report title (defaults to the website name)
        annotated_screenshot: Data URI of the annotated screenshot, if rendered
        legend: (number, violation) pairs matching the screenshot badges

    Returns:
        The rendered HTML
    """
    grouped = result.violations_by_severity()
    breakdown = result.breakdown
    template = _create_jinja_env().get_template("report.html")
    html_content = template.render(
        kind="page",
        project_name=_project_name(project_name or result.website_name),
        url=result.url,
        generated_at=result.analyzed_at,
        score=result.overall_score,
        grade=result.grade.value,
        industry=breakdown.industry if breakdown and breakdown.industry else industry_comparison(result.overall_score),
        severity_sections=_severity_sections(grouped),
        violation_count=len(result.violations),
        strengths=result.strengths,
        heuristic_count=len(result.heuristic_ids),
        severity_chart=create_severity_chart({k: len(v) for k, v in grouped.items()}),
        category_chart=create_category_chart(breakdown.category_scores) if breakdown else "",
        screenshot=annotated_screenshot or result.screenshot,
        legend=legend or [],
        pages=[],
    )
    return _write(html_content, output_path)


def generate_site_report(report: SiteReport, output_path: Optional[str] = None) -> str:
    """Render the report for a full-site crawl."""
    template = _create_jinja_env().get_template("report.html")
    html_content = template.render(
        kind="site",
        project_name=_project_name(report.project_name),
        url=report.url,
        generated_at=report.generated_at,
        score=report.overall_score,
        grade=report.grade.value,
        industry=report.industry,
        severity_sections=_severity_sections(report.violations_by_severity()),
        violation_count=len(report.violations),
        strengths=report.strengths,
        heuristic_count=0,
        severity_chart=create_severity_chart(report.severity_counts()),
        category_chart="",
        screenshot="",
        legend=[],
        pages=sorted(report.pages, key=lambda p: p.score),
        page_type_counts=report.page_type_counts(),
    )
    return _write(html_content, output_path)


def _render_diagram(block: str, title: str, data: Dict[str, Any], output_path: Optional[str]) -> str:
    template = _create_jinja_env().get_template("diagram.html")
    return _write(template.render(block=block, title=title, data=data), output_path)


def generate_mind_map_html(data: Dict[str, Any], output_path: Optional[str] = None) -> str:
    title = f"Mind Map: {data.get('centralTopic') or 'Mind Map'}"
    return _render_diagram("mind_map", title, data, output_path)


def generate_ia_html(data: Dict[str, Any], output_path: Optional[str] = None) -> str:
    return _render_diagram("information_architecture", data.get("title") or "Information Architecture",
                           data, output_path)


def generate_journey_html(data: Dict[str, Any], output_path: Optional[str] = None) -> str:
    return _render_diagram("user_journey_map", data.get("title") or "User Journey Map", data, output_path)


DIAGRAM_RENDERERS = {
    "mind_map": generate_mind_map_html,
    "information_architecture": generate_ia_html,
    "user_journey_map": generate_journey_html,
}


def export_json(data: Any, output_path: Optional[str] = None) -> str:
    """Pretty-printed JSON, optionally written to a file."""
    content = json.dumps(data, indent=2, default=str)
    if output_path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(content, encoding='utf-8')
    return content
