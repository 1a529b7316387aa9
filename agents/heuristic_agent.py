"""Heuristic evaluation agent: rule pre-filter plus model review for each page."""

import re
import asyncio
import logging
from typing import Callable, List, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .base_agent import BaseAgent
from heuristics.catalog import get_heuristic
from heuristics.resolver import resolve_selection
from orchestrator.context_store import PageData
from utils.config import ANALYSIS_BATCH_SIZE
from utils.scoring import (
    PageAnalysis,
    Severity,
    Strength,
    Violation,
    calculate_page_score,
    merge_violations,
)

logger = logging.getLogger(__name__)

ERROR_PAGE_SCORE = 50
HTML_SNAPSHOT_CHARS = 10000
PROMPT_HTML_CHARS = 12000
PROMPT_MARKDOWN_CHARS = 6000

_ERROR_TITLE = re.compile(r'404|not found|error', re.I)
_ERROR_HEADING = re.compile(r'404|page not found|not found', re.I)
_ERROR_CLASS = re.compile(r'error-page|404-page', re.I)
_ERROR_FIRST_LINE = re.compile(r'^(404|error|not found|oops)$', re.I)

# Input types that never need a visible label
_UNLABELLED_INPUT_TYPES = {"hidden", "submit", "button", "image", "reset"}


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", 'lxml')


def _list_field(result: dict, key: str) -> list:
    value = result.get(key)
    return value if isinstance(value, list) else []


def _page_title(soup: BeautifulSoup) -> str:
    title_tag = soup.find('title')
    return title_tag.get_text(strip=True) if title_tag else ""


def is_error_page(html: str, markdown: str = "") -> bool:
    """
    Detect soft-404 and error pages.

    A page only counts as an error page when at least two signals agree,
    so ordinary pages that merely mention "404" are still evaluated.
    """
    soup = _soup(html)
    has_error_title = bool(_ERROR_TITLE.search(_page_title(soup)))
    has_error_heading = any(_ERROR_HEADING.search(h.get_text(" ", strip=True)) for h in soup.find_all('h1'))
    has_minimal_content = len(html or "") < 2000
    has_error_class = bool(_ERROR_CLASS.search(html or ""))
    first_line = (markdown or "").strip().split('\n')[0].strip()
    has_error_first_line = bool(_ERROR_FIRST_LINE.match(first_line))

    signals = [
        has_error_title,
        has_error_heading and has_minimal_content,
        has_error_class,
        has_error_first_line,
    ]
    return sum(1 for s in signals if s) >= 2


def should_skip_page(url: str, html: str, status_code: int = 0) -> bool:
    """Skip pages with no usable content and confirmed HTTP error pages."""
    if not url or url == "unknown" or not html or len(html) < 100:
        return True
    is_http_error = status_code == 404 or status_code >= 500
    if is_http_error and len(html) < 2000 and _ERROR_TITLE.search(_page_title(_soup(html))):
        return True
    return False


def classify_page_type(url: str, html: str = "") -> str:
    """Rough page type from the URL and a few content cues."""
    url_lower = url.lower()
    html_lower = (html or "").lower()

    if '/checkout' in url_lower or '/cart' in url_lower:
        return 'checkout'
    if '/product' in url_lower or 'add to cart' in html_lower:
        return 'product'
    if '/category' in url_lower or '/collection' in url_lower:
        return 'listing'
    if '/about' in url_lower:
        return 'about'
    if '/contact' in url_lower:
        return 'contact'
    parsed = urlparse(url_lower)
    if parsed.path in ('', '/') and not parsed.query:
        return 'homepage'
    return 'other'


def prefilter_violations(html: str, page_url: str = "") -> List[Violation]:
    """High-confidence problems detectable without a model."""
    soup = _soup(html)
    found: List[Violation] = []

    images = soup.find_all('img')
    with_alt = [img for img in images if img.has_attr('alt')]
    if len(images) > 3 and len(with_alt) < len(images) * 0.5:
        found.append(Violation(
            heuristic=get_heuristic("accessibility").label,
            severity=Severity.HIGH,
            title="Critical: Missing alt text on images",
            description=f"{len(images) - len(with_alt)} images lack alt attributes, violating WCAG guidelines",
            location="Images throughout page",
            recommendation="Add descriptive alt text to all images for screen readers",
            confidence=0.95,
            page_url=page_url,
        ))

    if not soup.find('meta', attrs={'name': re.compile(r'^viewport$', re.I)}):
        found.append(Violation(
            heuristic=get_heuristic("mobile").label,
            severity=Severity.HIGH,
            title="Critical: No mobile viewport configuration",
            description="Missing viewport meta tag will break mobile rendering",
            location="HTML <head>",
            recommendation='Add: <meta name="viewport" content="width=device-width, initial-scale=1">',
            confidence=1.0,
            page_url=page_url,
        ))

    if soup.find('form'):
        inputs = [
            i for i in soup.find_all('input')
            if (i.get('type') or 'text').lower() not in _UNLABELLED_INPUT_TYPES
        ]
        labels = soup.find_all('label')
        if inputs and len(labels) < len(inputs) * 0.7:
            found.append(Violation(
                heuristic=get_heuristic("accessibility").label,
                severity=Severity.HIGH,
                title="Critical: Form inputs lack labels",
                description=f"{len(inputs) - len(labels)} inputs missing labels (WCAG violation)",
                location="Forms",
                recommendation="Associate every input with a label element for accessibility",
                confidence=0.9,
                page_url=page_url,
            ))

    return found


BatchCallback = Callable[[int, int], None]


class HeuristicEvaluationAgent(BaseAgent):
    """
    Evaluates every captured page against the selected heuristics.

    Per page:
    - Short-circuits error pages with a neutral score
    - Runs deterministic pre-filter rules
    - Asks the model for violations and strengths (screenshot attached)
    - Merges both finding sets and scores the page
    """

    agent_name = "heuristic_evaluation"
    agent_description = "Evaluates pages against usability heuristics"
    dependencies = []

    def __init__(self, context, llm_client=None, verbose: bool = False,
                 batch_size: int = ANALYSIS_BATCH_SIZE, on_batch_complete: Optional[BatchCallback] = None):
        super().__init__(context, llm_client, verbose)
        self.batch_size = batch_size
        self.on_batch_complete = on_batch_complete

    def heuristic_ids(self) -> List[str]:
        return self.context.heuristic_ids or resolve_selection(self.context.selection)

    def heuristics_brief(self) -> str:
        lines = []
        for heuristic_id in self.heuristic_ids():
            heuristic = get_heuristic(heuristic_id)
            if heuristic:
                lines.append(f"- {heuristic.label}: {heuristic.description}")
        return '\n'.join(lines)

    async def run(self) -> List[PageAnalysis]:
        """Evaluate all pending pages in concurrent batches."""
        pages = self.context.pending_pages()
        results: List[PageAnalysis] = []
        total_batches = (len(pages) + self.batch_size - 1) // self.batch_size

        for start in range(0, len(pages), self.batch_size):
            batch = pages[start:start + self.batch_size]
            logger.info("Processing batch %d/%d (pages %d-%d)",
                        start // self.batch_size + 1, total_batches, start + 1, start + len(batch))

            outcomes = await asyncio.gather(
                *(self.evaluate_page(page) for page in batch),
                return_exceptions=True,
            )
            for page, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    logger.error("Failed to analyze %s: %s", page.url, outcome)
                    continue
                if outcome is None:
                    continue
                self.context.add_page_analysis(outcome)
                results.append(outcome)

            if self.on_batch_complete:
                self.on_batch_complete(len(results), len(pages))

        self.analysis.analysis_text = f"Analyzed {len(results)} of {len(pages)} pages"
        return results

    async def evaluate_page(self, page: PageData) -> Optional[PageAnalysis]:
        """Evaluate one page. Returns None when the page should be skipped."""
        if should_skip_page(page.url, page.html, page.status_code):
            logger.info("Skipping page with no usable content: %s", page.url)
            return None

        page_type = page.page_type or classify_page_type(page.url, page.html)
        title = page.title or _page_title(_soup(page.html)) or "Untitled"

        if is_error_page(page.html, page.markdown):
            logger.info("Error page detected, not evaluating: %s", page.url)
            return PageAnalysis(
                url=page.url, title=title, page_type=page_type, score=ERROR_PAGE_SCORE,
                screenshot=page.screenshot, html_snapshot=page.html[:HTML_SNAPSHOT_CHARS],
                is_error_page=True,
            )

        rule_violations = prefilter_violations(page.html, page_url=page.url)
        ai_violations, ai_strengths = await self._ask_model(page, page_type)
        violations = merge_violations(rule_violations, ai_violations)

        logger.debug("%s: %d rule findings, %d model findings, %d merged",
                     page.url, len(rule_violations), len(ai_violations), len(violations))

        return PageAnalysis(
            url=page.url,
            title=title,
            page_type=page_type,
            score=calculate_page_score(violations),
            violations=violations,
            strengths=ai_strengths,
            screenshot=page.screenshot,
            html_snapshot=page.html[:HTML_SNAPSHOT_CHARS],
        )

    async def _ask_model(self, page: PageData, page_type: str) -> Tuple[List[Violation], List[Strength]]:
        if not self.llm.is_available():
            logger.info("LLM not configured, using rule-based findings only for %s", page.url)
            return [], []

        try:
            result = await self.llm.analyze_with_prompt_async(
                "heuristic_evaluation",
                max_tokens=4096,
                images=[page.screenshot] if page.screenshot else None,
                url=page.url,
                page_type=page_type,
                heuristics=self.heuristics_brief(),
                html=page.html[:PROMPT_HTML_CHARS],
                markdown=page.markdown[:PROMPT_MARKDOWN_CHARS],
            )
            return self._parse_findings(result, page.url)
        except Exception as e:
            # Model failures degrade to rule-based findings
            logger.warning("Model analysis failed for %s: %s", page.url, e)
            return [], []

    def _parse_findings(self, result, page_url: str) -> Tuple[List[Violation], List[Strength]]:
        if not isinstance(result, dict):
            raise ValueError(f"Expected a JSON object, got {type(result).__name__}")
        self.llm.validate_response(result, {"violations": list, "strengths": list})
        violations = [
            Violation.from_dict(v, page_url=page_url)
            for v in _list_field(result, "violations") if isinstance(v, dict)
        ]
        strengths = [
            Strength.from_dict(s)
            for s in _list_field(result, "strengths") if isinstance(s, dict)
        ]
        return violations, strengths
