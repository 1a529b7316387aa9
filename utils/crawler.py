"""Firecrawl API client for site crawls and single-page scrapes."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from orchestrator.context_store import PageData
from utils.config import get_secret
from utils.errors import (
    CrawlError,
    CrawlJobNotFoundError,
    CrawlRateLimitError,
    InsufficientCreditsError,
    ValidationError,
    WebsiteNotSupportedError,
)

logger = logging.getLogger(__name__)

FIRECRAWL_API_URL = "https://api.firecrawl.dev/v1"


@dataclass(frozen=True)
class CrawlModeConfig:
    """Page limit and capture options for one crawl mode."""
    name: str
    limit: int
    depth: int
    screenshots: bool
    estimated_credits: str
    description: str


CRAWL_MODES: Dict[str, CrawlModeConfig] = {
    "quick": CrawlModeConfig("quick", 25, 2, False, "25-35", "Homepage + key pages only"),
    "light": CrawlModeConfig("light", 50, 2, True, "50-60", "Main sections and important pages"),
    "standard": CrawlModeConfig("standard", 150, 3, True, "150-175", "Most pages, excluding deep nested content"),
    "comprehensive": CrawlModeConfig("comprehensive", 500, 4, True, "500-550", "Complete site crawl, all accessible pages"),
}
DEFAULT_CRAWL_MODE = "light"

INCLUDE_TAGS = ['a', 'button', 'input', 'form', 'nav', 'header', 'footer', 'main', 'section', 'article']

EXCLUDE_PATHS = [
    r'.*\.pdf$', r'.*\.zip$', r'.*\.tar\.gz$', r'.*\.exe$', r'.*\.dmg$',
    r'.*\.jpg$', r'.*\.jpeg$', r'.*\.png$', r'.*\.gif$', r'.*\.svg$', r'.*\.ico$',
    r'.*\.mp3$', r'.*\.mp4$', r'.*\.avi$', r'.*\.mov$',
    r'.*\.css$', r'.*\.js$', r'.*\.json$', r'.*\.xml$',
    '/tag/', '/tags/', '/category/', '/categories/',
    '/author/', '/authors/', '/archive/', '/archives/',
    '/page/[0-9]+', '/print/', '/feed/', '/rss/',
    r'\?print=', r'\?share=', r'\?replytocom=',
]


def get_crawl_mode(mode: Optional[str]) -> CrawlModeConfig:
    """Look up a crawl mode, defaulting to light. Unknown modes are rejected."""
    name = mode or DEFAULT_CRAWL_MODE
    if name not in CRAWL_MODES:
        raise ValidationError(f"Invalid crawl mode: {name}. Choose one of: {', '.join(CRAWL_MODES)}")
    return CRAWL_MODES[name]


def build_crawl_request(url: str, config: CrawlModeConfig) -> Dict[str, Any]:
    """Request body for POST /crawl."""
    formats = ['html', 'markdown', 'screenshot'] if config.screenshots else ['html', 'markdown']
    return {
        "url": url,
        "limit": config.limit,
        "scrapeOptions": {
            "formats": formats,
            "onlyMainContent": False,
            "includeTags": INCLUDE_TAGS,
            "waitFor": 1500,
            "removeBase64Images": False,
        },
        "allowBackwardLinks": False,
        "allowExternalLinks": False,
        "maxDepth": config.depth,
        "ignoreSitemap": False,
        "excludePaths": EXCLUDE_PATHS,
        "includePaths": [],
    }


def page_from_document(doc: Dict[str, Any]) -> PageData:
    """Convert a Firecrawl document into PageData."""
    metadata = doc.get("metadata") or {}
    url = metadata.get("sourceURL") or metadata.get("url") or doc.get("url") or ""
    return PageData(
        url=url,
        title=metadata.get("title") or "",
        status_code=int(metadata.get("statusCode") or 0),
        html=doc.get("html") or "",
        markdown=doc.get("markdown") or "",
        screenshot=doc.get("screenshot") or "",
    )


class FirecrawlClient:
    """
    Thin wrapper around the Firecrawl REST API.

    Crawling itself (discovery, retries, rendering) happens on Firecrawl's
    side; this client starts jobs, reads their status and maps HTTP failures
    onto the crawl error hierarchy.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: str = FIRECRAWL_API_URL, timeout: int = 60):
        self.api_key = api_key or get_secret("FIRECRAWL_API_KEY")
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        if self.api_key:
            self.session.headers.update({
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            })

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _require_key(self):
        if not self.api_key:
            raise CrawlError("FIRECRAWL_API_KEY not configured")

    def _raise_for_start(self, response: requests.Response, config: CrawlModeConfig):
        status = response.status_code
        body = response.text
        logger.error("Firecrawl API error: %s %s", status, body[:500])

        if status == 402:
            suggestion = ('Try "Light" mode (50 pages) or "Quick" mode (25 pages)'
                          if config.limit > 50 else "Upgrade your Firecrawl plan")
            raise InsufficientCreditsError(
                f"Insufficient Firecrawl credits to crawl {config.limit} pages. {suggestion}.",
                status_code=status, details=body,
            )
        if status == 429:
            raise CrawlRateLimitError(
                "Firecrawl API rate limit exceeded. Please wait 5-10 minutes and try again.",
                status_code=status, details=body,
            )
        if status == 403:
            raise WebsiteNotSupportedError(
                "This website is blocked by Firecrawl and cannot be crawled. "
                "Try a different website or use single-page analysis instead.",
                status_code=status, details=body,
            )
        raise CrawlError(f"Firecrawl error ({status}): {body[:500]}", status_code=status, details=body)

    def start_crawl(self, url: str, mode: Optional[str] = None) -> str:
        """Start a crawl job and return the Firecrawl job id."""
        self._require_key()
        config = get_crawl_mode(mode)
        logger.info("Starting Firecrawl crawl (%s mode): %d pages max, depth %d", config.name, config.limit, config.depth)

        response = self.session.post(
            f"{self.base_url}/crawl",
            json=build_crawl_request(url, config),
            timeout=self.timeout,
        )
        if not response.ok:
            self._raise_for_start(response, config)

        job_id = response.json().get("id")
        if not job_id:
            raise CrawlError("Firecrawl did not return a job id")
        logger.info("Firecrawl job started: %s", job_id)
        return job_id

    def get_crawl_status(self, job_id: str) -> Dict[str, Any]:
        """Fetch the status document for a crawl job."""
        self._require_key()
        response = self.session.get(f"{self.base_url}/crawl/{job_id}", timeout=self.timeout)

        if response.status_code == 404:
            raise CrawlJobNotFoundError("Crawl job expired", status_code=404, details=response.text)
        if response.status_code == 429:
            raise CrawlRateLimitError("Firecrawl status check rate limited", status_code=429, details=response.text)
        if not response.ok:
            raise CrawlError(f"Firecrawl status error ({response.status_code})",
                             status_code=response.status_code, details=response.text)
        return response.json()

    def collect_documents(self, status: Dict[str, Any], max_pages: int = 0) -> List[Dict[str, Any]]:
        """
        Gather every document of a finished crawl, following ``next`` links
        when Firecrawl paginates large results.
        """
        documents = list(status.get("data") or [])
        next_url = status.get("next")
        while next_url and (not max_pages or len(documents) < max_pages):
            response = self.session.get(next_url, timeout=self.timeout)
            if not response.ok:
                logger.warning("Stopped following crawl pagination at %s (%s)", next_url, response.status_code)
                break
            page = response.json()
            documents.extend(page.get("data") or [])
            next_url = page.get("next")
        return documents[:max_pages] if max_pages else documents

    def scrape(self, url: str, screenshot: bool = True) -> PageData:
        """Scrape one page with html, markdown and (optionally) a screenshot."""
        self._require_key()
        formats = ['html', 'markdown', 'screenshot'] if screenshot else ['html', 'markdown']
        response = self.session.post(
            f"{self.base_url}/scrape",
            json={"url": url, "formats": formats, "waitFor": 2000},
            timeout=self.timeout,
        )
        if response.status_code == 402:
            raise InsufficientCreditsError("Insufficient Firecrawl credits", status_code=402, details=response.text)
        if response.status_code == 429:
            raise CrawlRateLimitError("Firecrawl API rate limit exceeded", status_code=429, details=response.text)
        if not response.ok:
            raise CrawlError(f"Firecrawl scrape error ({response.status_code})",
                             status_code=response.status_code, details=response.text)

        payload = response.json()
        document = payload.get("data") or {}
        page = page_from_document(document)
        if not page.url:
            page.url = url
        return page
