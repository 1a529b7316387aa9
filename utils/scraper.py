"""Direct page fetching, used when the crawl service is not configured."""

import time
import logging
from typing import Optional

import requests
from bs4 import BeautifulSoup

from orchestrator.context_store import PageData
from utils.errors import ScrapingError, ValidationError
from utils.validation import validate_public_url

logger = logging.getLogger(__name__)


class WebScraper:
    """Fetches a single page and extracts what the heuristic evaluation needs."""

    USER_AGENT = (
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
    )

    def __init__(self, timeout: int = 15, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': self.USER_AGENT})

    def fetch_page(self, url: str) -> PageData:
        """
        Fetch and parse a page.

        Non-200 responses are still returned (the status code and body feed
        the error-page checks); network failures and unsafe URLs raise
        ScrapingError.
        """
        try:
            validate_public_url(url, resolve_dns=True)
        except ValidationError as e:
            raise ScrapingError(url, str(e))

        try:
            start_time = time.time()
            response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
            load_time = time.time() - start_time
        except requests.RequestException as e:
            logger.warning("Error fetching %s: %s", url, e)
            raise ScrapingError(url, str(e))

        page = parse_html(url, response.text)
        page.status_code = response.status_code
        logger.info("Fetched %s (%d, %.2fs)", url, response.status_code, load_time)
        return page


def parse_html(url: str, html: str) -> PageData:
    """Build PageData from raw HTML."""
    soup = BeautifulSoup(html or "", 'lxml')
    title_tag = soup.find('title')
    return PageData(
        url=url,
        title=title_tag.get_text(strip=True) if title_tag else "",
        html=html or "",
    )
