"""Shared context store for a heuristic audit run."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from enum import Enum
from datetime import datetime

from heuristics.selection import HeuristicSelection
from utils.scoring import PageAnalysis


class AgentStatus(Enum):
    """Status of an agent's execution."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    NEEDS_REVISION = "needs_revision"


@dataclass
class PageData:
    """Content captured for a single page."""
    url: str
    title: str = ""
    status_code: int = 0
    html: str = ""
    markdown: str = ""
    screenshot: str = ""  # data URI or remote URL
    page_type: str = ""


@dataclass
class ScreenshotData:
    """Full-page screenshot captured for a directly fetched page."""
    url: str
    base64_data: str
    width: int = 0
    captured_at: str = ""
    error: str = ""


@dataclass
class AgentAnalysis:
    """Result from an agent's analysis."""
    agent_name: str
    status: AgentStatus = AgentStatus.PENDING
    result: Optional[Any] = None
    analysis_text: str = ""
    raw_data: Dict = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    started_at: str = ""
    completed_at: str = ""
    self_audit_passed: bool = False


@dataclass
class ContextStore:
    """
    Shared state container for all agents during an audit.

    Holds the target, the heuristics being evaluated, captured pages and
    the per-page results agents write back.
    """
    # Configuration
    target_url: str = ""
    website_name: str = ""
    project_name: str = ""
    crawl_id: str = ""
    selection: HeuristicSelection = field(default_factory=HeuristicSelection)
    heuristic_ids: List[str] = field(default_factory=list)
    capture_screenshots: bool = True

    # Captured data
    pages: Dict[str, PageData] = field(default_factory=dict)
    screenshots: Dict[str, ScreenshotData] = field(default_factory=dict)

    # Agent output
    analyses: Dict[str, AgentAnalysis] = field(default_factory=dict)
    page_analyses: Dict[str, PageAnalysis] = field(default_factory=dict)

    # Metadata
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    last_updated: str = ""

    def update_timestamp(self):
        """Update the last_updated timestamp."""
        self.last_updated = datetime.now().isoformat()

    def get_page(self, url: str) -> Optional[PageData]:
        """Get page data by URL."""
        return self.pages.get(url)

    def add_page(self, page: PageData):
        """Add or update a page in the store."""
        self.pages[page.url] = page
        self.update_timestamp()

    def add_screenshot(self, screenshot: ScreenshotData):
        """Add or replace the screenshot of a page."""
        self.screenshots[screenshot.url] = screenshot
        self.update_timestamp()

    def get_screenshot(self, url: str) -> Optional[ScreenshotData]:
        """Get the screenshot captured for a URL."""
        return self.screenshots.get(url)

    def get_analysis(self, agent_name: str) -> Optional[AgentAnalysis]:
        """Get analysis by agent name."""
        return self.analyses.get(agent_name)

    def set_analysis(self, analysis: AgentAnalysis):
        """Set analysis for an agent."""
        self.analyses[analysis.agent_name] = analysis
        self.update_timestamp()

    def add_page_analysis(self, page_analysis: PageAnalysis):
        self.page_analyses[page_analysis.url] = page_analysis
        self.update_timestamp()

    def pending_pages(self) -> List[PageData]:
        """Pages that have no analysis yet, in capture order."""
        return [p for url, p in self.pages.items() if url not in self.page_analyses]

    def get_summary(self) -> Dict:
        """Get a summary of the context store state."""
        return {
            'website': self.target_url,
            'heuristics': len(self.heuristic_ids),
            'pages_captured': len(self.pages),
            'pages_analyzed': len(self.page_analyses),
            'screenshots_captured': len(self.screenshots),
            'analyses_completed': sum(1 for a in self.analyses.values()
                                      if a.status == AgentStatus.COMPLETED),
            'analyses_failed': sum(1 for a in self.analyses.values()
                                   if a.status == AgentStatus.FAILED),
        }
