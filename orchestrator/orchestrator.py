"""Main orchestrator for single-page audits and full-site crawls."""

import math
import time
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from .context_store import AgentStatus, ContextStore, ScreenshotData
from agents.heuristic_agent import HeuristicEvaluationAgent
from heuristics.resolver import resolve_selection
from utils.config import ANALYSIS_BATCH_SIZE, ANALYSIS_RETRY_DELAY, POLL_INTERVAL
from utils.crawler import FirecrawlClient, get_crawl_mode, page_from_document
from utils.errors import (
    AgentError,
    CrawlError,
    CrawlJobNotFoundError,
    CrawlRateLimitError,
    ScrapingError,
)
from utils.llm_client import LLMClient
from utils.scoring import AnalysisResult, SiteReport, build_site_report, calculate_research_score
from utils.scraper import WebScraper
from utils.screenshot import ScreenshotManager
from utils.store import CrawlJob, CrawlStatus, JobStore
from utils.validation import validate_public_url

logger = logging.getLogger(__name__)

# Seconds per page assumed before the first batch finishes
DEFAULT_SECONDS_PER_PAGE = 0.44


def _hostname(url: str) -> str:
    return urlparse(url).hostname or url


def _estimate_remaining(elapsed: float, analyzed: int, total: int) -> str:
    per_page = elapsed / analyzed if analyzed else DEFAULT_SECONDS_PER_PAGE
    seconds = math.ceil(max(0, total - analyzed) * per_page)
    return f"{math.ceil(seconds / 60)} min"


class Orchestrator:
    """
    Main coordinator for heuristic audits.

    Manages:
    - Single-page fetch, evaluation and scoring
    - Crawl job lifecycle (start, status polling, analysis)
    - Progress reporting to the CLI and Streamlit
    """

    def __init__(
        self,
        context: ContextStore,
        llm_client: Optional[LLMClient] = None,
        store: Optional[JobStore] = None,
        crawler: Optional[FirecrawlClient] = None,
        verbose: bool = False,
        progress_callback=None,
        batch_size: int = ANALYSIS_BATCH_SIZE,
    ):
        """
        Initialize the orchestrator.

        Args:
            context: Shared context store with the heuristic selection
            llm_client: LLM client for the evaluation agent
            store: Job persistence (defaults to the data directory)
            crawler: Firecrawl client (defaults to the configured key)
            verbose: Enable verbose output
            progress_callback: Optional callback(phase, status, detail) for progress updates
        """
        self.context = context
        self.llm = llm_client or LLMClient()
        self.store = store or JobStore()
        self.crawler = crawler or FirecrawlClient()
        self.verbose = verbose
        self.progress_callback = progress_callback
        self.batch_size = batch_size
        self.screenshot_manager: Optional[ScreenshotManager] = None

        if not self.context.heuristic_ids:
            self.context.heuristic_ids = resolve_selection(self.context.selection)

    def _progress(self, phase: str, status: str, detail: str = ""):
        if self.progress_callback:
            self.progress_callback(phase=phase, status=status, detail=detail)

    def _agent(self, on_batch_complete=None) -> HeuristicEvaluationAgent:
        return HeuristicEvaluationAgent(
            self.context, self.llm, verbose=self.verbose,
            batch_size=self.batch_size, on_batch_complete=on_batch_complete,
        )

    # -- single page -------------------------------------------------------

    async def _capture_screenshot(self, url: str) -> str:
        if self.screenshot_manager is None:
            self.screenshot_manager = ScreenshotManager()
        try:
            result = await self.screenshot_manager.capture_full_page(url)
        finally:
            await self.screenshot_manager.close()
            self.screenshot_manager = None

        self.context.add_screenshot(ScreenshotData(
            url=url,
            base64_data=result.base64_data,
            width=result.width,
            captured_at=result.captured_at,
            error=result.error,
        ))
        return result.base64_data if result.ok else ""

    async def fetch_page(self, url: str):
        """Fetch a page through Firecrawl, or directly when no key is configured."""
        if self.crawler.is_available():
            logger.info("Scraping %s via Firecrawl", url)
            return self.crawler.scrape(url, screenshot=self.context.capture_screenshots)

        logger.info("Firecrawl not configured, fetching %s directly", url)
        page = WebScraper().fetch_page(url)
        if self.context.capture_screenshots:
            page.screenshot = await self._capture_screenshot(url)
        return page

    async def analyze_page(self, url: str) -> AnalysisResult:
        """Audit a single page against the selected heuristics."""
        url = validate_public_url(url)
        self.context.target_url = url
        logger.info("UX HEURISTIC AUDIT: %s (%d heuristics)", url, len(self.context.heuristic_ids))

        self._progress("Fetching", "started", url)
        try:
            page = await self.fetch_page(url)
        except CrawlError as e:
            raise ScrapingError(url, str(e))
        self.context.add_page(page)
        self.context.website_name = self.context.website_name or page.title or _hostname(url)
        self._progress("Fetching", "completed", page.title or url)

        self._progress("Evaluation", "started", f"{len(self.context.heuristic_ids)} heuristics")
        agent = self._agent()
        page_analysis = await agent.evaluate_page(page)
        if page_analysis is None:
            raise ScrapingError(url, "Page has no usable content to evaluate")
        self.context.add_page_analysis(page_analysis)
        self._progress("Evaluation", "completed", f"{len(page_analysis.violations)} violations")

        breakdown = calculate_research_score(page_analysis.violations, page_analysis.strengths)
        result = AnalysisResult(
            url=url,
            website_name=self.context.website_name,
            overall_score=breakdown.overall_score,
            violations=page_analysis.violations,
            strengths=page_analysis.strengths,
            screenshot=page.screenshot,
            heuristic_ids=list(self.context.heuristic_ids),
            breakdown=breakdown,
            page_type=page_analysis.page_type,
        )
        self._progress("Complete", "completed", f"Score {result.overall_score}")
        return result

    def analyze_page_sync(self, url: str) -> AnalysisResult:
        """Synchronous wrapper for single-page audits."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(self.analyze_page(url))
        finally:
            loop.close()

    # -- site crawl --------------------------------------------------------

    def start_site_crawl(self, url: str, mode: Optional[str] = None, project_name: str = "") -> CrawlJob:
        """Validate the target, create the job and start the remote crawl."""
        url = validate_public_url(url)
        config = get_crawl_mode(mode)
        job = self.store.create_job(
            url,
            mode=config.name,
            project_name=project_name or _hostname(url),
            heuristics=self.context.selection,
        )
        self.context.crawl_id = job.id
        self.context.target_url = url
        self._progress("Crawl", "started", f"{config.name} mode, up to {config.limit} pages")

        try:
            remote_id = self.crawler.start_crawl(url, config.name)
        except CrawlError as e:
            logger.error("Failed to start crawl for %s: %s", url, e)
            self.store.update_job(job.id, status=CrawlStatus.FAILED,
                                  error_message=str(e), error_code=e.error_code)
            self._progress("Crawl", "failed", str(e))
            raise

        return self.store.update_job(job.id, status=CrawlStatus.CRAWLING, firecrawl_job_id=remote_id)

    @staticmethod
    def _remote_ready(status: Dict[str, Any]) -> bool:
        state = status.get("status")
        if state == "completed":
            return True
        total = status.get("total") or 0
        return (state == "scraping" and total > 0
                and status.get("completed") == total and bool(status.get("data")))

    def check_crawl_status(self, crawl_id: str) -> CrawlJob:
        """
        Poll the remote crawl and advance the job.

        Transient failures (rate limits, unexpected API errors) leave the job
        unchanged so the caller simply polls again.
        """
        job = self.store.get_job(crawl_id)
        if job is None:
            raise KeyError(f"Crawl job not found: {crawl_id}")
        if not job.firecrawl_job_id or job.is_finished:
            return job

        try:
            status = self.crawler.get_crawl_status(job.firecrawl_job_id)
        except CrawlJobNotFoundError as e:
            logger.warning("Crawl job %s expired on Firecrawl", job.firecrawl_job_id)
            return self.store.update_job(crawl_id, status=CrawlStatus.ERROR, error_message=str(e),
                                         error_code=e.error_code, should_restart=True)
        except CrawlRateLimitError:
            logger.info("Status check rate limited, keeping current state for %s", crawl_id)
            return job
        except CrawlError as e:
            logger.warning("Status check failed for %s: %s", crawl_id, e)
            return job

        if status.get("success") is False and status.get("error"):
            return self.store.update_job(crawl_id, status=CrawlStatus.ERROR,
                                         error_message=str(status["error"]))

        job = self.store.update_job(
            crawl_id,
            total_pages=status.get("total") or job.total_pages,
            crawled_pages=status.get("completed") or job.crawled_pages,
        )

        if not self._remote_ready(status) or job.status in (CrawlStatus.ANALYZING, CrawlStatus.COMPLETED):
            return job

        job = self.store.update_job(crawl_id, status=CrawlStatus.ANALYZING)
        documents = self.crawler.collect_documents(status, max_pages=get_crawl_mode(job.mode).limit)
        logger.info("Crawl %s ready: %d documents", crawl_id, len(documents))

        try:
            self.analyze_crawl_sync(job, documents)
        except Exception as e:
            logger.warning("Analysis failed for %s, retrying in %ss: %s", crawl_id, ANALYSIS_RETRY_DELAY, e)
            time.sleep(ANALYSIS_RETRY_DELAY)
            try:
                self.analyze_crawl_sync(job, documents)
            except Exception as retry_error:
                logger.error("Analysis retry failed for %s: %s", crawl_id, retry_error)
                metadata = dict(job.metadata, retry_failed=True)
                return self.store.update_job(crawl_id, status=CrawlStatus.ERROR,
                                             error_message=f"Analysis failed: {retry_error}",
                                             metadata=metadata)

        return self.store.get_job(crawl_id)

    async def analyze_crawl(self, job: CrawlJob, documents: List[Dict[str, Any]]) -> SiteReport:
        """Evaluate every crawled document and aggregate the results onto the job."""
        self.store.clear_page_analyses(job.id)
        self.context.pages.clear()
        self.context.page_analyses.clear()
        self.context.analyses.pop(HeuristicEvaluationAgent.agent_name, None)
        for document in documents:
            page = page_from_document(document)
            if page.url:
                self.context.add_page(page)

        total = len(self.context.pages)
        start = time.time()
        saved = set()
        self._progress("Analysis", "started", f"{total} pages")

        def on_batch_complete(analyzed: int, _pending: int):
            for url, page_analysis in self.context.page_analyses.items():
                if url not in saved:
                    self.store.save_page_analysis(job.id, page_analysis)
                    saved.add(url)
            eta = _estimate_remaining(time.time() - start, analyzed, total)
            self.store.update_job(job.id, analyzed_pages=analyzed, estimated_time_remaining=eta)
            self._progress("Analysis", "progress", f"{analyzed}/{total} pages, {eta} remaining")

        agent = self._agent(on_batch_complete=on_batch_complete)
        analysis = await agent.execute()
        if analysis.status == AgentStatus.FAILED:
            raise AgentError(agent.agent_name, "; ".join(analysis.errors) or "analysis failed")

        report = build_site_report(job.url, job.project_name, list(self.context.page_analyses.values()))
        analyzed = len(report.pages)
        total_time = int(time.time() - start)
        metadata = dict(
            job.metadata,
            total_analysis_time=total_time,
            avg_time_per_page=round(total_time / analyzed, 1) if analyzed else 0,
        )
        self.store.update_job(
            job.id,
            status=CrawlStatus.COMPLETED,
            analyzed_pages=analyzed,
            overall_score=report.overall_score,
            violations=[v.to_dict() for v in report.violations],
            strengths=[s.to_dict() for s in report.strengths],
            estimated_time_remaining="",
            completed_at=datetime.now().isoformat(),
            metadata=metadata,
        )
        logger.info("Analysis completed in %ss: %d pages, score %d, %d unique violations",
                    total_time, analyzed, report.overall_score, len(report.violations))
        self._progress("Analysis", "completed", f"Score {report.overall_score}")
        return report

    def analyze_crawl_sync(self, job: CrawlJob, documents: List[Dict[str, Any]]) -> SiteReport:
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(self.analyze_crawl(job, documents))
        finally:
            loop.close()

    def load_site_report(self, crawl_id: str) -> Optional[SiteReport]:
        """Rebuild the report of a finished crawl from its stored page analyses."""
        job = self.store.get_job(crawl_id)
        if job is None or job.status != CrawlStatus.COMPLETED:
            return None
        return build_site_report(job.url, job.project_name, self.store.get_page_analyses(crawl_id))

    def run_site_audit(
        self,
        url: str,
        mode: Optional[str] = None,
        project_name: str = "",
        poll_interval: float = POLL_INTERVAL,
        max_polls: int = 0,
    ) -> CrawlJob:
        """
        Start a crawl and poll until the job reaches a terminal state.

        Used by the CLI and by the Streamlit background thread.
        """
        job = self.start_site_crawl(url, mode, project_name)
        polls = 0
        while not job.is_finished:
            if max_polls and polls >= max_polls:
                logger.warning("Stopped polling %s after %d checks", job.id, polls)
                break
            time.sleep(poll_interval)
            polls += 1
            job = self.check_crawl_status(job.id)
            self._progress("Crawl", job.status,
                           f"{job.crawled_pages}/{job.total_pages} crawled, {job.analyzed_pages} analyzed")
        return job

    def get_status_summary(self) -> Dict:
        """Get a summary of the audit status."""
        summary = self.context.get_summary()
        summary['crawler'] = 'firecrawl' if self.crawler.is_available() else 'direct'
        summary['llm'] = self.llm.provider if self.llm.is_available() else None
        return summary
