"""JSON-file persistence for crawl jobs, page analyses and user settings."""

import json
import os
import uuid
import logging
import tempfile
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from heuristics.selection import HeuristicSelection
from utils.config import get_data_dir
from utils.scoring import PageAnalysis

logger = logging.getLogger(__name__)

FIGMA_TOKEN_HELP_URL = "https://www.figma.com/developers/api#access-tokens"
DEFAULT_USER_ID = "local"


class CrawlStatus:
    QUEUED = "queued"
    CRAWLING = "crawling"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"
    FAILED = "failed"

    TERMINAL = (COMPLETED, ERROR, FAILED)


STATUS_MESSAGES = {
    CrawlStatus.QUEUED: "Preparing to crawl website...",
    CrawlStatus.CRAWLING: "Discovering pages...",
    CrawlStatus.ANALYZING: "Analyzing pages...",
    CrawlStatus.COMPLETED: "Analysis complete!",
    CrawlStatus.ERROR: "An error occurred",
}


def status_message(status: str) -> str:
    """User-facing line for a crawl status."""
    return STATUS_MESSAGES.get(status, "Processing...")


def _write_json(path: Path, data: Any) -> None:
    """Write JSON atomically so readers never see a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _read_json(path: Path) -> Optional[Any]:
    if not path.exists():
        return None
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


@dataclass
class CrawlJob:
    """A full-site crawl and its analysis progress."""
    id: str
    url: str
    project_name: str = ""
    mode: str = "light"
    status: str = CrawlStatus.QUEUED
    firecrawl_job_id: str = ""
    total_pages: int = 0
    crawled_pages: int = 0
    analyzed_pages: int = 0
    estimated_time_remaining: str = ""
    overall_score: Optional[int] = None
    violations: List[Dict[str, Any]] = field(default_factory=list)
    strengths: List[Dict[str, Any]] = field(default_factory=list)
    heuristics: Dict[str, Any] = field(default_factory=dict)
    error_message: str = ""
    error_code: str = ""
    should_restart: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: str = ""

    @property
    def status_message(self) -> str:
        return status_message(self.status)

    @property
    def is_finished(self) -> bool:
        return self.status in CrawlStatus.TERMINAL

    @property
    def selection(self) -> HeuristicSelection:
        return HeuristicSelection.from_dict(self.heuristics)

    def crawl_progress(self) -> float:
        return self.crawled_pages / self.total_pages if self.total_pages else 0.0

    def analysis_progress(self) -> float:
        return self.analyzed_pages / self.total_pages if self.total_pages else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrawlJob":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class UserSettings:
    """Per-user preferences."""
    user_id: str = DEFAULT_USER_ID
    figma_access_token: Optional[str] = None
    default_framework: str = "Nielsen's 10 Heuristics"
    default_heuristics: Dict[str, Any] = field(default_factory=lambda: HeuristicSelection().to_dict())
    theme: str = "light"
    email_notifications: bool = True
    weekly_reports: bool = False
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSettings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class JobStore:
    """
    Crawl jobs and their page analyses, one directory per job:

        <data>/crawls/<id>/job.json
        <data>/crawls/<id>/pages/<n>.json
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir else get_data_dir()
        self.crawls_dir = self.base_dir / "crawls"

    def _job_path(self, crawl_id: str) -> Path:
        return self.crawls_dir / crawl_id / "job.json"

    def _pages_dir(self, crawl_id: str) -> Path:
        return self.crawls_dir / crawl_id / "pages"

    def create_job(self, url: str, mode: str = "light", project_name: str = "",
                   heuristics: Optional[HeuristicSelection] = None) -> CrawlJob:
        job = CrawlJob(
            id=uuid.uuid4().hex,
            url=url,
            mode=mode,
            project_name=project_name,
            heuristics=(heuristics or HeuristicSelection()).to_dict(),
        )
        self.save_job(job)
        logger.info("Crawl job created: %s (%s)", job.id, url)
        return job

    def save_job(self, job: CrawlJob) -> CrawlJob:
        _write_json(self._job_path(job.id), job.to_dict())
        return job

    def get_job(self, crawl_id: str) -> Optional[CrawlJob]:
        data = _read_json(self._job_path(crawl_id))
        return CrawlJob.from_dict(data) if data else None

    def update_job(self, crawl_id: str, **changes) -> CrawlJob:
        job = self.get_job(crawl_id)
        if job is None:
            raise KeyError(f"Crawl job not found: {crawl_id}")
        for key, value in changes.items():
            if not hasattr(job, key):
                raise AttributeError(f"CrawlJob has no field '{key}'")
            setattr(job, key, value)
        return self.save_job(job)

    def list_jobs(self) -> List[CrawlJob]:
        """All jobs, newest first."""
        if not self.crawls_dir.exists():
            return []
        jobs = []
        for job_dir in self.crawls_dir.iterdir():
            job = self.get_job(job_dir.name) if job_dir.is_dir() else None
            if job:
                jobs.append(job)
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def save_page_analysis(self, crawl_id: str, page: PageAnalysis) -> Path:
        pages_dir = self._pages_dir(crawl_id)
        pages_dir.mkdir(parents=True, exist_ok=True)
        index = len(list(pages_dir.glob("*.json")))
        path = pages_dir / f"{index:05d}.json"
        _write_json(path, page.to_dict())
        return path

    def clear_page_analyses(self, crawl_id: str) -> int:
        """Remove stored page analyses so a rerun starts from an empty set."""
        pages_dir = self._pages_dir(crawl_id)
        if not pages_dir.exists():
            return 0
        removed = 0
        for path in pages_dir.glob("*.json"):
            path.unlink()
            removed += 1
        if removed:
            logger.info("Cleared %d stored page analyses for %s", removed, crawl_id)
        return removed

    def get_page_analyses(self, crawl_id: str) -> List[PageAnalysis]:
        pages_dir = self._pages_dir(crawl_id)
        if not pages_dir.exists():
            return []
        return [PageAnalysis.from_dict(_read_json(p)) for p in sorted(pages_dir.glob("*.json"))]


class SettingsStore:
    """User settings (Figma token, default heuristics) in <data>/settings/<user>.json."""

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir else get_data_dir()
        self.settings_dir = self.base_dir / "settings"

    def _path(self, user_id: str) -> Path:
        return self.settings_dir / f"{user_id}.json"

    def get_settings(self, user_id: str = DEFAULT_USER_ID) -> UserSettings:
        data = _read_json(self._path(user_id))
        return UserSettings.from_dict(data) if data else UserSettings(user_id=user_id)

    def save_settings(self, settings: UserSettings) -> UserSettings:
        settings.updated_at = datetime.now().isoformat()
        _write_json(self._path(settings.user_id), asdict(settings))
        return settings

    def get_figma_token(self, user_id: str = DEFAULT_USER_ID) -> Optional[str]:
        return self.get_settings(user_id).figma_access_token

    def has_figma_token(self, user_id: str = DEFAULT_USER_ID) -> bool:
        return bool(self.get_figma_token(user_id))

    def save_figma_token(self, token: str, user_id: str = DEFAULT_USER_ID) -> UserSettings:
        settings = self.get_settings(user_id)
        settings.figma_access_token = token.strip()
        logger.info("Figma access token saved for %s", user_id)
        return self.save_settings(settings)

    def clear_figma_token(self, user_id: str = DEFAULT_USER_ID) -> UserSettings:
        settings = self.get_settings(user_id)
        settings.figma_access_token = None
        logger.info("Figma access token removed for %s", user_id)
        return self.save_settings(settings)

    def get_default_heuristics(self, user_id: str = DEFAULT_USER_ID) -> HeuristicSelection:
        return HeuristicSelection.from_dict(self.get_settings(user_id).default_heuristics)

    def save_default_heuristics(self, selection: HeuristicSelection, user_id: str = DEFAULT_USER_ID) -> UserSettings:
        settings = self.get_settings(user_id)
        settings.default_heuristics = selection.to_dict()
        return self.save_settings(settings)
