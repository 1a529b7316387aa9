import json

import pytest

from heuristics import HeuristicSelection
from utils.scoring import PageAnalysis
from utils.store import CrawlJob, CrawlStatus, JobStore, SettingsStore, status_message


class TestCrawlJob:
    def test_status_messages(self):
        assert status_message(CrawlStatus.CRAWLING) == "Discovering pages..."
        assert status_message(CrawlStatus.COMPLETED) == "Analysis complete!"
        assert status_message("unheard-of") == "Processing..."

    def test_progress_fractions(self):
        job = CrawlJob(id="1", url="https://acme.io", total_pages=40, crawled_pages=30, analyzed_pages=10)
        assert job.crawl_progress() == 0.75
        assert job.analysis_progress() == 0.25
        assert CrawlJob(id="2", url="https://acme.io").crawl_progress() == 0.0

    @pytest.mark.parametrize("status,finished", [
        (CrawlStatus.QUEUED, False),
        (CrawlStatus.CRAWLING, False),
        (CrawlStatus.ANALYZING, False),
        (CrawlStatus.COMPLETED, True),
        (CrawlStatus.ERROR, True),
        (CrawlStatus.FAILED, True),
    ])
    def test_is_finished(self, status, finished):
        assert CrawlJob(id="1", url="https://acme.io", status=status).is_finished is finished

    def test_from_dict_ignores_unknown_fields(self):
        job = CrawlJob.from_dict({"id": "1", "url": "https://acme.io", "legacy_field": True})
        assert job.id == "1"

    def test_selection_from_stored_heuristics(self):
        job = CrawlJob(id="1", url="https://acme.io", heuristics={"set": "custom", "custom": ["help"]})
        assert job.selection == HeuristicSelection("custom", ("help",))


class TestJobStore:
    """Crawl jobs persisted as JSON files."""

    def test_create_and_get(self, job_store):
        job = job_store.create_job("https://acme.io", mode="quick", project_name="Acme",
                                   heuristics=HeuristicSelection("wcag"))
        loaded = job_store.get_job(job.id)
        assert loaded.url == "https://acme.io"
        assert loaded.mode == "quick"
        assert loaded.status == CrawlStatus.QUEUED
        assert loaded.heuristics == {"set": "wcag"}

    def test_missing_job(self, job_store):
        assert job_store.get_job("nope") is None

    def test_update_job(self, job_store):
        job = job_store.create_job("https://acme.io")
        job_store.update_job(job.id, status=CrawlStatus.CRAWLING, total_pages=12)
        loaded = job_store.get_job(job.id)
        assert loaded.status == CrawlStatus.CRAWLING
        assert loaded.total_pages == 12

    def test_update_unknown_field(self, job_store):
        job = job_store.create_job("https://acme.io")
        with pytest.raises(AttributeError):
            job_store.update_job(job.id, color="blue")

    def test_update_missing_job(self, job_store):
        with pytest.raises(KeyError):
            job_store.update_job("nope", status=CrawlStatus.ERROR)

    def test_list_jobs_newest_first(self, job_store):
        older = job_store.create_job("https://old.io")
        job_store.update_job(older.id, created_at="2024-01-01T00:00:00")
        newer = job_store.create_job("https://new.io")
        assert [j.id for j in job_store.list_jobs()] == [newer.id, older.id]

    def test_list_jobs_empty(self, job_store):
        assert job_store.list_jobs() == []

    def test_job_file_is_plain_json(self, job_store):
        job = job_store.create_job("https://acme.io")
        data = json.loads((job_store.crawls_dir / job.id / "job.json").read_text())
        assert data["url"] == "https://acme.io"

    def test_page_analyses_keep_order(self, job_store):
        job = job_store.create_job("https://acme.io")
        for path in ("", "about", "pricing"):
            job_store.save_page_analysis(job.id, PageAnalysis(url=f"https://acme.io/{path}", score=70))
        pages = job_store.get_page_analyses(job.id)
        assert [p.url for p in pages] == ["https://acme.io/", "https://acme.io/about", "https://acme.io/pricing"]
        assert job_store.get_page_analyses("nope") == []

    def test_clear_page_analyses(self, job_store):
        job = job_store.create_job("https://acme.io")
        job_store.save_page_analysis(job.id, PageAnalysis(url="https://acme.io/", score=70))
        job_store.save_page_analysis(job.id, PageAnalysis(url="https://acme.io/about", score=80))

        assert job_store.clear_page_analyses(job.id) == 2
        assert job_store.get_page_analyses(job.id) == []
        assert job_store.clear_page_analyses("nope") == 0

        job_store.save_page_analysis(job.id, PageAnalysis(url="https://acme.io/pricing", score=90))
        assert [p.url for p in job_store.get_page_analyses(job.id)] == ["https://acme.io/pricing"]

    def test_default_data_dir_from_environment(self, tmp_path):
        store = JobStore()
        assert store.base_dir == tmp_path / "data"


class TestSettingsStore:
    """Figma token and default heuristics."""

    def test_defaults(self, settings_store):
        settings = settings_store.get_settings()
        assert settings.figma_access_token is None
        assert settings_store.get_default_heuristics() == HeuristicSelection("nn_10")
        assert not settings_store.has_figma_token()

    def test_figma_token_lifecycle(self, settings_store):
        settings_store.save_figma_token("  figd_abc123  ")
        assert settings_store.get_figma_token() == "figd_abc123"
        assert settings_store.has_figma_token()
        settings_store.clear_figma_token()
        assert not settings_store.has_figma_token()

    def test_default_heuristics_round_trip(self, settings_store):
        selection = HeuristicSelection("custom", ("mobile", "help"))
        settings_store.save_default_heuristics(selection)
        assert settings_store.get_default_heuristics() == selection
        assert settings_store.get_settings().updated_at

    def test_settings_are_per_user(self, settings_store):
        settings_store.save_figma_token("token-a", user_id="a")
        assert settings_store.get_figma_token("b") is None
