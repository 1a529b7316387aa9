import pytest

from agents.heuristic_agent import (
    ERROR_PAGE_SCORE,
    HeuristicEvaluationAgent,
    classify_page_type,
    is_error_page,
    prefilter_violations,
    should_skip_page,
)
from orchestrator.context_store import AgentStatus
from utils.scoring import Severity

VIEWPORT = '<meta name="viewport" content="width=device-width, initial-scale=1">'


class TestPageChecks:
    """Deterministic checks run before the model sees a page."""

    def test_soft_404_is_error_page(self, error_html):
        assert is_error_page(error_html)

    def test_single_signal_is_not_enough(self):
        html = "<html><head><title>Fixing error 404 in nginx</title></head><body><h1>Guide</h1></body></html>"
        assert not is_error_page(html)

    def test_markdown_first_line_counts_as_signal(self):
        html = "<html><head><title>Error</title></head><body>...</body></html>"
        assert is_error_page(html, markdown="Oops\n\nSomething went wrong")

    def test_regular_page_is_not_error_page(self, landing_html):
        assert not is_error_page(landing_html, markdown="# Understand your users")

    @pytest.mark.parametrize("url,html_len,status", [
        ("", 500, 200),
        ("unknown", 500, 200),
        ("https://acme.io/", 50, 200),
    ])
    def test_skip_pages_without_content(self, url, html_len, status):
        assert should_skip_page(url, "x" * html_len, status)

    def test_skip_confirmed_http_error(self, error_html):
        assert should_skip_page("https://acme.io/gone", error_html, 404)
        assert should_skip_page("https://acme.io/gone", error_html, 503)

    def test_keep_error_title_with_ok_status(self, error_html):
        assert not should_skip_page("https://acme.io/gone", error_html, 200)

    def test_keep_regular_page(self, landing_html):
        assert not should_skip_page("https://acme.io/", landing_html, 200)

    @pytest.mark.parametrize("url,html,expected", [
        ("https://shop.io/checkout/step-1", "", "checkout"),
        ("https://shop.io/cart", "", "checkout"),
        ("https://shop.io/item/42", "<button>Add to Cart</button>", "product"),
        ("https://shop.io/collection/shoes", "", "listing"),
        ("https://acme.io/about-us", "", "about"),
        ("https://acme.io/contact", "", "contact"),
        ("https://acme.io", "", "homepage"),
        ("https://acme.io/", "", "homepage"),
        ("https://acme.io/?ref=ad", "", "other"),
        ("https://acme.io/blog/launch", "", "other"),
    ])
    def test_classify_page_type(self, url, html, expected):
        assert classify_page_type(url, html) == expected


class TestPrefilter:
    """Rule-based findings."""

    def test_clean_page_has_no_findings(self, landing_html):
        assert prefilter_violations(landing_html) == []

    def test_missing_viewport(self):
        found = prefilter_violations("<html><head></head><body><p>Hi</p></body></html>")
        assert [v.title for v in found] == ["Critical: No mobile viewport configuration"]
        assert found[0].confidence == 1.0
        assert found[0].heuristic_id == "mobile"

    def test_missing_alt_text(self):
        images = '<img src="a.png" alt="A">' + '<img src="b.png">' * 3
        found = prefilter_violations(f"<html><head>{VIEWPORT}</head><body>{images}</body></html>", page_url="https://acme.io/")
        assert len(found) == 1
        assert found[0].title == "Critical: Missing alt text on images"
        assert found[0].severity == Severity.HIGH
        assert found[0].confidence == 0.95
        assert found[0].page_url == "https://acme.io/"
        assert "3 images" in found[0].description

    def test_few_images_are_not_flagged(self):
        images = '<img src="b.png">' * 3
        assert prefilter_violations(f"<html><head>{VIEWPORT}</head><body>{images}</body></html>") == []

    def test_unlabelled_form_inputs(self):
        form = ('<form><label>Name</label><input name="name"><input name="email" type="email">'
                '<input name="phone"><input type="submit"></form>')
        found = prefilter_violations(f"<html><head>{VIEWPORT}</head><body>{form}</body></html>")
        assert [v.title for v in found] == ["Critical: Form inputs lack labels"]
        assert found[0].confidence == 0.9

    def test_hidden_and_button_inputs_need_no_label(self):
        form = ('<form><label>Email</label><input name="email"><input type="hidden" name="t">'
                '<input type="button" value="Go"><input type="reset"></form>')
        assert prefilter_violations(f"<html><head>{VIEWPORT}</head><body>{form}</body></html>") == []


class TestHeuristicEvaluationAgent:
    """Per-page evaluation and batched runs."""

    @pytest.mark.asyncio
    async def test_evaluate_page_merges_and_scores(self, context, fake_llm, make_page):
        agent = HeuristicEvaluationAgent(context, fake_llm)
        result = await agent.evaluate_page(make_page())

        assert result.page_type == "homepage"
        assert result.title == "Acme Analytics"
        assert [v.title for v in result.violations] == ["No feedback after submitting the signup form"]
        assert result.violations[0].page_url == "https://acme.io/"
        assert result.score == 92
        assert result.strengths[0].description == "Clean hero section"

    @pytest.mark.asyncio
    async def test_prompt_receives_selected_heuristics(self, context, fake_llm, make_page):
        context.heuristic_ids = ["visibility", "mobile"]
        agent = HeuristicEvaluationAgent(context, fake_llm)
        await agent.evaluate_page(make_page(screenshot="data:image/png;base64,AAAA"))

        args, kwargs = fake_llm.analyze_with_prompt_async.call_args
        assert args[0] == "heuristic_evaluation"
        assert kwargs["images"] == ["data:image/png;base64,AAAA"]
        assert kwargs["page_type"] == "homepage"
        assert "Visibility of System Status" in kwargs["heuristics"]
        assert "Mobile Responsiveness" in kwargs["heuristics"]
        assert "Help and Documentation" not in kwargs["heuristics"]

    def test_heuristics_default_to_selection(self, context, fake_llm):
        agent = HeuristicEvaluationAgent(context, fake_llm)
        assert len(agent.heuristic_ids()) == 10

    @pytest.mark.asyncio
    async def test_error_page_short_circuits(self, context, fake_llm, make_page, error_html):
        agent = HeuristicEvaluationAgent(context, fake_llm)
        result = await agent.evaluate_page(make_page(url="https://acme.io/missing", html=error_html))

        assert result.is_error_page
        assert result.score == ERROR_PAGE_SCORE
        assert result.violations == [] and result.strengths == []
        fake_llm.analyze_with_prompt_async.assert_not_called()

    @pytest.mark.asyncio
    async def test_skipped_page_returns_none(self, context, fake_llm, make_page):
        agent = HeuristicEvaluationAgent(context, fake_llm)
        assert await agent.evaluate_page(make_page(html="<html></html>")) is None

    @pytest.mark.asyncio
    async def test_model_failure_keeps_rule_findings(self, context, fake_llm, make_page):
        fake_llm.analyze_with_prompt_async.side_effect = RuntimeError("upstream 500")
        agent = HeuristicEvaluationAgent(context, fake_llm)
        result = await agent.evaluate_page(make_page(html="<html><head><title>Acme</title></head><body>"
                                                         + "<p>Plenty of content here.</p>" * 5
                                                         + "</body></html>"))
        assert [v.title for v in result.violations] == ["Critical: No mobile viewport configuration"]
        assert result.strengths == []
        assert result.score == 80

    @pytest.mark.asyncio
    async def test_word_confidence_from_model_is_tolerated(self, context, fake_llm, make_page):
        fake_llm.analyze_with_prompt_async.return_value = {
            "violations": [{"title": "Spinner missing", "severity": "medium", "confidence": "high"}],
            "strengths": [],
        }
        agent = HeuristicEvaluationAgent(context, fake_llm)
        result = await agent.evaluate_page(make_page())

        assert [v.title for v in result.violations] == ["Spinner missing"]
        assert result.violations[0].confidence is None
        assert result.score == 93

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [["not", "an", "object"], {"violations": "none", "strengths": None}])
    async def test_malformed_reply_keeps_rule_findings(self, context, fake_llm, make_page, reply):
        fake_llm.analyze_with_prompt_async.return_value = reply
        agent = HeuristicEvaluationAgent(context, fake_llm)
        result = await agent.evaluate_page(make_page(html="<html><head><title>Acme</title></head><body>"
                                                         + "<p>Plenty of content here.</p>" * 5
                                                         + "</body></html>"))
        assert [v.title for v in result.violations] == ["Critical: No mobile viewport configuration"]
        assert result.strengths == []

    @pytest.mark.asyncio
    async def test_unconfigured_model_is_not_called(self, context, unavailable_llm, make_page):
        agent = HeuristicEvaluationAgent(context, unavailable_llm)
        result = await agent.evaluate_page(make_page())
        assert result.violations == []
        assert result.score == 100
        unavailable_llm.analyze_with_prompt_async.assert_not_called()

    @pytest.mark.asyncio
    async def test_run_processes_pages_in_batches(self, context, fake_llm, make_page):
        for path in ("", "about", "contact", "pricing", "blog"):
            context.add_page(make_page(url=f"https://acme.io/{path}"))
        context.add_page(make_page(url="https://acme.io/empty", html="<p>tiny</p>"))

        progress = []
        agent = HeuristicEvaluationAgent(context, fake_llm, batch_size=4,
                                         on_batch_complete=lambda done, total: progress.append((done, total)))
        results = await agent.run()

        assert len(results) == 5
        assert progress == [(4, 6), (5, 6)]
        assert set(context.page_analyses) == {p.url for p in results}
        assert context.pending_pages()[0].url == "https://acme.io/empty"

    @pytest.mark.asyncio
    async def test_one_failing_page_does_not_stop_the_batch(self, context, fake_llm, make_page, monkeypatch):
        context.add_page(make_page(url="https://acme.io/"))
        context.add_page(make_page(url="https://acme.io/broken"))
        agent = HeuristicEvaluationAgent(context, fake_llm)

        original = agent.evaluate_page

        async def flaky(page):
            if page.url.endswith("broken"):
                raise ValueError("bad markup")
            return await original(page)

        monkeypatch.setattr(agent, "evaluate_page", flaky)
        results = await agent.run()
        assert [r.url for r in results] == ["https://acme.io/"]

    @pytest.mark.asyncio
    async def test_execute_marks_completed(self, context, fake_llm, make_page):
        context.add_page(make_page())
        agent = HeuristicEvaluationAgent(context, fake_llm)
        analysis = await agent.execute()
        assert analysis.status == AgentStatus.COMPLETED
        assert context.get_analysis("heuristic_evaluation") is analysis
        assert analysis.analysis_text == "Analyzed 1 of 1 pages"
