import pytest

from utils.scoring import (
    BoundingBox,
    Grade,
    PageAnalysis,
    Severity,
    Strength,
    Violation,
    build_site_report,
    calculate_page_score,
    calculate_research_score,
    dedupe_strengths,
    dedupe_violations,
    group_by_severity,
    industry_comparison,
    merge_violations,
    parse_confidence,
    score_to_grade,
)


def violation(title="Issue", severity=Severity.MEDIUM, heuristic="Visibility of System Status", confidence=None):
    return Violation(heuristic=heuristic, severity=severity, title=title, confidence=confidence)


class TestModels:
    """Finding models built from model output."""

    def test_violation_from_camel_case_dict(self):
        v = Violation.from_dict({
            "heuristic": "#5: Error Prevention",
            "severity": "HIGH",
            "title": "Delete has no confirmation",
            "pageElement": "button.delete",
            "boundingBox": {"x": 5, "y": 5, "width": 20, "height": 10},
            "confidence": "0.9",
        }, page_url="https://acme.io/settings")
        assert v.severity == Severity.HIGH
        assert v.heuristic_id == "error_prevention"
        assert v.page_element == "button.delete"
        assert v.bounding_box.width == 20
        assert v.confidence == 0.9
        assert v.page_url == "https://acme.io/settings"

    @pytest.mark.parametrize("raw,expected", [
        (0.8, 0.8),
        ("0.65", 0.65),
        ("85%", 0.85),
        (85, 0.85),
        (-2, 0.0),
        ("high", None),
        ("", None),
        ([0.5], None),
        (True, None),
        (None, None),
    ])
    def test_parse_confidence(self, raw, expected):
        assert parse_confidence(raw) == expected

    def test_word_confidence_is_dropped(self):
        v = Violation.from_dict({"title": "Spinner missing", "severity": "low", "confidence": "high"})
        s = Strength.from_dict({"heuristic": "Help", "description": "Clear FAQ", "confidence": "very"})
        assert v.confidence is None
        assert s.confidence is None

    def test_unknown_severity_defaults_to_medium(self):
        assert Severity.parse("critical") == Severity.MEDIUM

    def test_unmatched_heuristic_keeps_raw_text(self):
        assert violation(heuristic="Delight").heuristic_id == "Delight"

    def test_bounding_box_is_clamped(self):
        box = BoundingBox(x=90, y=-5, width=30, height=120)
        assert box.x == 90
        assert box.y == 0
        assert box.width == 10
        assert box.height == 100

    def test_bounding_box_to_pixels(self):
        assert BoundingBox(10, 20, 50, 25).to_pixels(200, 400) == (20, 80, 100, 100)

    def test_malformed_bounding_box_is_dropped(self):
        assert BoundingBox.from_dict({"x": 1}) is None
        assert BoundingBox.from_dict(None) is None

    def test_page_analysis_dict_round_trip(self):
        page = PageAnalysis(
            url="https://acme.io/", title="Acme", page_type="homepage", score=72,
            violations=[violation("Slow hero")], strengths=[Strength("Consistency", "Uniform buttons")],
        )
        restored = PageAnalysis.from_dict(page.to_dict())
        assert restored.score == 72
        assert restored.violations[0].title == "Slow hero"
        assert restored.violations[0].page_url == "https://acme.io/"
        assert restored.strengths[0].description == "Uniform buttons"


class TestPageScore:
    """Confidence-weighted page score."""

    def test_no_violations(self):
        assert calculate_page_score([]) == 100

    def test_default_confidence(self):
        assert calculate_page_score([violation(severity=Severity.HIGH)]) == 86

    def test_explicit_confidence(self):
        found = [violation(severity=Severity.HIGH, confidence=1.0), violation(severity=Severity.MEDIUM, confidence=0.5)]
        assert calculate_page_score(found) == 75

    def test_clamped_at_zero(self):
        assert calculate_page_score([violation(severity=Severity.HIGH, confidence=1.0)] * 8) == 0


class TestResearchScore:
    """Severity and heuristic weighted score."""

    def test_weights_and_strength_bonus(self):
        breakdown = calculate_research_score(
            [violation(severity=Severity.HIGH)],
            [Strength("Consistency", "Uniform buttons")],
        )
        assert breakdown.total_penalty == 14.4
        assert breakdown.strengths_bonus == 2
        assert breakdown.overall_score == 88
        assert breakdown.category_scores == {"visibility": 86}

    def test_unlisted_heuristic_weight_is_one(self):
        breakdown = calculate_research_score([violation(heuristic="Mobile Responsiveness")], [])
        assert breakdown.overall_score == 94

    def test_floor_and_bonus_cap(self):
        violations = [violation(severity=Severity.HIGH)] * 10
        strengths = [Strength("Help", f"s{i}") for i in range(6)]
        breakdown = calculate_research_score(violations, strengths)
        assert breakdown.base_score == 35
        assert breakdown.strengths_bonus == 10
        assert breakdown.overall_score == 45

    def test_capped_at_100(self):
        strengths = [Strength("Help", f"s{i}") for i in range(5)]
        assert calculate_research_score([], strengths).overall_score == 100

    def test_industry_comparison_attached(self):
        breakdown = calculate_research_score([], [])
        assert breakdown.industry.percentile == 95
        assert breakdown.grade == Grade.A_PLUS


class TestGrading:
    @pytest.mark.parametrize("score,grade", [
        (100, Grade.A_PLUS), (93, Grade.A), (90, Grade.A_MINUS), (88, Grade.B_PLUS),
        (83, Grade.B), (80, Grade.B_MINUS), (77, Grade.C_PLUS), (73, Grade.C),
        (70, Grade.C_MINUS), (60, Grade.D), (59, Grade.F),
    ])
    def test_score_to_grade(self, score, grade):
        assert score_to_grade(score) == grade

    @pytest.mark.parametrize("score,percentile,category", [
        (90, 95, "Top 5% - Exceptional UX"),
        (80, 75, "Top 25% - Excellent UX"),
        (70, 50, "Top 50% - Good UX"),
        (60, 30, "Top 70% - Average UX"),
        (50, 15, "Bottom 35% - Below Average"),
        (49, 5, "Bottom 15% - Critical Issues"),
    ])
    def test_industry_comparison(self, score, percentile, category):
        comparison = industry_comparison(score)
        assert comparison.percentile == percentile
        assert comparison.category == category


class TestMergeAndDedupe:
    """Combining rule and model findings."""

    def test_duplicate_keeps_higher_confidence(self):
        rule = violation("Critical: Missing alt text on images", Severity.HIGH, confidence=0.95)
        model = violation("Critical: Missing alt text on images in the hero", Severity.MEDIUM, confidence=0.6)
        merged = merge_violations([rule], [model])
        assert merged == [rule]

    def test_duplicate_replaced_by_more_confident_copy(self):
        rule = violation("Search results lack sorting options", confidence=0.5)
        model = violation("Search results lack sorting options", confidence=0.9)
        assert merge_violations([rule], [model]) == [model]

    def test_missing_confidence_counts_as_half(self):
        first = violation("Checkout button is hard to find")
        second = violation("Checkout button is hard to find on mobile", confidence=0.4)
        assert merge_violations([first], [second]) == [first]

    def test_distinct_titles_are_kept(self):
        merged = merge_violations([violation("Low contrast text")], [violation("No breadcrumb trail")])
        assert len(merged) == 2

    def test_empty_title_does_not_swallow_other_findings(self):
        untitled = violation("", confidence=0.9)
        merged = merge_violations([], [untitled, violation("No search box", confidence=0.3),
                                       violation("Buttons inconsistent", confidence=0.4)])
        assert [v.title for v in merged] == ["", "No search box", "Buttons inconsistent"]

    def test_dedupe_by_heuristic_and_title(self):
        a = violation("Same")
        b = violation("Same")
        c = violation("Same", heuristic="Help and Documentation")
        assert dedupe_violations([a, b, c]) == [a, c]

    def test_dedupe_strengths(self):
        s = Strength("Help", "FAQ")
        assert dedupe_strengths([s, Strength("Help", "FAQ"), Strength("Help", "Chat")]) == [s, Strength("Help", "Chat")]

    def test_group_by_severity_has_every_level(self):
        grouped = group_by_severity([violation(severity=Severity.LOW)])
        assert list(grouped) == ["high", "medium", "low"]
        assert len(grouped["low"]) == 1


class TestSiteReport:
    """Aggregation across crawled pages."""

    def test_build_site_report(self):
        shared = violation("Inconsistent nav")
        pages = [
            PageAnalysis(url="https://acme.io/", page_type="homepage", score=80, violations=[shared]),
            PageAnalysis(url="https://acme.io/about", page_type="about", score=90,
                         violations=[violation("Inconsistent nav"), violation("Tiny font", Severity.LOW)]),
        ]
        report = build_site_report("https://acme.io", "Acme", pages)
        assert report.overall_score == 85
        assert [v.title for v in report.violations] == ["Inconsistent nav", "Tiny font"]
        assert report.severity_counts() == {"high": 0, "medium": 1, "low": 1}
        assert report.page_type_counts() == {"homepage": 1, "about": 1}
        assert report.grade == Grade.B

    def test_empty_report(self):
        assert build_site_report("https://acme.io", "Acme", []).overall_score == 0
