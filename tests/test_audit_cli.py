import pytest
from PIL import Image

from audit import _safe_name, annotate_result, build_context, build_selection, crop_result
from heuristics.catalog import CUSTOM_SET_ID, DEFAULT_SET_ID
from utils.annotate import image_to_data_uri
from utils.errors import UnknownHeuristicError
from utils.scoring import AnalysisResult, BoundingBox, Severity, Violation


class TestSelectionArguments:
    def test_default_set(self):
        selection = build_selection()
        assert selection.set_id == DEFAULT_SET_ID
        assert not selection.is_custom

    def test_named_set(self):
        assert build_selection("nn_20").set_id == "nn_20"

    def test_custom_overrides_set(self):
        selection = build_selection("nn_20", " visibility, consistency ,,")
        assert selection.set_id == CUSTOM_SET_ID
        assert selection.custom_ids == ("visibility", "consistency")

    def test_context_holds_resolved_ids(self):
        context = build_context(build_selection(custom="consistency,visibility"), capture_screenshots=False)
        assert context.heuristic_ids == ["consistency", "visibility"]
        assert context.capture_screenshots is False

    def test_unknown_custom_id(self):
        with pytest.raises(UnknownHeuristicError):
            build_context(build_selection(custom="visibility,telepathy"))


class TestAnnotateResult:
    def test_without_screenshot(self):
        assert annotate_result(AnalysisResult(url="https://acme.io", website_name="Acme", overall_score=90)) == ("", [])

    def test_with_screenshot(self):
        violation = Violation(heuristic="Visibility of System Status", severity=Severity.HIGH,
                              title="No progress feedback", bounding_box=BoundingBox(10, 10, 30, 20))
        result = AnalysisResult(url="https://acme.io", website_name="Acme", overall_score=80,
                                violations=[violation],
                                screenshot=image_to_data_uri(Image.new("RGB", (400, 300), "white")))
        image, legend = annotate_result(result)
        assert image.startswith("data:image/png;base64,")
        assert legend == [(1, violation)]

    def test_crops_only_boxed_violations(self):
        boxed = Violation(heuristic="Visibility of System Status", severity=Severity.HIGH,
                          title="No progress feedback", bounding_box=BoundingBox(10, 10, 30, 20))
        unboxed = Violation(heuristic="Consistency and Standards", severity=Severity.LOW, title="Mixed button styles")
        result = AnalysisResult(url="https://acme.io", website_name="Acme", overall_score=80,
                                violations=[boxed, unboxed],
                                screenshot=image_to_data_uri(Image.new("RGB", (400, 300), "white")))
        crops = crop_result(result)
        assert list(crops) == [id(boxed)]
        assert crops[id(boxed)].startswith(b"\x89PNG")

    def test_no_crops_without_screenshot(self):
        assert crop_result(AnalysisResult(url="https://acme.io", website_name="Acme", overall_score=90)) == {}


@pytest.mark.parametrize("name,expected", [
    ("Acme Analytics", "Acme-Analytics"),
    ("acme.io/pricing", "acme-io-pricing"),
    ("***", "audit"),
])
def test_safe_name(name, expected):
    assert _safe_name(name) == expected
