"""Findings, scoring and grading utilities for heuristic audits."""

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from heuristics.catalog import find_heuristic


class Severity(Enum):
    """Impact level of a violation."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MEDIUM


class Grade(Enum):
    """Letter grades for scores."""
    A_PLUS = "A+" # 97-100
    A = "A"       # 93-96
    A_MINUS = "A-"# 90-92
    B_PLUS = "B+" # 87-89
    B = "B"       # 83-86
    B_MINUS = "B-"# 80-82
    C_PLUS = "C+" # 77-79
    C = "C"       # 73-76
    C_MINUS = "C-"# 70-72
    D = "D"       # 60-69
    F = "F"       # < 60


# Page-level score: penalty per violation, scaled by model confidence
SEVERITY_WEIGHTS = {Severity.HIGH: 20, Severity.MEDIUM: 10, Severity.LOW: 4}
DEFAULT_CONFIDENCE = 0.7
# Confidence assumed when merging findings that carry none
MERGE_DEFAULT_CONFIDENCE = 0.5

# Research-backed score
RESEARCH_SEVERITY_WEIGHTS = {Severity.HIGH: 12, Severity.MEDIUM: 6, Severity.LOW: 2}
HEURISTIC_WEIGHTS = {
    "visibility": 1.2,
    "error_prevention": 1.2,
    "error_recovery": 1.1,
    "control": 1.0,
    "consistency": 1.0,
    "recognition": 1.0,
    "match": 0.9,
    "flexibility": 0.8,
    "aesthetic": 0.8,
    "help": 0.7,
}
RESEARCH_SCORE_FLOOR = 35
STRENGTH_BONUS_PER_ITEM = 2
STRENGTH_BONUS_CAP = 10

SEVERITY_COLORS = {
    Severity.HIGH: "#dc2626",
    Severity.MEDIUM: "#ca8a04",
    Severity.LOW: "#2563eb",
}


def _get(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def parse_confidence(value: Any) -> Optional[float]:
    """
    Confidence as a 0-1 float.

    Accepts numbers, numeric strings and percentages ("85%", or 85 on a
    0-100 scale). Anything else gives None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        percent = text.endswith("%")
        try:
            number = float(text.rstrip("%").strip())
        except ValueError:
            return None
        if percent:
            number /= 100
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
    if math.isnan(number):
        return None
    if 1 < number <= 100:
        number /= 100
    return _clamp(number, 0.0, 1.0)


@dataclass
class BoundingBox:
    """Region of a screenshot, in percent of the image (0-100)."""
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        self.x = _clamp(float(self.x))
        self.y = _clamp(float(self.y))
        self.width = _clamp(float(self.width), high=100.0 - self.x)
        self.height = _clamp(float(self.height), high=100.0 - self.y)

    def to_pixels(self, image_width: int, image_height: int) -> tuple:
        """Return (left, top, width, height) in pixels."""
        return (
            self.x / 100 * image_width,
            self.y / 100 * image_height,
            self.width / 100 * image_width,
            self.height / 100 * image_height,
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["BoundingBox"]:
        if not data:
            return None
        try:
            return cls(x=data["x"], y=data["y"], width=data["width"], height=data["height"])
        except (KeyError, TypeError, ValueError):
            return None


@dataclass
class Violation:
    """A usability problem found on a page."""
    heuristic: str
    severity: Severity
    title: str
    description: str = ""
    location: str = ""
    recommendation: str = ""
    page_element: str = ""
    bounding_box: Optional[BoundingBox] = None
    confidence: Optional[float] = None
    page_url: str = ""

    @property
    def heuristic_id(self) -> str:
        """Catalog id for the violated heuristic, or the raw text if unmatched."""
        match = find_heuristic(self.heuristic)
        return match.id if match else self.heuristic

    @property
    def color(self) -> str:
        return SEVERITY_COLORS[self.severity]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "heuristic": self.heuristic,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "recommendation": self.recommendation,
            "pageElement": self.page_element,
            "confidence": self.confidence,
            "pageUrl": self.page_url,
        }
        if self.bounding_box:
            data["boundingBox"] = self.bounding_box.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], page_url: str = "") -> "Violation":
        return cls(
            heuristic=str(_get(data, "heuristic", default="")),
            severity=Severity.parse(_get(data, "severity", default="medium")),
            title=str(_get(data, "title", default="Untitled issue")),
            description=str(_get(data, "description", default="")),
            location=str(_get(data, "location", default="")),
            recommendation=str(_get(data, "recommendation", default="")),
            page_element=str(_get(data, "pageElement", "page_element", default="")),
            bounding_box=BoundingBox.from_dict(_get(data, "boundingBox", "bounding_box")),
            confidence=parse_confidence(_get(data, "confidence")),
            page_url=str(_get(data, "pageUrl", "page_url", default="") or page_url),
        )


@dataclass
class Strength:
    """Something the page does well."""
    heuristic: str
    description: str
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"heuristic": self.heuristic, "description": self.description, "confidence": self.confidence}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Strength":
        return cls(
            heuristic=str(_get(data, "heuristic", default="")),
            description=str(_get(data, "description", default="")),
            confidence=parse_confidence(_get(data, "confidence")),
        )


@dataclass
class IndustryComparison:
    percentile: int
    category: str


@dataclass
class ScoreBreakdown:
    """Research-backed score with its components."""
    overall_score: int
    base_score: float
    total_penalty: float
    strengths_bonus: float
    category_scores: Dict[str, int] = field(default_factory=dict)
    industry: Optional[IndustryComparison] = None

    @property
    def grade(self) -> Grade:
        return score_to_grade(self.overall_score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "base_score": self.base_score,
            "total_penalty": self.total_penalty,
            "strengths_bonus": self.strengths_bonus,
            "category_scores": dict(self.category_scores),
            "industry": {"percentile": self.industry.percentile, "category": self.industry.category} if self.industry else None,
        }


@dataclass
class PageAnalysis:
    """Evaluation result for one crawled page."""
    url: str
    title: str = ""
    page_type: str = "other"
    score: int = 0
    violations: List[Violation] = field(default_factory=list)
    strengths: List[Strength] = field(default_factory=list)
    screenshot: str = ""
    html_snapshot: str = ""
    is_error_page: bool = False
    analyzed_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "page_type": self.page_type,
            "score": self.score,
            "violations": [v.to_dict() for v in self.violations],
            "strengths": [s.to_dict() for s in self.strengths],
            "screenshot": self.screenshot,
            "html_snapshot": self.html_snapshot,
            "is_error_page": self.is_error_page,
            "analyzed_at": self.analyzed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageAnalysis":
        url = data.get("url", "")
        return cls(
            url=url,
            title=data.get("title", ""),
            page_type=data.get("page_type", "other"),
            score=int(data.get("score", 0)),
            violations=[Violation.from_dict(v, page_url=url) for v in data.get("violations", [])],
            strengths=[Strength.from_dict(s) for s in data.get("strengths", [])],
            screenshot=data.get("screenshot", ""),
            html_snapshot=data.get("html_snapshot", ""),
            is_error_page=bool(data.get("is_error_page", False)),
            analyzed_at=data.get("analyzed_at", ""),
        )


@dataclass
class AnalysisResult:
    """Outcome of a single-page audit."""
    url: str
    website_name: str
    overall_score: int
    violations: List[Violation] = field(default_factory=list)
    strengths: List[Strength] = field(default_factory=list)
    screenshot: str = ""
    heuristic_ids: List[str] = field(default_factory=list)
    breakdown: Optional[ScoreBreakdown] = None
    page_type: str = "other"
    analyzed_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def grade(self) -> Grade:
        return score_to_grade(self.overall_score)

    def violations_by_severity(self) -> Dict[str, List[Violation]]:
        return group_by_severity(self.violations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "websiteName": self.website_name,
            "overallScore": self.overall_score,
            "violations": [v.to_dict() for v in self.violations],
            "strengths": [s.to_dict() for s in self.strengths],
            "screenshot": self.screenshot,
            "heuristics": list(self.heuristic_ids),
            "breakdown": self.breakdown.to_dict() if self.breakdown else None,
            "pageType": self.page_type,
            "analyzedAt": self.analyzed_at,
        }


@dataclass
class SiteReport:
    """Aggregate of every analyzed page in a crawl."""
    url: str
    project_name: str
    overall_score: int
    pages: List[PageAnalysis] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)
    strengths: List[Strength] = field(default_factory=list)
    generated_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def grade(self) -> Grade:
        return score_to_grade(self.overall_score)

    @property
    def industry(self) -> IndustryComparison:
        return industry_comparison(self.overall_score)

    def violations_by_severity(self) -> Dict[str, List[Violation]]:
        return group_by_severity(self.violations)

    def severity_counts(self) -> Dict[str, int]:
        return {sev: len(items) for sev, items in self.violations_by_severity().items()}

    def page_type_counts(self) -> Dict[str, int]:
        return dict(Counter(p.page_type for p in self.pages))


def score_to_grade(score: float) -> Grade:
    """Map a 0-100 score to a letter grade."""
    if score >= 97: return Grade.A_PLUS
    if score >= 93: return Grade.A
    if score >= 90: return Grade.A_MINUS
    if score >= 87: return Grade.B_PLUS
    if score >= 83: return Grade.B
    if score >= 80: return Grade.B_MINUS
    if score >= 77: return Grade.C_PLUS
    if score >= 73: return Grade.C
    if score >= 70: return Grade.C_MINUS
    if score >= 60: return Grade.D
    return Grade.F


def group_by_severity(violations: Iterable[Violation]) -> Dict[str, List[Violation]]:
    grouped: Dict[str, List[Violation]] = {s.value: [] for s in Severity}
    for violation in violations:
        grouped[violation.severity.value].append(violation)
    return grouped


def calculate_page_score(violations: Iterable[Violation]) -> int:
    """
    Confidence-weighted page score.

    Each violation removes its severity weight scaled by confidence
    (0.7 when the finding carries none). Clamped to 0-100.
    """
    penalty = 0.0
    for violation in violations:
        confidence = violation.confidence if violation.confidence is not None else DEFAULT_CONFIDENCE
        penalty += SEVERITY_WEIGHTS[violation.severity] * confidence
    return int(round(_clamp(100 - penalty)))


def industry_comparison(score: float) -> IndustryComparison:
    """Place a score against typical industry results."""
    if score >= 90:
        return IndustryComparison(95, "Top 5% - Exceptional UX")
    if score >= 80:
        return IndustryComparison(75, "Top 25% - Excellent UX")
    if score >= 70:
        return IndustryComparison(50, "Top 50% - Good UX")
    if score >= 60:
        return IndustryComparison(30, "Top 70% - Average UX")
    if score >= 50:
        return IndustryComparison(15, "Bottom 35% - Below Average")
    return IndustryComparison(5, "Bottom 15% - Critical Issues")


def _heuristic_weight(violation: Violation) -> float:
    return HEURISTIC_WEIGHTS.get(violation.heuristic_id, 1.0)


def calculate_research_score(violations: List[Violation], strengths: List[Strength]) -> ScoreBreakdown:
    """
    Score weighted by severity and by how strongly each heuristic affects
    task success. The penalty can pull the base down to 35 at most; each
    strength adds 2 points up to 10.
    """
    total_penalty = 0.0
    penalties_by_heuristic: Dict[str, float] = {}
    for violation in violations:
        penalty = RESEARCH_SEVERITY_WEIGHTS[violation.severity] * _heuristic_weight(violation)
        total_penalty += penalty
        key = violation.heuristic_id
        penalties_by_heuristic[key] = penalties_by_heuristic.get(key, 0.0) + penalty

    base_score = max(RESEARCH_SCORE_FLOOR, 100 - total_penalty)
    strengths_bonus = min(STRENGTH_BONUS_CAP, len(strengths) * STRENGTH_BONUS_PER_ITEM)
    overall = int(round(min(100, base_score + strengths_bonus)))

    category_scores = {
        heuristic_id: int(round(max(0, 100 - penalty)))
        for heuristic_id, penalty in penalties_by_heuristic.items()
    }

    return ScoreBreakdown(
        overall_score=overall,
        base_score=base_score,
        total_penalty=round(total_penalty, 2),
        strengths_bonus=strengths_bonus,
        category_scores=category_scores,
        industry=industry_comparison(overall),
    )


def merge_violations(rule_based: List[Violation], ai_found: List[Violation]) -> List[Violation]:
    """
    Merge rule-based and model findings.

    Two findings are the same when one lower-cased title contains the first
    20 characters of the other. The copy with the higher confidence wins.
    Findings with an empty title never match.
    """
    merged: List[Violation] = []
    for violation in list(rule_based) + list(ai_found):
        title = violation.title.strip().lower()
        duplicate_index = None
        for i, existing in enumerate(merged):
            existing_title = existing.title.strip().lower()
            if not title or not existing_title:
                continue
            if existing_title[:20] in title or title[:20] in existing_title:
                duplicate_index = i
                break

        if duplicate_index is None:
            merged.append(violation)
            continue

        existing = merged[duplicate_index]
        new_confidence = violation.confidence if violation.confidence is not None else MERGE_DEFAULT_CONFIDENCE
        old_confidence = existing.confidence if existing.confidence is not None else MERGE_DEFAULT_CONFIDENCE
        if new_confidence > old_confidence:
            merged[duplicate_index] = violation
    return merged


def dedupe_violations(violations: Iterable[Violation]) -> List[Violation]:
    """Keep the first violation for each heuristic + title pair."""
    seen = set()
    unique = []
    for violation in violations:
        key = f"{violation.heuristic}-{violation.title}"
        if key not in seen:
            seen.add(key)
            unique.append(violation)
    return unique


def dedupe_strengths(strengths: Iterable[Strength]) -> List[Strength]:
    """Keep the first strength for each heuristic + description pair."""
    seen = set()
    unique = []
    for strength in strengths:
        key = f"{strength.heuristic}-{strength.description}"
        if key not in seen:
            seen.add(key)
            unique.append(strength)
    return unique


def build_site_report(url: str, project_name: str, pages: List[PageAnalysis]) -> SiteReport:
    """Aggregate page analyses: mean score, unique findings across pages."""
    scored = [p.score for p in pages]
    overall = int(round(sum(scored) / len(scored))) if scored else 0
    all_violations = [v for p in pages for v in p.violations]
    all_strengths = [s for p in pages for s in p.strengths]
    return SiteReport(
        url=url,
        project_name=project_name,
        overall_score=overall,
        pages=list(pages),
        violations=dedupe_violations(all_violations),
        strengths=dedupe_strengths(all_strengths),
    )
