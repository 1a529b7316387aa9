"""Static catalog of usability heuristics and the named sets built from them."""

import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple


CUSTOM_SET_ID = "custom"
DEFAULT_SET_ID = "nn_10"

# Literal marker carried in the labels of the accessibility principles.
WCAG_LABEL_MARKER = "(WCAG)"


@dataclass(frozen=True)
class HeuristicDefinition:
    """A single evaluable usability criterion."""
    id: str
    label: str
    description: str
    tags: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class HeuristicSetDefinition:
    """
    A named grouping of heuristics presented as one evaluation profile.

    Membership is either an explicit ordered tuple of ids (``members``) or
    every catalog entry carrying ``tag``. The reserved custom set has
    neither; its contents come from the caller.
    """
    id: str
    label: str
    description: str
    size: Optional[int] = None
    members: Tuple[str, ...] = ()
    tag: Optional[str] = None

    @property
    def is_custom(self) -> bool:
        return self.id == CUSTOM_SET_ID


def _h(hid: str, label: str, description: str, *tags: str) -> HeuristicDefinition:
    return HeuristicDefinition(id=hid, label=label, description=description, tags=frozenset(tags))


HEURISTICS: Tuple[HeuristicDefinition, ...] = (
    # Nielsen's classic ten
    _h("visibility", "Visibility of System Status", "System should inform users about what's happening", "nielsen"),
    _h("match", "Match Between System and Real World", "Use familiar language and conventions", "nielsen"),
    _h("control", "User Control and Freedom", "Provide undo/redo and easy exits", "nielsen"),
    _h("consistency", "Consistency and Standards", "Follow platform conventions", "nielsen"),
    _h("error_prevention", "Error Prevention", "Prevent problems before they occur", "nielsen"),
    _h("recognition", "Recognition Rather than Recall", "Minimize memory load", "nielsen"),
    _h("flexibility", "Flexibility and Efficiency", "Accelerators for expert users", "nielsen"),
    _h("aesthetic", "Aesthetic and Minimalist Design", "Remove irrelevant information", "nielsen"),
    _h("error_recovery", "Help Users Recognize and Recover from Errors", "Clear error messages with solutions", "nielsen"),
    _h("help", "Help and Documentation", "Provide searchable, context-sensitive help", "nielsen"),
    # Extended usability attributes
    _h("learnability", "Learnability", "Easy to learn for first-time users", "extended"),
    _h("memorability", "Memorability", "Easy to remember after period of non-use", "extended"),
    _h("efficiency", "Efficiency of Use", "Fast task completion for experienced users", "extended"),
    _h("error_rate", "Low Error Rate", "Users make few errors and can recover easily", "extended"),
    _h("satisfaction", "User Satisfaction", "Pleasant and satisfying to use", "extended"),
    _h("accessibility", "Accessibility", "Usable by people with diverse abilities", "extended"),
    _h("mobile", "Mobile Responsiveness", "Optimized for mobile devices", "extended"),
    _h("performance", "Performance", "Fast loading and responsive interactions", "extended"),
    _h("security", "Security and Privacy", "Protect user data and privacy", "extended"),
    _h("localization", "Localization", "Adapts to different languages and cultures", "extended"),
    # WCAG principles
    _h("perceivable", "Perceivable (WCAG)", "Information must be presentable to users", "wcag"),
    _h("operable", "Operable (WCAG)", "UI components must be operable", "wcag"),
    _h("understandable", "Understandable (WCAG)", "Information and operation must be understandable", "wcag"),
    _h("robust", "Robust (WCAG)", "Content must be robust for assistive technologies", "wcag"),
)

_NIELSEN_10 = (
    "visibility", "match", "control", "consistency", "error_prevention",
    "recognition", "flexibility", "aesthetic", "error_recovery", "help",
)

_NIELSEN_20 = _NIELSEN_10 + (
    "learnability", "memorability", "efficiency", "error_rate", "satisfaction",
    "accessibility", "mobile", "performance", "security", "localization",
)

HEURISTIC_SETS: Tuple[HeuristicSetDefinition, ...] = (
    HeuristicSetDefinition(
        id="nn_10",
        label="Nielsen's 10 Heuristics",
        description="Jakob Nielsen's classic 10 usability heuristics",
        size=10,
        members=_NIELSEN_10,
    ),
    HeuristicSetDefinition(
        id="nn_20",
        label="Nielsen's 20 Heuristics",
        description="Extended set of 20 usability heuristics",
        size=20,
        members=_NIELSEN_20,
    ),
    HeuristicSetDefinition(
        id="wcag",
        label="WCAG Guidelines",
        description="Web Content Accessibility Guidelines (WCAG 2.1)",
        tag="wcag",
    ),
    HeuristicSetDefinition(
        id=CUSTOM_SET_ID,
        label="Custom Selection",
        description="Choose specific heuristics to include in analysis",
    ),
)


def _validate_catalog(heuristics, sets) -> None:
    ids = [h.id for h in heuristics]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValueError(f"Duplicate heuristic ids in catalog: {', '.join(duplicates)}")

    set_ids = [s.id for s in sets]
    if len(set_ids) != len(set(set_ids)):
        raise ValueError("Duplicate heuristic set ids in catalog")

    known = set(ids)
    for heuristic_set in sets:
        unknown = [m for m in heuristic_set.members if m not in known]
        if unknown:
            raise ValueError(f"Set '{heuristic_set.id}' references unknown heuristics: {', '.join(unknown)}")
        if heuristic_set.size is not None and heuristic_set.members and heuristic_set.size != len(heuristic_set.members):
            raise ValueError(f"Set '{heuristic_set.id}' declares size {heuristic_set.size} but has {len(heuristic_set.members)} members")


_validate_catalog(HEURISTICS, HEURISTIC_SETS)

_BY_ID: Dict[str, HeuristicDefinition] = {h.id: h for h in HEURISTICS}
_SETS_BY_ID: Dict[str, HeuristicSetDefinition] = {s.id: s for s in HEURISTIC_SETS}
_CATALOG_POSITION: Dict[str, int] = {h.id: i for i, h in enumerate(HEURISTICS)}


def all_heuristic_ids() -> List[str]:
    """Every heuristic id in catalog order."""
    return [h.id for h in HEURISTICS]


def get_heuristic(heuristic_id: str) -> Optional[HeuristicDefinition]:
    return _BY_ID.get(heuristic_id)


def get_set(set_id: str) -> Optional[HeuristicSetDefinition]:
    return _SETS_BY_ID.get(set_id)


def catalog_position(heuristic_id: str) -> int:
    """Position of a heuristic in the master list, or -1 if unknown."""
    return _CATALOG_POSITION.get(heuristic_id, -1)


def find_heuristic(text: str) -> Optional[HeuristicDefinition]:
    """
    Map free text from a model reply to a catalog entry.

    Accepts an id ("error_recovery"), a label in any case, or numbered forms
    such as "#1: Visibility of System Status" or "1. Visibility of system status".
    """
    if not text:
        return None
    candidate = text.strip()
    if candidate in _BY_ID:
        return _BY_ID[candidate]

    cleaned = re.sub(r'^#?\d+\s*[:.)-]\s*', '', candidate).strip().lower()
    for heuristic in HEURISTICS:
        if cleaned == heuristic.label.lower() or cleaned == heuristic.id.replace("_", " "):
            return heuristic
    for heuristic in HEURISTICS:
        label = heuristic.label.lower()
        if cleaned and (cleaned.startswith(label) or label.startswith(cleaned)):
            return heuristic
    return None
