"""Expand heuristic set ids and selections into concrete heuristic id lists."""

import logging
from typing import List

from .catalog import CUSTOM_SET_ID, HEURISTICS, HeuristicDefinition, get_heuristic, get_set
from .selection import HeuristicSelection
from utils.errors import UnknownHeuristicError, UnknownHeuristicSetError

logger = logging.getLogger(__name__)


def resolve_set(set_id: str) -> List[str]:
    """
    Return the member ids of a predefined set in catalog order.

    The custom set and unrecognized ids resolve to an empty list. Use
    resolve_selection() when an unknown id should be treated as an error.
    """
    heuristic_set = get_set(set_id)
    if heuristic_set is None:
        logger.warning("Unknown heuristic set '%s', resolving to empty list", set_id)
        return []
    if heuristic_set.members:
        return list(heuristic_set.members)
    if heuristic_set.tag:
        return [h.id for h in HEURISTICS if heuristic_set.tag in h.tags]
    return []


def resolve_selection(selection: HeuristicSelection) -> List[str]:
    """
    Expand a full selection into the final list of heuristic ids.

    Predefined sets ignore ``custom_ids``. The custom set returns the caller's
    ids in the caller's order with duplicates removed.

    Raises:
        UnknownHeuristicSetError: the set id is not in the catalog
        UnknownHeuristicError: a custom id is not in the catalog
    """
    if get_set(selection.set_id) is None:
        raise UnknownHeuristicSetError(selection.set_id)

    if selection.set_id != CUSTOM_SET_ID:
        return resolve_set(selection.set_id)

    unknown = [h for h in selection.custom_ids if get_heuristic(h) is None]
    if unknown:
        raise UnknownHeuristicError(unknown)

    resolved: List[str] = []
    for heuristic_id in selection.custom_ids:
        if heuristic_id not in resolved:
            resolved.append(heuristic_id)
    return resolved


def describe_selection(selection: HeuristicSelection) -> List[HeuristicDefinition]:
    """Resolve a selection to full definitions (for prompts and UI)."""
    return [get_heuristic(h) for h in resolve_selection(selection)]
