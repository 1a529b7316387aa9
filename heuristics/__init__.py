"""Heuristic configuration model: catalog, sets, selection and resolution."""

from .catalog import (
    CUSTOM_SET_ID,
    DEFAULT_SET_ID,
    HEURISTICS,
    HEURISTIC_SETS,
    HeuristicDefinition,
    HeuristicSetDefinition,
    find_heuristic,
    get_heuristic,
    get_set,
)
from .selection import HeuristicSelection, SelectionState
from .resolver import describe_selection, resolve_selection, resolve_set

__all__ = [
    'CUSTOM_SET_ID', 'DEFAULT_SET_ID', 'HEURISTICS', 'HEURISTIC_SETS',
    'HeuristicDefinition', 'HeuristicSetDefinition',
    'find_heuristic', 'get_heuristic', 'get_set',
    'HeuristicSelection', 'SelectionState',
    'describe_selection', 'resolve_selection', 'resolve_set',
]
