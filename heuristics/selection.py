"""Heuristic selection value and the live selection state behind the selector UI."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .catalog import CUSTOM_SET_ID, DEFAULT_SET_ID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeuristicSelection:
    """
    What a caller asks to be evaluated.

    ``custom_ids`` only matters when ``set_id`` is the reserved custom id.
    """
    set_id: str = DEFAULT_SET_ID
    custom_ids: Tuple[str, ...] = ()

    @property
    def is_custom(self) -> bool:
        return self.set_id == CUSTOM_SET_ID

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"set": self.set_id}
        if self.is_custom:
            data["custom"] = list(self.custom_ids)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "HeuristicSelection":
        if not data:
            return cls()
        set_id = data.get("set") or data.get("set_id") or DEFAULT_SET_ID
        custom = data.get("custom") or data.get("custom_ids") or []
        return cls(set_id=set_id, custom_ids=tuple(custom))


OnChange = Callable[[HeuristicSelection], None]


class SelectionState:
    """
    Live binding between the heuristics selector and the surrounding form.

    Choosing a predefined set clears any accumulated custom ids. Toggling a
    checkbox always moves into custom mode and re-emits the full selection.
    """

    def __init__(self, initial: Optional[HeuristicSelection] = None, on_change: Optional[OnChange] = None):
        initial = initial or HeuristicSelection()
        self._set_id = initial.set_id
        self._custom_ids: List[str] = list(initial.custom_ids) if initial.is_custom else []
        self.on_change = on_change

    @property
    def selection(self) -> HeuristicSelection:
        if self._set_id == CUSTOM_SET_ID:
            return HeuristicSelection(set_id=CUSTOM_SET_ID, custom_ids=tuple(self._custom_ids))
        return HeuristicSelection(set_id=self._set_id)

    @property
    def custom_ids(self) -> List[str]:
        return list(self._custom_ids)

    @property
    def selected_count(self) -> int:
        return len(self._custom_ids)

    def is_checked(self, heuristic_id: str) -> bool:
        return heuristic_id in self._custom_ids

    def choose_set(self, set_id: str) -> HeuristicSelection:
        self._set_id = set_id
        if set_id != CUSTOM_SET_ID:
            self._custom_ids = []
        return self._emit()

    def toggle(self, heuristic_id: str, checked: bool) -> HeuristicSelection:
        if checked:
            if heuristic_id not in self._custom_ids:
                self._custom_ids.append(heuristic_id)
        else:
            self._custom_ids = [h for h in self._custom_ids if h != heuristic_id]
        self._set_id = CUSTOM_SET_ID
        return self._emit()

    def set_custom(self, heuristic_ids: Iterable[str]) -> HeuristicSelection:
        """Replace the custom list wholesale (multiselect widgets)."""
        self._custom_ids = []
        for heuristic_id in heuristic_ids:
            if heuristic_id not in self._custom_ids:
                self._custom_ids.append(heuristic_id)
        self._set_id = CUSTOM_SET_ID
        return self._emit()

    def _emit(self) -> HeuristicSelection:
        selection = self.selection
        logger.debug("Heuristic selection changed: %s", selection.to_dict())
        if self.on_change:
            self.on_change(selection)
        return selection
