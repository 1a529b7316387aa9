"""Export research diagrams to Figma, via the REST API or the companion plugin."""

import re
import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import requests

from utils.errors import FigmaExportError

logger = logging.getLogger(__name__)

FIGMA_FILES_URL = "https://api.figma.com/v1/files"
FIGMA_FILE_URL = "https://www.figma.com/file/{key}"

_HEX = re.compile(r'^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$', re.I)


def hex_to_rgb(value: str) -> Dict[str, float]:
    """'#rrggbb' to Figma's 0-1 color channels; black when unparseable."""
    match = _HEX.match(value or "")
    if not match:
        return {"r": 0.0, "g": 0.0, "b": 0.0}
    r, g, b = (int(part, 16) / 255 for part in match.groups())
    return {"r": r, "g": g, "b": b}


def _canvas(name: str, children: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"document": {"name": name, "type": "CANVAS", "children": children}}


def convert_mind_map(data: Dict[str, Any]) -> Dict[str, Any]:
    children = [
        {
            "name": branch.get("label", ""),
            "type": "FRAME",
            "x": index * 300,
            "y": 0,
            "width": 250,
            "height": 150,
            "fills": [{"type": "SOLID", "color": hex_to_rgb(branch.get("color") or "#000000")}],
        }
        for index, branch in enumerate(data.get("branches") or [])
    ]
    return _canvas("Mind Map", children)


def convert_information_architecture(data: Dict[str, Any]) -> Dict[str, Any]:
    children = [
        {
            "name": section.get("label", ""),
            "type": "FRAME",
            "x": 0,
            "y": index * 200,
            "width": 400,
            "height": 150,
        }
        for index, section in enumerate(data.get("hierarchy") or [])
    ]
    return _canvas("Information Architecture", children)


def convert_user_journey_map(data: Dict[str, Any]) -> Dict[str, Any]:
    children = [
        {
            "name": stage.get("name", ""),
            "type": "FRAME",
            "x": index * 350,
            "y": 0,
            "width": 300,
            "height": 400,
        }
        for index, stage in enumerate(data.get("stages") or [])
    ]
    return _canvas("User Journey Map", children)


def convert_observations(data: Dict[str, Any]) -> Dict[str, Any]:
    children = [
        {
            "name": f"Observation {index + 1}",
            "type": "TEXT",
            "x": 0,
            "y": index * 100,
            "characters": observation.get("content") or "",
        }
        for index, observation in enumerate(data.get("observations") or [])
    ]
    return _canvas("Research Observations", children)


CONVERTERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "mind_map": convert_mind_map,
    "information_architecture": convert_information_architecture,
    "user_journey_map": convert_user_journey_map,
    "observations": convert_observations,
}

# The plugin only knows how to draw these
PLUGIN_EXPORT_TYPES = ("mind_map", "information_architecture", "user_journey_map")


def convert(export_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    converter = CONVERTERS.get(export_type)
    if converter is None:
        raise FigmaExportError("Unsupported export type")
    return converter(data)


def build_plugin_payload(export_type: str, data: Dict[str, Any]) -> str:
    """JSON pasted into the importer plugin's text box."""
    if export_type not in PLUGIN_EXPORT_TYPES:
        raise FigmaExportError("Unsupported export type")
    return json.dumps({"exportType": export_type, "data": data}, indent=2)


@dataclass
class FigmaExportResult:
    file_key: str
    file_url: str


class FigmaClient:
    """Creates Figma files from research diagrams with a personal access token."""

    def __init__(self, access_token: Optional[str], timeout: int = 30, session: Optional[requests.Session] = None):
        self.access_token = (access_token or "").strip()
        self.timeout = timeout
        self.session = session or requests.Session()

    def export(self, export_type: str, data: Dict[str, Any]) -> FigmaExportResult:
        if not self.access_token:
            raise FigmaExportError("Figma access token is required")

        body = {"name": f"UX Research - {export_type} - {date.today().isoformat()}"}
        body.update(convert(export_type, data))

        logger.info("Exporting %s to Figma", export_type)
        try:
            response = self.session.post(
                FIGMA_FILES_URL,
                json=body,
                headers={"X-Figma-Token": self.access_token, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise FigmaExportError(f"Failed to create Figma file: {e}") from e

        if not response.ok:
            logger.error("Figma API error: %s %s", response.status_code, response.text[:500])
            raise FigmaExportError("Failed to create Figma file")

        file_key = response.json().get("key", "")
        if not file_key:
            raise FigmaExportError("Figma did not return a file key")
        logger.info("Exported to Figma: %s", file_key)
        return FigmaExportResult(file_key=file_key, file_url=FIGMA_FILE_URL.format(key=file_key))
