"""Research diagram generators: mind maps, information architecture, journey maps."""

import json
import logging
from typing import Any, Dict, Optional

from utils.errors import AgentError, LLMError, PaymentRequiredError, RateLimitError
from utils.llm_client import LLMClient, extract_json_object

logger = logging.getLogger(__name__)


class DiagramAgent:
    """
    Base for agents that turn research notes into a diagram structure.

    Subclasses name their system prompt and build the user prompt; the model
    reply is reduced to its outermost JSON object. Unparseable replies come
    back as {"error": "Could not parse <kind>", "raw": <text>} rather than
    raising, so the UI can show what the model said.
    """

    agent_name: str = "diagram"
    diagram_kind: str = "diagram"
    prompt_name: str = ""
    result_key: str = ""
    max_tokens: int = 4000

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.llm = llm_client or LLMClient()

    def build_user_prompt(self, **inputs) -> str:
        raise NotImplementedError

    def system_prompt(self) -> str:
        template = self.llm.load_prompt(self.prompt_name)
        if not template:
            raise ValueError(f"Prompt template not found: {self.prompt_name}")
        return template

    def parse(self, text: str) -> Dict[str, Any]:
        data = extract_json_object(text)
        if data is None:
            logger.warning("Could not parse %s from model output", self.diagram_kind)
            return {"error": f"Could not parse {self.diagram_kind}", "raw": text}
        return self.normalize(data)

    def normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return data

    def generate(self, **inputs) -> Dict[str, Any]:
        """Generate the diagram synchronously."""
        logger.info("Generating %s", self.diagram_kind)
        try:
            text = self.llm.complete(
                self.build_user_prompt(**inputs),
                max_tokens=self.max_tokens,
                temperature=0.7,
                system=self.system_prompt(),
            )
        except (RateLimitError, PaymentRequiredError):
            raise
        except LLMError as e:
            raise AgentError(self.agent_name, f"Failed to generate {self.diagram_kind}: {e}") from e
        return self.parse(text)

    async def generate_async(self, **inputs) -> Dict[str, Any]:
        """Generate the diagram asynchronously."""
        logger.info("Generating %s", self.diagram_kind)
        try:
            text = await self.llm.complete_async(
                self.build_user_prompt(**inputs),
                max_tokens=self.max_tokens,
                temperature=0.7,
                system=self.system_prompt(),
            )
        except (RateLimitError, PaymentRequiredError):
            raise
        except LLMError as e:
            raise AgentError(self.agent_name, f"Failed to generate {self.diagram_kind}: {e}") from e
        return self.parse(text)


def _study_line(study_data: Optional[Any]) -> str:
    return f"Study Information: {json.dumps(study_data)}" if study_data else ""


class MindMapAgent(DiagramAgent):
    agent_name = "mind_map"
    diagram_kind = "mind map"
    prompt_name = "mind_map"
    result_key = "mindMap"

    def build_user_prompt(self, topic: str = "", context: str = "", study_data: Optional[Any] = None) -> str:
        lines = [
            f"Topic: {topic}",
            f"Context: {context or 'General UX research'}",
            _study_line(study_data),
            "",
            "Please create a detailed mind map that helps visualize and organize this UX research topic.",
        ]
        return '\n'.join(lines)

    def normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data.setdefault("branches", [])
        data.setdefault("connections", [])
        return data


class InformationArchitectureAgent(DiagramAgent):
    agent_name = "information_architecture"
    diagram_kind = "IA"
    prompt_name = "information_architecture"
    result_key = "informationArchitecture"

    def build_user_prompt(self, project_name: str = "", description: str = "",
                          user_needs: str = "", study_data: Optional[Any] = None) -> str:
        lines = [
            f"Project Name: {project_name}",
            f"Description: {description}",
            f"User Needs: {user_needs}" if user_needs else "",
            _study_line(study_data),
            "",
            "Please create a detailed information architecture that organizes content effectively for users.",
        ]
        return '\n'.join(lines)

    def normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data.setdefault("hierarchy", [])
        navigation = data.setdefault("navigation", {})
        for key in ("primary", "secondary", "utility"):
            navigation.setdefault(key, [])
        data.setdefault("taxonomies", [])
        return data


class JourneyMapAgent(DiagramAgent):
    agent_name = "user_journey_map"
    diagram_kind = "journey"
    prompt_name = "user_journey_map"
    result_key = "userJourneyMap"

    def build_user_prompt(self, persona: Optional[Any] = None, scenario: str = "",
                          study_data: Optional[Any] = None) -> str:
        lines = [
            f"Persona: {json.dumps(persona)}" if persona else "",
            f"Scenario: {scenario or 'User interacts with the product/service'}",
            _study_line(study_data),
            "",
            "Please create a detailed user journey map that captures the complete user experience.",
        ]
        return '\n'.join(lines)

    def normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        for stage in data.setdefault("stages", []):
            try:
                level = int(stage.get("emotionLevel", 3))
            except (TypeError, ValueError):
                level = 3
            stage["emotionLevel"] = max(1, min(5, level))
        return data


DIAGRAM_AGENTS = {
    "mind_map": MindMapAgent,
    "information_architecture": InformationArchitectureAgent,
    "user_journey_map": JourneyMapAgent,
}
