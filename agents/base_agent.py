"""Base agent class for all audit agents."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional
from datetime import datetime
import logging

from orchestrator.context_store import ContextStore, AgentAnalysis, AgentStatus
from utils.llm_client import LLMClient

logger = logging.getLogger(__name__)


class BaseAgent(ABC):
    """
    Abstract base class for audit agents.

    Each agent:
    - Reads from the shared ContextStore
    - Performs analysis using the LLM and/or deterministic rules
    - Writes results back to ContextStore
    - Implements self-audit to validate results
    """

    # Class attributes that subclasses should override
    agent_name: str = "base"
    agent_description: str = "Base agent"
    dependencies: List[str] = []  # Other agents that must complete first

    def __init__(self, context: ContextStore, llm_client: Optional[LLMClient] = None, verbose: bool = False):
        """
        Initialize the agent.

        Args:
            context: Shared context store
            llm_client: Optional LLM client (will create one if not provided)
            verbose: Enable verbose logging
        """
        self.context = context
        self.llm = llm_client or LLMClient()
        self.verbose = verbose
        self._analysis: Optional[AgentAnalysis] = None

    @property
    def analysis(self) -> AgentAnalysis:
        """Get or create the agent's analysis record."""
        if self._analysis is None:
            existing = self.context.get_analysis(self.agent_name)
            if existing:
                self._analysis = existing
            else:
                self._analysis = AgentAnalysis(
                    agent_name=self.agent_name,
                    status=AgentStatus.PENDING
                )
        return self._analysis

    def can_run(self) -> bool:
        """True when every dependency has completed."""
        return not self.get_missing_dependencies()

    def get_missing_dependencies(self) -> List[str]:
        """Get list of dependencies that are not yet completed."""
        missing = []
        for dep in self.dependencies:
            dep_analysis = self.context.get_analysis(dep)
            if not dep_analysis or dep_analysis.status != AgentStatus.COMPLETED:
                missing.append(dep)
        return missing

    @abstractmethod
    async def run(self) -> Any:
        """
        Execute the agent's analysis asynchronously.

        Returns:
            The agent's result object, stored on AgentAnalysis.result
        """
        pass

    async def execute(self) -> AgentAnalysis:
        """
        Execute the agent with proper state management.

        This is the main entry point for running an agent.
        It handles status updates and error handling.

        Returns:
            AgentAnalysis with results
        """
        if not self.can_run():
            missing = self.get_missing_dependencies()
            self.analysis.status = AgentStatus.PENDING
            self.analysis.errors.append(f"Dependencies not met: {', '.join(missing)}")
            return self.analysis

        self.analysis.status = AgentStatus.RUNNING
        self.analysis.started_at = datetime.now().isoformat()
        self.context.set_analysis(self.analysis)

        try:
            logger.info("Running %s agent...", self.agent_name)
            self.analysis.result = await self.run()

            self.analysis.self_audit_passed = self.self_audit()
            if self.analysis.self_audit_passed:
                self.analysis.status = AgentStatus.COMPLETED
            else:
                self.analysis.status = AgentStatus.NEEDS_REVISION

            self.analysis.completed_at = datetime.now().isoformat()

        except Exception as e:
            self.analysis.status = AgentStatus.FAILED
            self.analysis.errors.append(str(e))
            logger.error("Error in %s agent: %s", self.agent_name, e)

        self.context.set_analysis(self.analysis)
        return self.analysis

    def self_audit(self) -> bool:
        """
        Review the agent's own results for quality.

        Override this method to implement custom validation logic.

        Returns:
            True if results pass quality check, False if revision needed
        """
        return self.analysis.result is not None

    def get_status_summary(self) -> str:
        """Get a human-readable status summary."""
        status = self.analysis.status.value
        if self.analysis.errors:
            return f"{self.agent_name}: {status} ({self.analysis.errors[-1]})"
        return f"{self.agent_name}: {status}"
