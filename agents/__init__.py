"""Agent package for heuristic evaluation and research diagram generation."""

from .base_agent import BaseAgent
from .heuristic_agent import HeuristicEvaluationAgent
from .diagram_agents import (
    DiagramAgent,
    MindMapAgent,
    InformationArchitectureAgent,
    JourneyMapAgent,
)

__all__ = [
    'BaseAgent',
    'HeuristicEvaluationAgent',
    'DiagramAgent',
    'MindMapAgent',
    'InformationArchitectureAgent',
    'JourneyMapAgent',
]
