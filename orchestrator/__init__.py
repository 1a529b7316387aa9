"""Orchestrator package for audit coordination.

Import the Orchestrator from ``orchestrator.orchestrator``; it depends on
modules that themselves import the context store from this package.
"""

from .context_store import ContextStore, PageData, ScreenshotData, AgentAnalysis, AgentStatus

__all__ = ['ContextStore', 'PageData', 'ScreenshotData', 'AgentAnalysis', 'AgentStatus']
