"""Utilities package for the UX heuristic audit tool."""
