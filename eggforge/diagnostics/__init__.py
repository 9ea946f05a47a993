"""Offline diagnostics for catalog and configuration."""

from .checklist import ChecklistIssue, run_checklist
from .draw_simulator import DrawSimulator, SimulationResult

__all__ = ["ChecklistIssue", "run_checklist", "DrawSimulator", "SimulationResult"]
