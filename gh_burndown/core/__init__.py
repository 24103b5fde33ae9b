"""Burndown chart pipeline: validate -> fetch -> calculate -> render -> store."""

from .orchestrator import BurndownOrchestrator, OrchestratorError, run_burndown_generation
from .phase3_burndown import compute_burndown
from .phase4_render import render_burndown
from .phase5_store import ChartStore

__all__ = [
    "BurndownOrchestrator",
    "OrchestratorError",
    "run_burndown_generation",
    "compute_burndown",
    "render_burndown",
    "ChartStore",
]
