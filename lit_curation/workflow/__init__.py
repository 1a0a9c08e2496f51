# lit_curation/workflow/__init__.py

"""
Workflow engine: session state, stage controller, batch processors and
the orchestrator that drives them.
"""

from .orchestrator import Orchestrator
from .processors import BatchOutcome
from .review import ReviewEntry, build_review
from .session import Session, SessionUpdate, parse_keywords
from .stages import Stage, StageController, resolve_stage

__all__ = [
    "BatchOutcome",
    "Orchestrator",
    "ReviewEntry",
    "Session",
    "SessionUpdate",
    "Stage",
    "StageController",
    "build_review",
    "parse_keywords",
    "resolve_stage",
]
