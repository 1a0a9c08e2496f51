# lit_curation/models/__init__.py

"""
Domain records for the curation pipeline: papers, claims and their
tagged status values.
"""

from .claim import Claim
from .paper import BibliographicMetadata, Paper, new_id
from .status import ClaimState, ClaimStatus, PaperState, PaperStatus

__all__ = [
    "BibliographicMetadata",
    "Claim",
    "ClaimState",
    "ClaimStatus",
    "Paper",
    "PaperState",
    "PaperStatus",
    "new_id",
]
