# lit_curation/models/claim.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from lit_curation.models.paper import new_id
from lit_curation.models.status import ClaimStatus


@dataclass
class Claim:
    """
    A user-entered assertion checked against extracted paper text.

    `supporting_papers` holds Paper ids, in the order the papers were
    checked. It is replaced wholesale on every verification pass.
    """

    text: str
    id: str = field(default_factory=new_id)
    verification_status: ClaimStatus = field(default_factory=ClaimStatus.pending)
    supporting_papers: List[str] = field(default_factory=list)
