# lit_curation/models/paper.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional

from lit_curation.errors import StatusTransitionError
from lit_curation.models.status import PaperState, PaperStatus


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class BibliographicMetadata:
    """
    Minimal bibliographic record used to rename a PDF.

    Every field is a string so that missing values can be carried as
    placeholders ("Unknown", "0000", ...) rather than None.
    """

    title: str
    author: str
    year: str
    journal: str


@dataclass
class Paper:
    title: str
    doi: str
    id: str = field(default_factory=new_id)
    pmid: Optional[str] = None
    status: PaperStatus = field(default_factory=PaperStatus.pending)
    local_path: Optional[str] = None
    introduction: Optional[str] = None
    metadata: Optional[BibliographicMetadata] = None

    def advance(self, status: PaperStatus) -> None:
        """
        Move to `status`, refusing regressions and exits from FAILED.

        Re-asserting the current non-failed status is allowed.
        """
        if not self.status.can_advance_to(status):
            raise StatusTransitionError(
                f"Paper {self.id}: cannot move from {self.status} to {status}"
            )
        self.status = status

    def requeue(self) -> bool:
        """
        Reset a FAILED paper so the matching batch picks it up again.

        Papers that already hold a file go back to Downloaded (the
        process step retries), others go back to Pending.
        Returns False if the paper was not failed.
        """
        if not self.status.is_failed:
            return False
        if self.local_path:
            self.status = PaperStatus.of(PaperState.DOWNLOADED)
        else:
            self.status = PaperStatus.pending()
        return True

    @property
    def is_ready(self) -> bool:
        return self.status.state is PaperState.READY
