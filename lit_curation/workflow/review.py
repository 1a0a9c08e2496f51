# lit_curation/workflow/review.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from lit_curation.models import ClaimState
from lit_curation.workflow.session import Session


@dataclass
class ReviewEntry:
    claim_id: str
    text: str
    supporting_titles: List[str] = field(default_factory=list)


def build_review(session: Session) -> List[ReviewEntry]:
    """
    Verified claims, in claim order, each with the titles of its supporting
    papers. Supporting ids that no longer resolve to a paper are skipped.
    """
    entries: List[ReviewEntry] = []

    with session.lock:
        for claim in session.claims:
            if claim.verification_status.state is not ClaimState.VERIFIED:
                continue

            titles = []
            for paper_id in claim.supporting_papers:
                paper = session.papers.find(paper_id)
                if paper is not None:
                    titles.append(paper.title)

            entries.append(
                ReviewEntry(
                    claim_id=claim.id,
                    text=claim.text,
                    supporting_titles=titles,
                )
            )

    return entries


def render_review_text(entries: List[ReviewEntry]) -> str:
    """Plain-text rendering: claim line, then one '- title' line per paper."""
    blocks = []
    for entry in entries:
        lines = [entry.text]
        lines.extend(f"  - {title}" for title in entry.supporting_titles)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
