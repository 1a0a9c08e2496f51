# lit_curation/api/models.py

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from lit_curation.models import Claim, Paper
from lit_curation.workflow.processors import BatchOutcome
from lit_curation.workflow.review import ReviewEntry
from lit_curation.workflow.session import Session


class MetadataView(BaseModel):
    title: str
    author: str
    year: str
    journal: str


class PaperView(BaseModel):
    """
    A paper as exposed over HTTP. `status` is the state label; the failure
    text, if any, is in `status_message`.
    """
    id: str
    title: str
    doi: str
    pmid: Optional[str] = None
    status: str = Field(..., description="State label, e.g. 'Pending' or 'Failed'.")
    status_message: Optional[str] = Field(
        None,
        description="Failure message when status is 'Failed'.",
    )
    local_path: Optional[str] = None
    introduction: Optional[str] = None
    metadata: Optional[MetadataView] = None

    @classmethod
    def from_paper(cls, paper: Paper) -> "PaperView":
        metadata = None
        if paper.metadata is not None:
            metadata = MetadataView(
                title=paper.metadata.title,
                author=paper.metadata.author,
                year=paper.metadata.year,
                journal=paper.metadata.journal,
            )
        return cls(
            id=paper.id,
            title=paper.title,
            doi=paper.doi,
            pmid=paper.pmid,
            status=paper.status.state.value,
            status_message=paper.status.message,
            local_path=paper.local_path,
            introduction=paper.introduction,
            metadata=metadata,
        )


class ClaimView(BaseModel):
    id: str
    text: str
    verification_status: str
    status_message: Optional[str] = None
    supporting_papers: List[str] = Field(default_factory=list)

    @classmethod
    def from_claim(cls, claim: Claim) -> "ClaimView":
        return cls(
            id=claim.id,
            text=claim.text,
            verification_status=claim.verification_status.state.value,
            status_message=claim.verification_status.message,
            supporting_papers=list(claim.supporting_papers),
        )


class BatchOutcomeView(BaseModel):
    name: str
    attempted: int
    skipped: int
    errors: int
    last_error: Optional[str] = None
    aborted: bool = False
    counts: Dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_outcome(cls, outcome: BatchOutcome) -> "BatchOutcomeView":
        return cls(**outcome.to_dict())


class SessionView(BaseModel):
    topic: str
    keywords: str
    keyword_list: List[str]
    stage: str
    busy: bool
    running: Optional[str] = None
    status_message: str
    papers: List[PaperView] = Field(default_factory=list)
    claims: List[ClaimView] = Field(default_factory=list)
    last_outcome: Optional[BatchOutcomeView] = None

    @classmethod
    def from_session(cls, session: Session) -> "SessionView":
        # built under the session lock so no item is caught mid-update
        with session.lock:
            last = session.last_outcome
            return cls(
                topic=session.topic,
                keywords=session.keywords,
                keyword_list=session.keyword_list,
                stage=session.stage.label,
                busy=session.busy,
                running=session.running,
                status_message=session.status_message,
                papers=[PaperView.from_paper(p) for p in session.papers],
                claims=[ClaimView.from_claim(c) for c in session.claims],
                last_outcome=BatchOutcomeView.from_outcome(last) if last is not None else None,
            )


class ReviewEntryView(BaseModel):
    claim_id: str
    text: str
    supporting_titles: List[str] = Field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: ReviewEntry) -> "ReviewEntryView":
        return cls(
            claim_id=entry.claim_id,
            text=entry.text,
            supporting_titles=list(entry.supporting_titles),
        )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class TopicRequest(BaseModel):
    topic: str


class KeywordsRequest(BaseModel):
    keywords: str = Field(..., description="Comma-separated keywords.")


class StageRequest(BaseModel):
    stage: str = Field(..., description="Stage name (e.g. 'FinalReview') or ordinal.")


class ClaimRequest(BaseModel):
    text: str


class DoisRequest(BaseModel):
    dois: List[str] = Field(..., description="DOIs to queue, one per entry.")
