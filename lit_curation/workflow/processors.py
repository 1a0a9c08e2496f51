# lit_curation/workflow/processors.py

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

from lit_curation.models import (
    ClaimState,
    ClaimStatus,
    Paper,
    PaperState,
    PaperStatus,
)
from lit_curation.services.base import (
    ClaimVerifier,
    DocumentDownloader,
    DocumentProcessor,
    KeywordGenerator,
    KeywordLogic,
    LiteratureSearch,
    SearchField,
)
from lit_curation.workflow.session import Session

logger = logging.getLogger(__name__)

DOWNLOAD_FAILED = "Download failed"


def _error_text(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


# -----------------------------------------------------------------------------
# Aggregate outcome
# -----------------------------------------------------------------------------

@dataclass
class BatchOutcome:
    """
    Aggregate result of one batch run.

    attempted:
        Items the processor acted on (eligible items).
    skipped:
        Items left untouched because their status made them ineligible.
    counts:
        Resulting state label -> number of items that ended there.
    errors / last_error:
        Exceptions raised by the service, whether recorded on an item or
        swallowed (claim verification pairs).
    aborted:
        True when a single-call batch (keywords, search) failed and left
        the session untouched.
    """
    name: str
    attempted: int = 0
    skipped: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    aborted: bool = False
    counts: Counter = field(default_factory=Counter)

    def record(self, label: str) -> None:
        self.counts[label] += 1

    def record_error(self, message: str) -> None:
        self.errors += 1
        self.last_error = message

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "attempted": self.attempted,
            "skipped": self.skipped,
            "errors": self.errors,
            "last_error": self.last_error,
            "aborted": self.aborted,
            "counts": dict(self.counts),
        }

    def summary(self) -> str:
        if self.aborted:
            return f"{self.name}: aborted ({self.last_error})"
        parts = [f"{label}={n}" for label, n in sorted(self.counts.items())]
        parts.append(f"skipped={self.skipped}")
        return f"{self.name}: " + ", ".join(parts)


# -----------------------------------------------------------------------------
# Base
# -----------------------------------------------------------------------------

class BatchProcessor:
    """
    Common shape of every pipeline batch.

    `execute()` holds the session's busy flag for the whole run, then
    delegates to `run()`, which subclasses implement as a plain sequential
    loop over eligible items.
    """

    name: str = "batch"
    start_message: str = "Working..."

    def execute(self, session: Session) -> BatchOutcome:
        with session.batch(self.name):
            logger.info("Starting %s batch", self.name)
            session.set_status(self.start_message)

            outcome = self.run(session)

            session.last_outcome = outcome
            logger.info("Finished %s", outcome.summary())
        return outcome

    def run(self, session: Session) -> BatchOutcome:
        raise NotImplementedError


# -----------------------------------------------------------------------------
# Single-call batches
# -----------------------------------------------------------------------------

class KeywordGenerationProcessor(BatchProcessor):
    """Replace the session keywords with the generator's output for the topic."""

    name = "keywords"
    start_message = "Generating keywords..."

    def __init__(self, generator: KeywordGenerator) -> None:
        self.generator = generator

    def run(self, session: Session) -> BatchOutcome:
        outcome = BatchOutcome(self.name, attempted=1)

        try:
            keywords = self.generator.generate_keywords(session.topic)
        except Exception as exc:  # noqa: BLE001
            message = _error_text(exc)
            logger.warning("Keyword generation failed: %s", message)
            outcome.record_error(message)
            outcome.aborted = True
            session.set_status(f"Error: {message}")
            return outcome

        session.set_keywords(", ".join(keywords))
        outcome.record("generated")
        session.set_status("Keywords generated.")
        return outcome


class SearchProcessor(BatchProcessor):
    """
    Run one literature search over the parsed keywords and append the
    results, as Pending papers, after any earlier results.
    """

    name = "search"
    start_message = "Searching literature..."

    def __init__(
        self,
        searcher: LiteratureSearch,
        max_results: int,
        *,
        logic: KeywordLogic = KeywordLogic.AND,
        field: SearchField = SearchField.TITLE_AND_ABSTRACT,
    ) -> None:
        self.searcher = searcher
        self.max_results = max_results
        self.logic = logic
        self.field = field

    def run(self, session: Session) -> BatchOutcome:
        outcome = BatchOutcome(self.name, attempted=1)

        try:
            results = list(
                self.searcher.search(
                    session.keyword_list,
                    self.logic,
                    self.field,
                    self.max_results,
                )
            )
            for paper in results:
                paper.status = PaperStatus.pending()
            # extend() is all-or-nothing, so a clash leaves the store as it was
            with session.lock:
                session.papers.extend(results)
        except Exception as exc:  # noqa: BLE001
            message = _error_text(exc)
            logger.warning("Search failed: %s", message)
            outcome.record_error(message)
            outcome.aborted = True
            session.set_status(f"Error: {message}")
            return outcome

        outcome.counts[PaperState.PENDING.value] += len(results)
        session.publish("papers")
        session.set_status(
            f"Found {len(results)} new papers. Total: {len(session.papers)}"
        )
        return outcome


# -----------------------------------------------------------------------------
# Per-item batches
# -----------------------------------------------------------------------------

class DownloadProcessor(BatchProcessor):
    """Fetch a PDF for every Pending paper, in collection order."""

    name = "download"
    start_message = "Downloading PDFs..."

    def __init__(
        self,
        downloader: DocumentDownloader,
        target_dir: Union[str, Path],
    ) -> None:
        self.downloader = downloader
        self.target_dir = str(target_dir)

    def run(self, session: Session) -> BatchOutcome:
        outcome = BatchOutcome(self.name)
        total = len(session.papers)

        for index, paper in enumerate(session.papers, start=1):
            if paper.status.state is not PaperState.PENDING:
                outcome.skipped += 1
                continue

            outcome.attempted += 1
            session.status_message = f"Downloading {index}/{total}..."
            with session.lock:
                paper.advance(PaperStatus.of(PaperState.DOWNLOADING))
            session.publish("paper", paper)

            self._download_one(session, paper, outcome)
            session.publish("paper", paper)

        downloaded = outcome.counts[PaperState.DOWNLOADED.value]
        session.set_status(f"PDF downloads complete. Downloaded {downloaded} PDFs.")
        return outcome

    def _download_one(self, session: Session, paper: Paper, outcome: BatchOutcome) -> None:
        try:
            local_path = self.downloader.download(paper.doi, self.target_dir)
        except Exception as exc:  # noqa: BLE001
            message = _error_text(exc)
            logger.warning("Download of %s failed: %s", paper.doi, message)
            with session.lock:
                paper.advance(PaperStatus.failed(message))
            outcome.record_error(message)
            outcome.record(PaperState.FAILED.value)
            return

        if not local_path:
            logger.info("No PDF found for %s", paper.doi)
            with session.lock:
                paper.advance(PaperStatus.failed(DOWNLOAD_FAILED))
            outcome.record(PaperState.FAILED.value)
            return

        new_path = str(local_path)
        with session.lock:
            paper.advance(PaperStatus.of(PaperState.DOWNLOADED))
            paper.local_path = new_path
        outcome.record(PaperState.DOWNLOADED.value)


class ExtractionProcessor(BatchProcessor):
    """
    Rename downloaded PDFs from their metadata and pull out the
    introduction used as verification context.
    """

    name = "process"
    start_message = "Processing PDFs..."

    def __init__(self, processor: DocumentProcessor) -> None:
        self.processor = processor

    @staticmethod
    def is_eligible(paper: Paper) -> bool:
        return paper.status.state is PaperState.DOWNLOADED and bool(paper.local_path)

    def run(self, session: Session) -> BatchOutcome:
        outcome = BatchOutcome(self.name)
        total = len(session.papers)

        for index, paper in enumerate(session.papers, start=1):
            if not self.is_eligible(paper):
                outcome.skipped += 1
                continue

            outcome.attempted += 1
            session.status_message = f"Processing {index}/{total}..."

            self._process_one(session, paper, outcome)
            session.publish("paper", paper)

        session.set_status(
            f"PDF processing complete. "
            f"{outcome.counts[PaperState.READY.value]} papers ready."
        )
        return outcome

    def _process_one(self, session: Session, paper: Paper, outcome: BatchOutcome) -> None:
        try:
            result = self.processor.process(paper.local_path)  # type: ignore[arg-type]
        except Exception as exc:  # noqa: BLE001
            message = _error_text(exc)
            logger.warning("Processing %s failed: %s", paper.local_path, message)
            with session.lock:
                paper.advance(PaperStatus.failed(message))
            outcome.record_error(message)
            outcome.record(PaperState.FAILED.value)
            return

        if result is None:
            # Nothing extractable; the paper stays Downloaded.
            outcome.record("unchanged")
            return

        # read the whole result before touching the paper
        new_path, metadata, introduction = (
            result.new_path,
            result.metadata,
            result.introduction,
        )
        with session.lock:
            paper.advance(PaperStatus.of(PaperState.READY))
            paper.local_path = new_path
            paper.metadata = metadata
            paper.introduction = introduction
        outcome.record(PaperState.READY.value)


class VerificationProcessor(BatchProcessor):
    """
    Check each claim against the introduction of every Ready paper.

    Claims that are already Verified are left alone; everything else
    (Pending, Rejected, Failed) is re-checked and its supporting papers
    recomputed from scratch.
    """

    name = "verify"
    start_message = "Verifying claims..."

    def __init__(self, verifier: ClaimVerifier) -> None:
        self.verifier = verifier

    @staticmethod
    def is_context_paper(paper: Paper) -> bool:
        return paper.is_ready and bool(paper.introduction)

    def run(self, session: Session) -> BatchOutcome:
        outcome = BatchOutcome(self.name)
        total = len(session.claims)

        for index, claim in enumerate(session.claims, start=1):
            if claim.verification_status.state is ClaimState.VERIFIED:
                outcome.skipped += 1
                continue

            outcome.attempted += 1
            session.status_message = f"Verifying claim {index}/{total}..."
            with session.lock:
                claim.verification_status = ClaimStatus.of(ClaimState.CHECKING)
            session.publish("claim", claim)

            supporting = []
            for paper in session.papers.filter(self.is_context_paper):
                try:
                    supported = self.verifier.verify_claim(
                        claim.text, paper.introduction  # type: ignore[arg-type]
                    )
                except Exception as exc:  # noqa: BLE001
                    message = _error_text(exc)
                    logger.warning(
                        "Verification of claim %s against paper %s failed: %s",
                        claim.id,
                        paper.id,
                        message,
                        exc_info=True,
                    )
                    outcome.record_error(message)
                    continue

                if supported and paper.id not in supporting:
                    supporting.append(paper.id)

            state = ClaimState.VERIFIED if supporting else ClaimState.REJECTED
            with session.lock:
                claim.supporting_papers = supporting
                claim.verification_status = ClaimStatus.of(state)
            outcome.record(state.value)
            session.publish("claim", claim)

        session.set_status("Verification complete.")
        return outcome
