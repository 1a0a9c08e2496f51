# lit_curation/workflow/orchestrator.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

from lit_curation.config.settings import Settings, get_settings
from lit_curation.errors import CurationError, PreconditionError
from lit_curation.services.base import (
    ClaimVerifier,
    DocumentDownloader,
    DocumentProcessor,
    KeywordGenerator,
    LiteratureSearch,
)
from lit_curation.workflow.processors import (
    BatchOutcome,
    DownloadProcessor,
    ExtractionProcessor,
    KeywordGenerationProcessor,
    SearchProcessor,
    VerificationProcessor,
)
from lit_curation.workflow.review import ReviewEntry, build_review
from lit_curation.workflow.session import Session

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Entry point used by the CLI and the HTTP app.

    Checks each batch's input before anything is called, then runs the
    matching processor against the session (which rejects overlapping
    runs through its busy flag).
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        *,
        keyword_generator: Optional[KeywordGenerator] = None,
        searcher: Optional[LiteratureSearch] = None,
        downloader: Optional[DocumentDownloader] = None,
        processor: Optional[DocumentProcessor] = None,
        verifier: Optional[ClaimVerifier] = None,
        download_dir: Optional[Union[str, Path]] = None,
        max_results: Optional[int] = None,
    ) -> None:
        if download_dir is None or max_results is None:
            cfg = get_settings()
            if download_dir is None:
                download_dir = cfg.download_dir
            if max_results is None:
                max_results = cfg.SEARCH_MAX_RESULTS

        self.session = session if session is not None else Session()
        self.keyword_generator = keyword_generator
        self.searcher = searcher
        self.downloader = downloader
        self.processor = processor
        self.verifier = verifier
        self.download_dir = Path(download_dir)
        self.max_results = max_results

    @classmethod
    def from_settings(
        cls,
        session: Optional[Session] = None,
        settings: Optional[Settings] = None,
    ) -> "Orchestrator":
        """Wire the bundled HTTP clients using the given (or global) settings."""
        from lit_curation.services.assistant import OpenRouterAssistant
        from lit_curation.services.download import OpenAccessDownloader
        from lit_curation.services.extraction import PdfMetadataProcessor
        from lit_curation.services.pubmed import PubMedClient

        settings = settings or get_settings()
        assistant = OpenRouterAssistant.from_settings(settings)

        return cls(
            session,
            keyword_generator=assistant,
            searcher=PubMedClient.from_settings(settings),
            downloader=OpenAccessDownloader.from_settings(settings),
            processor=PdfMetadataProcessor.from_settings(settings),
            verifier=assistant,
            download_dir=settings.download_dir,
            max_results=settings.SEARCH_MAX_RESULTS,
        )

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------
    def generate_keywords(self) -> BatchOutcome:
        if not self.session.topic.strip():
            raise PreconditionError("A topic is required to generate keywords")
        generator = self._require(self.keyword_generator, "keyword generation")
        return KeywordGenerationProcessor(generator).execute(self.session)

    def search(self, max_results: Optional[int] = None) -> BatchOutcome:
        if not self.session.keyword_list:
            raise PreconditionError("At least one keyword is required to search")
        searcher = self._require(self.searcher, "literature search")
        limit = max_results if max_results is not None else self.max_results
        return SearchProcessor(searcher, limit).execute(self.session)

    def download(self) -> BatchOutcome:
        downloader = self._require(self.downloader, "document download")
        return DownloadProcessor(downloader, self.download_dir).execute(self.session)

    def process(self) -> BatchOutcome:
        processor = self._require(self.processor, "document processing")
        return ExtractionProcessor(processor).execute(self.session)

    def verify(self) -> BatchOutcome:
        verifier = self._require(self.verifier, "claim verification")
        return VerificationProcessor(verifier).execute(self.session)

    def review(self) -> List[ReviewEntry]:
        return build_review(self.session)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _require(service, what: str):
        if service is None:
            raise CurationError(f"No {what} service configured")
        return service
