# lit_curation/services/base.py

"""
Interfaces the curation engine consumes.

Each external collaborator is a request/response boundary. Success values
come back as return values; failures are raised (ideally as a
ServiceError subclass). "Found nothing" is a success value (None or an
empty string), never an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

from lit_curation.models import BibliographicMetadata, Paper


class KeywordLogic(str, Enum):
    AND = "AND"
    OR = "OR"


class SearchField(str, Enum):
    TITLE_AND_ABSTRACT = "TitleAndAbstract"
    TITLE = "Title"
    ABSTRACT = "Abstract"

    @property
    def pubmed_tag(self) -> str:
        return {
            SearchField.TITLE_AND_ABSTRACT: "[Title/Abstract]",
            SearchField.TITLE: "[Title]",
            SearchField.ABSTRACT: "[Abstract]",
        }[self]


@dataclass(frozen=True)
class ExtractionResult:
    """What the process/extract step hands back for one PDF."""

    new_path: str
    metadata: BibliographicMetadata
    introduction: Optional[str]


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------

class ServiceError(RuntimeError):
    """
    Error raised when an external service call fails.

    Carries the HTTP status / URL when the failure came from a response.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class SearchServiceError(ServiceError):
    pass


class DownloadServiceError(ServiceError):
    pass


class ExtractionServiceError(ServiceError):
    pass


class AssistantServiceError(ServiceError):
    pass


# -----------------------------------------------------------------------------
# Protocols
# -----------------------------------------------------------------------------

class KeywordGenerator(Protocol):
    def generate_keywords(self, topic: str) -> List[str]:
        ...


class LiteratureSearch(Protocol):
    def search(
        self,
        keywords: Sequence[str],
        logic: KeywordLogic,
        field: SearchField,
        max_results: int,
    ) -> List[Paper]:
        ...


class DocumentDownloader(Protocol):
    def download(self, doi: str, target_dir: Union[str, Path]) -> Optional[str]:
        ...


class DocumentProcessor(Protocol):
    def process(self, local_path: str) -> Optional[ExtractionResult]:
        ...


class ClaimVerifier(Protocol):
    def verify_claim(self, claim: str, context: str) -> bool:
        ...
