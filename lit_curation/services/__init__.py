# lit_curation/services/__init__.py

"""
External collaborators consumed by the workflow engine: the interfaces in
`base`, plus HTTP clients for PubMed, OpenAlex, Crossref and OpenRouter.
"""

from .base import (
    AssistantServiceError,
    ClaimVerifier,
    DocumentDownloader,
    DocumentProcessor,
    DownloadServiceError,
    ExtractionResult,
    ExtractionServiceError,
    KeywordGenerator,
    KeywordLogic,
    LiteratureSearch,
    SearchField,
    SearchServiceError,
    ServiceError,
)

__all__ = [
    "AssistantServiceError",
    "ClaimVerifier",
    "DocumentDownloader",
    "DocumentProcessor",
    "DownloadServiceError",
    "ExtractionResult",
    "ExtractionServiceError",
    "KeywordGenerator",
    "KeywordLogic",
    "LiteratureSearch",
    "SearchField",
    "SearchServiceError",
    "ServiceError",
]
