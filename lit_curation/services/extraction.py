# lit_curation/services/extraction.py

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests
from pypdf import PdfReader

from lit_curation.config.settings import Settings, settings as default_settings
from lit_curation.models import BibliographicMetadata
from lit_curation.services.base import ExtractionResult, ExtractionServiceError

logger = logging.getLogger(__name__)

DOI_RE = re.compile(r"(10\.\d{4,9}/[-._;()/:a-zA-Z0-9]+)")
_UNSAFE_FILENAME_CHARS = set('<>:"/\\|?*')


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def extract_pdf_text(pdf_path: Union[str, Path]) -> str:
    reader = PdfReader(str(pdf_path))
    texts = []
    for page in reader.pages:
        try:
            texts.append(page.extract_text() or "")
        except Exception:  # noqa: BLE001
            continue
    return "\n".join(texts)


def find_doi(text: str) -> Optional[str]:
    match = DOI_RE.search(text)
    return match.group(1) if match else None


def extract_introduction(text: str, max_chars: int = 2000) -> str:
    """
    Text following the first "introduction" heading (case-insensitive),
    or the start of the document when there is none.
    """
    index = text.lower().find("introduction")
    if index == -1:
        return text[:max_chars]
    start = index + len("introduction")
    return text[start:start + max_chars]


def sanitize_filename(name: str) -> str:
    return "".join(ch for ch in name if ch not in _UNSAFE_FILENAME_CHARS)


def metadata_filename(metadata: BibliographicMetadata) -> str:
    """'{year}_{author}_{journal}.pdf', spaces dropped from the journal."""
    journal = metadata.journal.replace(" ", "")
    author = metadata.author.replace("/", "")
    return sanitize_filename(f"{metadata.year}_{author}_{journal}.pdf")


def available_path(target: Path, source: Path) -> Path:
    """
    `target`, or `{stem}_1.pdf`, `{stem}_2.pdf`, ... when another file
    already holds that name. Renaming a file onto itself is allowed.
    """
    candidate = target
    counter = 1
    while candidate != source and candidate.exists():
        candidate = target.with_name(f"{target.stem}_{counter}{target.suffix}")
        counter += 1
    return candidate


def _first(values: Any) -> Optional[str]:
    if isinstance(values, list) and values and isinstance(values[0], str):
        return values[0]
    return None


def parse_crossref_message(message: Dict[str, Any]) -> BibliographicMetadata:
    title = _first(message.get("title")) or "Unknown Title"

    author = "Unknown"
    authors = message.get("author")
    if isinstance(authors, list) and authors:
        author = authors[0].get("family") or "Unknown"

    year = "0000"
    try:
        year = str(int(message["created"]["date-parts"][0][0]))
    except (KeyError, IndexError, TypeError, ValueError):
        pass

    journal = (
        _first(message.get("short-container-title"))
        or _first(message.get("container-title"))
        or "UnknownJournal"
    )

    return BibliographicMetadata(title=title, author=author, year=year, journal=journal)


# ---------------------------------------------------------------------------
# Processor
# ---------------------------------------------------------------------------

class PdfMetadataProcessor:
    """
    Process a downloaded PDF:

      1. read its text with pypdf,
      2. find the first DOI in it and look the DOI up on Crossref,
      3. rename the file to '{year}_{author}_{journal}.pdf',
      4. keep the introduction as verification context.

    Returns None when any of steps 1-2 finds nothing usable; raises
    ExtractionServiceError for Crossref transport errors or a failed rename.
    """

    def __init__(
        self,
        crossref_url: Optional[str] = None,
        *,
        contact_email: Optional[str] = None,
        timeout: Optional[int] = None,
        introduction_chars: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.crossref_url = (crossref_url or default_settings.CROSSREF_BASE_URL).rstrip("/")
        self.contact_email = contact_email
        self.timeout = timeout if timeout is not None else default_settings.HTTP_TIMEOUT
        self.introduction_chars = (
            introduction_chars
            if introduction_chars is not None
            else default_settings.INTRODUCTION_MAX_CHARS
        )
        self.http = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "PdfMetadataProcessor":
        return cls(
            settings.CROSSREF_BASE_URL,
            contact_email=settings.CONTACT_EMAIL,
            timeout=settings.HTTP_TIMEOUT,
            introduction_chars=settings.INTRODUCTION_MAX_CHARS,
        )

    def _headers(self) -> Dict[str, str]:
        if self.contact_email:
            return {"User-Agent": f"lit-curation/0.1 (mailto:{self.contact_email})"}
        return {}

    def fetch_metadata(self, doi: str) -> Optional[BibliographicMetadata]:
        url = f"{self.crossref_url}/{requests.utils.quote(doi)}"
        try:
            resp = self.http.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise ExtractionServiceError(
                f"Error contacting Crossref at {url}: {exc}",
                url=url,
            ) from exc

        if not resp.ok:
            logger.info("Crossref returned HTTP %s for %s", resp.status_code, doi)
            return None

        message = resp.json().get("message")
        if not isinstance(message, dict):
            return None
        return parse_crossref_message(message)

    def process(self, local_path: str) -> Optional[ExtractionResult]:
        pdf_path = Path(local_path)

        try:
            text = extract_pdf_text(pdf_path)
        except Exception as exc:  # noqa: BLE001
            logger.info("Could not read text from %s: %s", pdf_path, exc)
            return None

        doi = find_doi(text)
        if doi is None:
            return None

        metadata = self.fetch_metadata(doi)
        if metadata is None:
            return None

        new_path = available_path(pdf_path.with_name(metadata_filename(metadata)), pdf_path)
        try:
            if new_path != pdf_path:
                pdf_path.replace(new_path)
        except OSError as exc:
            raise ExtractionServiceError(f"Could not rename {pdf_path}: {exc}") from exc

        return ExtractionResult(
            new_path=str(new_path),
            metadata=metadata,
            introduction=extract_introduction(text, self.introduction_chars),
        )
