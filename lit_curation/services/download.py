# lit_curation/services/download.py

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests

from lit_curation.config.settings import Settings, settings as default_settings
from lit_curation.services.base import DownloadServiceError

PDF_CONTENT_TYPES = ("application/pdf", "application/octet-stream")


def pdf_filename_for_doi(doi: str) -> str:
    """'10.1000/xyz.1' -> 'paper_10_1000_xyz_1.pdf'"""
    safe = doi.replace("/", "_").replace(".", "_")
    return f"paper_{safe}.pdf"


def _normalize_doi(doi: str) -> str:
    doi = doi.strip()
    for prefix in ("https://doi.org/", "http://doi.org/", "doi:"):
        if doi.lower().startswith(prefix):
            return doi[len(prefix):]
    return doi


class OpenAccessDownloader:
    """
    Download open-access PDFs by DOI.

    The DOI is resolved through OpenAlex to its best open-access location.
    `download()` returns the saved path, or None when no open-access PDF
    exists (or the link does not serve a PDF). Transport errors and
    unexpected HTTP statuses raise DownloadServiceError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        contact_email: Optional[str] = None,
        timeout: Optional[int] = None,
        download_timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or default_settings.OPENALEX_BASE_URL).rstrip("/")
        self.contact_email = contact_email
        self.timeout = timeout if timeout is not None else default_settings.HTTP_TIMEOUT
        self.download_timeout = (
            download_timeout
            if download_timeout is not None
            else default_settings.DOWNLOAD_TIMEOUT
        )
        self.http = session or requests.Session()
        self.http.headers.update(self._build_headers())

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAccessDownloader":
        return cls(
            settings.OPENALEX_BASE_URL,
            contact_email=settings.CONTACT_EMAIL,
            timeout=settings.HTTP_TIMEOUT,
            download_timeout=settings.DOWNLOAD_TIMEOUT,
        )

    def _build_headers(self) -> Dict[str, str]:
        if self.contact_email:
            return {"User-Agent": f"lit-curation/0.1 (mailto:{self.contact_email})"}
        return {"User-Agent": "lit-curation/0.1"}

    # ------------------------------------------------------------------
    # DOI -> PDF URL
    # ------------------------------------------------------------------
    def resolve_pdf_url(self, doi: str) -> Optional[str]:
        doi = _normalize_doi(doi)
        url = f"{self.base_url}/works/https://doi.org/{doi}"

        try:
            resp = self.http.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DownloadServiceError(
                f"Error contacting OpenAlex at {url}: {exc}",
                url=url,
            ) from exc

        if resp.status_code == 404:
            return None
        if not resp.ok:
            raise DownloadServiceError(
                f"OpenAlex returned HTTP {resp.status_code} for {url}",
                status_code=resp.status_code,
                url=url,
            )

        work: Dict[str, Any] = resp.json()
        best = work.get("best_oa_location") or {}
        pdf_url = best.get("pdf_url")
        if not pdf_url:
            pdf_url = (work.get("open_access") or {}).get("oa_url")
        if not pdf_url:
            return None

        if pdf_url.startswith("//"):
            pdf_url = f"https:{pdf_url}"
        return pdf_url

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def download(self, doi: str, target_dir: Union[str, Path]) -> Optional[str]:
        pdf_url = self.resolve_pdf_url(doi)
        if pdf_url is None:
            return None

        try:
            resp = self.http.get(pdf_url, timeout=self.download_timeout)
        except requests.RequestException as exc:
            raise DownloadServiceError(
                f"Error downloading {pdf_url}: {exc}",
                url=pdf_url,
            ) from exc

        if not resp.ok:
            return None

        content_type = resp.headers.get("Content-Type", "").split(";")[0].strip().lower()
        if content_type not in PDF_CONTENT_TYPES:
            return None

        target_dir = Path(target_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        pdf_path = target_dir / pdf_filename_for_doi(_normalize_doi(doi))
        pdf_path.write_bytes(resp.content)
        return str(pdf_path)
