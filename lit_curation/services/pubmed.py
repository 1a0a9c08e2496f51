# lit_curation/services/pubmed.py

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import requests

from lit_curation.config.settings import Settings, settings as default_settings
from lit_curation.models import Paper
from lit_curation.services.base import KeywordLogic, SearchField, SearchServiceError


def build_query(
    keywords: Sequence[str],
    logic: KeywordLogic,
    field: SearchField,
) -> str:
    """
    Build an E-utilities search term.

    Each keyword gets the field tag; multi-word keywords are quoted so
    PubMed treats them as phrases:

        ["CRISPR", "gene editing"] -> 'CRISPR[Title/Abstract] AND "gene editing"[Title/Abstract]'
    """
    tag = field.pubmed_tag
    formatted = []
    for keyword in keywords:
        keyword = keyword.strip()
        if not keyword:
            continue
        if " " in keyword:
            formatted.append(f'"{keyword}"{tag}')
        else:
            formatted.append(f"{keyword}{tag}")

    return f" {logic.value} ".join(formatted)


class PubMedClient:
    """
    Minimal PubMed search client.

    Methods:
        - search(keywords, logic, field, max_results) -> List[Paper]
        - fetch_summaries(pmids) -> List[Paper]
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        base_url = base_url or default_settings.PUBMED_BASE_URL
        self.base_url: str = base_url.rstrip("/") + "/"
        self.timeout: int = timeout if timeout is not None else default_settings.HTTP_TIMEOUT
        self.http = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "PubMedClient":
        return cls(settings.PUBMED_BASE_URL, timeout=settings.HTTP_TIMEOUT)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------
    def _get_json(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.http.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SearchServiceError(
                f"Error contacting PubMed at {url}: {exc}",
                url=url,
            ) from exc

        if not resp.ok:
            raise SearchServiceError(
                f"PubMed returned HTTP {resp.status_code} for {url}",
                status_code=resp.status_code,
                url=url,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise SearchServiceError(f"PubMed returned invalid JSON for {url}", url=url) from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def search(
        self,
        keywords: Sequence[str],
        logic: KeywordLogic,
        field: SearchField,
        max_results: int,
    ) -> List[Paper]:
        if not keywords:
            return []

        term = build_query(keywords, logic, field)
        data = self._get_json(
            "esearch.fcgi",
            {
                "db": "pubmed",
                "term": term,
                "retmax": max_results,
                "retmode": "json",
            },
        )

        id_list = (data.get("esearchresult") or {}).get("idlist")
        if not isinstance(id_list, list):
            raise SearchServiceError("Failed to parse idlist from PubMed response")

        pmids = [str(pmid) for pmid in id_list if pmid]
        if not pmids:
            return []

        return self.fetch_summaries(pmids)

    def fetch_summaries(self, pmids: Sequence[str]) -> List[Paper]:
        """
        Turn PubMed ids into Papers via esummary. Records without a DOI
        are dropped since the DOI drives download.
        """
        data = self._get_json(
            "esummary.fcgi",
            {
                "db": "pubmed",
                "id": ",".join(pmids),
                "retmode": "json",
            },
        )

        result = data.get("result")
        if not isinstance(result, dict):
            raise SearchServiceError("Failed to parse result from PubMed summary")

        papers: List[Paper] = []
        for pmid in pmids:
            record = result.get(pmid)
            if not isinstance(record, dict):
                continue

            doi = _extract_doi(record)
            if not doi:
                continue

            papers.append(
                Paper(
                    title=record.get("title") or "Unknown Title",
                    doi=doi,
                    pmid=pmid,
                )
            )

        return papers


def _extract_doi(record: Dict[str, Any]) -> Optional[str]:
    for article_id in record.get("articleids") or []:
        if article_id.get("idtype") == "doi" and article_id.get("value"):
            return str(article_id["value"])
    return None
