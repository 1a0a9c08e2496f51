# tests/test_extraction_service.py

import pytest
import requests

from lit_curation.models import BibliographicMetadata
from lit_curation.services import extraction
from lit_curation.services.base import ExtractionServiceError
from lit_curation.services.extraction import (
    PdfMetadataProcessor,
    available_path,
    extract_introduction,
    find_doi,
    metadata_filename,
    parse_crossref_message,
)


class DummyResponse:
    def __init__(self, status_code=200, json_data=None):
        self.status_code = status_code
        self._json = json_data

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._json


class DummyHttp:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, headers=None, timeout=None, **kwargs):
        self.calls.append((url, headers))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


CROSSREF_MESSAGE = {
    "title": ["Off-target effects of CRISPR"],
    "author": [{"given": "Jane", "family": "Doe"}, {"family": "Roe"}],
    "created": {"date-parts": [[2021, 5, 3]]},
    "short-container-title": ["Nat Biotech"],
    "container-title": ["Nature Biotechnology"],
}

PDF_TEXT = (
    "Journal header doi:10.1038/nbt.1234 page 1\n"
    "Abstract text.\n"
    "1. Introduction\n"
    "CRISPR reduces off-target effects when guided carefully."
)


def test_find_doi():
    assert find_doi(PDF_TEXT) == "10.1038/nbt.1234"
    assert find_doi("no identifiers here") is None


def test_extract_introduction_follows_heading():
    intro = extract_introduction(PDF_TEXT, max_chars=20)

    assert intro == "\nCRISPR reduces off-"


def test_extract_introduction_without_heading_uses_start():
    assert extract_introduction("abcdef", max_chars=3) == "abc"


def test_parse_crossref_message():
    meta = parse_crossref_message(CROSSREF_MESSAGE)

    assert meta == BibliographicMetadata(
        title="Off-target effects of CRISPR",
        author="Doe",
        year="2021",
        journal="Nat Biotech",
    )


def test_parse_crossref_message_defaults():
    meta = parse_crossref_message({"container-title": ["Some Journal"]})

    assert meta.title == "Unknown Title"
    assert meta.author == "Unknown"
    assert meta.year == "0000"
    assert meta.journal == "Some Journal"
    assert parse_crossref_message({}).journal == "UnknownJournal"


def test_metadata_filename_drops_spaces_and_unsafe_chars():
    meta = BibliographicMetadata(title="t", author="O'Neil", year="2021", journal="J: Bio Med")

    assert metadata_filename(meta) == "2021_O'Neil_JBioMed.pdf"


def test_process_renames_and_extracts(tmp_path, monkeypatch):
    pdf = tmp_path / "paper_10_1038_nbt_1234.pdf"
    pdf.write_bytes(b"%PDF")
    monkeypatch.setattr(extraction, "extract_pdf_text", lambda path: PDF_TEXT)
    http = DummyHttp(DummyResponse(json_data={"message": CROSSREF_MESSAGE}))
    processor = PdfMetadataProcessor(
        "https://crossref.test/works/",
        contact_email="me@example.org",
        introduction_chars=2000,
        session=http,
    )

    result = processor.process(str(pdf))

    expected = tmp_path / "2021_Doe_NatBiotech.pdf"
    assert result.new_path == str(expected)
    assert expected.exists()
    assert not pdf.exists()
    assert result.metadata.author == "Doe"
    assert result.introduction.strip().startswith("CRISPR reduces")

    url, headers = http.calls[0]
    assert url == "https://crossref.test/works/10.1038/nbt.1234"
    assert "mailto:me@example.org" in headers["User-Agent"]


def test_process_returns_none_without_doi(tmp_path, monkeypatch):
    pdf = tmp_path / "a.pdf"
    pdf.write_bytes(b"%PDF")
    monkeypatch.setattr(extraction, "extract_pdf_text", lambda path: "no identifiers")
    http = DummyHttp(DummyResponse(json_data={}))

    assert PdfMetadataProcessor("https://crossref.test", session=http).process(str(pdf)) is None
    assert http.calls == []
    assert pdf.exists()


def test_process_returns_none_for_unreadable_pdf(tmp_path):
    pdf = tmp_path / "broken.pdf"
    pdf.write_bytes(b"not a pdf at all")
    http = DummyHttp(DummyResponse(json_data={}))

    assert PdfMetadataProcessor("https://crossref.test", session=http).process(str(pdf)) is None


def test_process_returns_none_when_crossref_has_no_record(tmp_path, monkeypatch):
    pdf = tmp_path / "a.pdf"
    pdf.write_bytes(b"%PDF")
    monkeypatch.setattr(extraction, "extract_pdf_text", lambda path: PDF_TEXT)
    http = DummyHttp(DummyResponse(status_code=404))

    assert PdfMetadataProcessor("https://crossref.test", session=http).process(str(pdf)) is None
    assert pdf.exists()


def test_crossref_transport_error_raises(tmp_path, monkeypatch):
    pdf = tmp_path / "a.pdf"
    pdf.write_bytes(b"%PDF")
    monkeypatch.setattr(extraction, "extract_pdf_text", lambda path: PDF_TEXT)
    http = DummyHttp(requests.ConnectionError("down"))

    with pytest.raises(ExtractionServiceError):
        PdfMetadataProcessor("https://crossref.test", session=http).process(str(pdf))


def test_available_path_adds_suffix_when_name_is_taken(tmp_path):
    source = tmp_path / "a.pdf"
    target = tmp_path / "2021_Doe_Nature.pdf"

    assert available_path(target, source) == target

    target.write_bytes(b"first")
    (tmp_path / "2021_Doe_Nature_1.pdf").write_bytes(b"second")

    assert available_path(target, source) == tmp_path / "2021_Doe_Nature_2.pdf"
    assert available_path(target, target) == target


def test_process_keeps_earlier_paper_with_same_metadata(tmp_path, monkeypatch):
    first = tmp_path / "paper_first.pdf"
    second = tmp_path / "paper_second.pdf"
    first.write_bytes(b"first")
    second.write_bytes(b"second")
    monkeypatch.setattr(extraction, "extract_pdf_text", lambda path: PDF_TEXT)
    http = DummyHttp(DummyResponse(json_data={"message": CROSSREF_MESSAGE}))
    processor = PdfMetadataProcessor("https://crossref.test", session=http)

    one = processor.process(str(first))
    two = processor.process(str(second))

    assert one.new_path == str(tmp_path / "2021_Doe_NatBiotech.pdf")
    assert two.new_path == str(tmp_path / "2021_Doe_NatBiotech_1.pdf")
    assert (tmp_path / "2021_Doe_NatBiotech.pdf").read_bytes() == b"first"
    assert (tmp_path / "2021_Doe_NatBiotech_1.pdf").read_bytes() == b"second"
