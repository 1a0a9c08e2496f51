# tests/test_orchestrator.py

import pytest

from lit_curation.config.settings import Settings
from lit_curation.errors import CurationError, PreconditionError, SessionBusyError
from lit_curation.models import ClaimState, Paper, PaperState, PaperStatus
from lit_curation.services.assistant import OpenRouterAssistant
from lit_curation.services.download import OpenAccessDownloader
from lit_curation.services.extraction import PdfMetadataProcessor
from lit_curation.services.pubmed import PubMedClient
from lit_curation.workflow.orchestrator import Orchestrator


class RecordingService:
    """Stands in for every collaborator and records what it was asked."""

    def __init__(self):
        self.calls = []

    def generate_keywords(self, topic):
        self.calls.append(("keywords", topic))
        return ["CRISPR", "off-target"]

    def search(self, keywords, logic, field, max_results):
        self.calls.append(("search", max_results))
        return [Paper(title="Paper A", doi="10.1/a")]

    def download(self, doi, target_dir):
        self.calls.append(("download", doi))
        return f"{target_dir}/a.pdf"

    def process(self, local_path):
        self.calls.append(("process", local_path))
        return None

    def verify_claim(self, claim, context):
        self.calls.append(("verify", claim))
        return True


def _orchestrator(tmp_path, service=None, **overrides):
    service = service or RecordingService()
    kwargs = dict(
        keyword_generator=service,
        searcher=service,
        downloader=service,
        processor=service,
        verifier=service,
        download_dir=tmp_path,
        max_results=7,
    )
    kwargs.update(overrides)
    return Orchestrator(**kwargs), service


def test_generate_keywords_requires_topic(tmp_path):
    orch, service = _orchestrator(tmp_path)
    orch.session.set_topic("   ")

    with pytest.raises(PreconditionError):
        orch.generate_keywords()

    assert service.calls == []
    assert orch.session.busy is False


def test_search_requires_keywords(tmp_path):
    orch, service = _orchestrator(tmp_path)
    orch.session.set_keywords(" , ")

    with pytest.raises(PreconditionError):
        orch.search()

    assert service.calls == []


def test_search_uses_configured_limit_unless_overridden(tmp_path):
    orch, service = _orchestrator(tmp_path)
    orch.session.set_keywords("CRISPR")

    orch.search()
    orch.search(max_results=3)

    assert service.calls == [("search", 7), ("search", 3)]
    assert len(orch.session.papers) == 2


def test_busy_session_rejects_batches_without_calling_services(tmp_path):
    orch, service = _orchestrator(tmp_path)
    orch.session.set_topic("topic")
    orch.session.add_dois(["10.1/a"])
    orch.session.busy = True

    for run in (orch.generate_keywords, orch.download, orch.process, orch.verify):
        with pytest.raises(SessionBusyError):
            run()

    assert service.calls == []


def test_missing_service_is_reported(tmp_path):
    orch, _ = _orchestrator(tmp_path, downloader=None)

    with pytest.raises(CurationError, match="download"):
        orch.download()


def test_full_run(tmp_path):
    orch, service = _orchestrator(tmp_path)
    session = orch.session
    session.set_topic("CRISPR safety")

    orch.generate_keywords()
    assert session.keyword_list == ["CRISPR", "off-target"]

    orch.search()
    orch.download()
    paper = session.papers.to_list()[0]
    assert paper.status == PaperStatus.of(PaperState.DOWNLOADED)
    assert paper.local_path == f"{tmp_path}/a.pdf"

    # process returns None, so nothing becomes Ready and the claim is rejected
    orch.process()
    assert paper.status.state is PaperState.DOWNLOADED

    claim = session.add_claim("CRISPR is safe")
    orch.verify()
    assert claim.verification_status.state is ClaimState.REJECTED
    assert orch.review() == []
    assert session.busy is False


def test_from_settings_wires_bundled_clients(tmp_path):
    cfg = Settings(DATA_DIR=tmp_path, SEARCH_MAX_RESULTS=4)

    orch = Orchestrator.from_settings(settings=cfg)

    assert isinstance(orch.searcher, PubMedClient)
    assert isinstance(orch.downloader, OpenAccessDownloader)
    assert isinstance(orch.processor, PdfMetadataProcessor)
    assert isinstance(orch.keyword_generator, OpenRouterAssistant)
    assert orch.verifier is orch.keyword_generator
    assert orch.download_dir == tmp_path / "downloads"
    assert orch.max_results == 4
