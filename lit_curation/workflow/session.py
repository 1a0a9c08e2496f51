# lit_curation/workflow/session.py

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List, Optional, Union

from lit_curation.errors import PreconditionError, SessionBusyError
from lit_curation.models import Claim, Paper
from lit_curation.workflow.stages import Stage, StageController
from lit_curation.workflow.store import ItemStore

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Published updates
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionUpdate:
    """
    One notification sent to session subscribers.

    kind:
        "paper", "claim", "papers", "keywords" or "status".
    item_id / item:
        For per-item updates, the id and a deep copy of the item as it was
        when published, so listeners never see a later mutation.
    message:
        The session status message at publish time.
    """
    kind: str
    item_id: Optional[str] = None
    item: Any = None
    message: Optional[str] = None


Listener = Callable[[SessionUpdate], None]


def parse_keywords(raw: str) -> List[str]:
    """Split a comma-delimited keyword string; trims and drops empties, keeps duplicates."""
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


# -----------------------------------------------------------------------------
# Session
# -----------------------------------------------------------------------------

class Session:
    """
    Single owner of one curation run's state.

    Batch processors receive the session explicitly, mutate one item at a
    time and call `publish()` after each change. The `busy` flag marks a
    running batch; `batch()` refuses to start a second one.

    Batches may run in a worker thread. Multi-field item updates are
    applied while holding `lock`, and readers that snapshot the session
    (`publish()`, the HTTP views, the review) take the same lock, so a
    reader never sees a half-updated item.
    """

    def __init__(self) -> None:
        self.topic: str = ""
        self.keywords: str = ""
        self.papers: ItemStore[Paper] = ItemStore()
        self.claims: ItemStore[Claim] = ItemStore()
        self.stages = StageController()
        self.busy: bool = False
        self.running: Optional[str] = None
        self.status_message: str = "Ready"
        self.last_outcome: Any = None
        self._listeners: List[Listener] = []
        self.lock = threading.RLock()

    # ------------------------------------------------------------------
    # Stage
    # ------------------------------------------------------------------
    @property
    def stage(self) -> Stage:
        return self.stages.current

    def go_to(self, stage: Union[Stage, int, str]) -> Stage:
        return self.stages.go_to(stage)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(
        self,
        kind: str,
        item: Optional[Union[Paper, Claim]] = None,
    ) -> SessionUpdate:
        with self.lock:
            update = SessionUpdate(
                kind=kind,
                item_id=getattr(item, "id", None),
                item=copy.deepcopy(item) if item is not None else None,
                message=self.status_message,
            )
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception:  # noqa: BLE001
                logger.exception("Session listener failed on %s update", kind)
        return update

    def set_status(self, message: str) -> None:
        self.status_message = message
        self.publish("status")

    # ------------------------------------------------------------------
    # Busy guard
    # ------------------------------------------------------------------
    @contextmanager
    def batch(self, name: str) -> Iterator["Session"]:
        if self.busy:
            raise SessionBusyError(self.running)

        self.busy = True
        self.running = name
        try:
            yield self
        finally:
            self.busy = False
            self.running = None

    def _ensure_idle(self) -> None:
        if self.busy:
            raise SessionBusyError(self.running)

    # ------------------------------------------------------------------
    # Topic / keywords
    # ------------------------------------------------------------------
    def set_topic(self, topic: str) -> None:
        self.topic = topic

    def set_keywords(self, keywords: str) -> None:
        self.keywords = keywords
        self.publish("keywords")

    @property
    def keyword_list(self) -> List[str]:
        return parse_keywords(self.keywords)

    # ------------------------------------------------------------------
    # Collection editing (refused while a batch owns the collections)
    # ------------------------------------------------------------------
    def add_claim(self, text: str) -> Claim:
        if not text or not text.strip():
            raise PreconditionError("Claim text must not be empty")
        self._ensure_idle()

        claim = self.claims.append(Claim(text=text))
        self.publish("claim", claim)
        return claim

    def add_dois(self, lines: Iterable[str]) -> List[Paper]:
        """
        Queue papers from manually entered DOIs, one per line.
        The DOI doubles as the title until extraction renames the file.
        """
        self._ensure_idle()

        papers = [
            Paper(title=doi, doi=doi)
            for doi in (line.strip() for line in lines)
            if doi
        ]
        self.papers.extend(papers)
        if papers:
            self.publish("papers")
        return papers

    def remove_paper(self, paper_id: str) -> Paper:
        self._ensure_idle()
        paper = self.papers.remove(paper_id)
        self.publish("papers")
        return paper

    def remove_claim(self, claim_id: str) -> Claim:
        self._ensure_idle()
        claim = self.claims.remove(claim_id)
        self.publish("claim", claim)
        return claim

    def requeue_failed_papers(self) -> int:
        """Make every Failed paper eligible again for the batch that failed it."""
        self._ensure_idle()

        count = 0
        for paper in self.papers.filter(lambda p: p.status.is_failed):
            paper.requeue()
            self.publish("paper", paper)
            count += 1
        return count
