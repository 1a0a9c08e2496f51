# lit_curation/workflow/stages.py

from __future__ import annotations

from enum import IntEnum
from typing import Union

from lit_curation.errors import UnknownStageError


class Stage(IntEnum):
    TOPIC_DEFINITION = 0
    FETCHING_PAPERS = 1
    DOWNLOADING_PDFS = 2
    PROCESSING_PDFS = 3
    CLAIM_VERIFICATION = 4
    FINAL_REVIEW = 5

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    Stage.TOPIC_DEFINITION: "TopicDefinition",
    Stage.FETCHING_PAPERS: "FetchingPapers",
    Stage.DOWNLOADING_PDFS: "DownloadingPDFs",
    Stage.PROCESSING_PDFS: "ProcessingPDFs",
    Stage.CLAIM_VERIFICATION: "ClaimVerification",
    Stage.FINAL_REVIEW: "FinalReview",
}


def resolve_stage(value: Union[Stage, int, str]) -> Stage:
    """
    Accept a Stage, its ordinal, its enum name ("FINAL_REVIEW") or its
    label ("FinalReview"); names are matched case-insensitively.
    """
    if isinstance(value, Stage):
        return value

    if isinstance(value, int):
        try:
            return Stage(value)
        except ValueError:
            raise UnknownStageError(f"Unknown stage ordinal {value!r}") from None

    text = str(value).strip()
    if text.isdigit():
        return resolve_stage(int(text))

    wanted = text.replace("-", "_").replace(" ", "_").lower()
    for stage in Stage:
        if wanted in (stage.name.lower(), stage.label.lower()):
            return stage

    raise UnknownStageError(f"Unknown stage {value!r}")


class StageController:
    """
    Holds the current pipeline stage.

    Stages are views onto one running session, not gates: every jump is
    allowed, whatever state the papers and claims are in.
    """

    def __init__(self, initial: Stage = Stage.TOPIC_DEFINITION) -> None:
        self._current = initial

    @property
    def current(self) -> Stage:
        return self._current

    def go_to(self, stage: Union[Stage, int, str]) -> Stage:
        self._current = resolve_stage(stage)
        return self._current

    def next(self) -> Stage:
        if self._current < Stage.FINAL_REVIEW:
            self._current = Stage(self._current + 1)
        return self._current

    def back(self) -> Stage:
        if self._current > Stage.TOPIC_DEFINITION:
            self._current = Stage(self._current - 1)
        return self._current
