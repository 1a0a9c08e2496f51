# lit_curation/models/status.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PaperState(str, Enum):
    """
    Lifecycle labels for a paper, in pipeline order.

    FAILED sits outside the ordering; it can be entered from any other
    state and is only left through an explicit requeue.
    """
    PENDING = "Pending"
    DOWNLOADING = "Downloading"
    DOWNLOADED = "Downloaded"
    RENAMING = "Renaming"
    RENAMED = "Renamed"
    EXTRACTING = "Extracting"
    READY = "Ready"
    FAILED = "Failed"


class ClaimState(str, Enum):
    PENDING = "Pending"
    CHECKING = "Checking"
    VERIFIED = "Verified"
    REJECTED = "Rejected"
    FAILED = "Failed"


_PAPER_ORDER = {
    PaperState.PENDING: 0,
    PaperState.DOWNLOADING: 1,
    PaperState.DOWNLOADED: 2,
    PaperState.RENAMING: 3,
    PaperState.RENAMED: 4,
    PaperState.EXTRACTING: 5,
    PaperState.READY: 6,
}


@dataclass(frozen=True)
class PaperStatus:
    """
    Tagged paper status: a state label, plus a message for the FAILED arm.

    Build instances with the class helpers rather than by hand:

        PaperStatus.pending()
        PaperStatus.of(PaperState.READY)
        PaperStatus.failed("Download failed")
    """

    state: PaperState
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if self.state is PaperState.FAILED and self.message is None:
            raise ValueError("Failed status requires a message")
        if self.state is not PaperState.FAILED and self.message is not None:
            raise ValueError(f"{self.state.value} status cannot carry a message")

    @classmethod
    def of(cls, state: PaperState) -> "PaperStatus":
        return cls(state=state)

    @classmethod
    def pending(cls) -> "PaperStatus":
        return cls(state=PaperState.PENDING)

    @classmethod
    def failed(cls, message: str) -> "PaperStatus":
        return cls(state=PaperState.FAILED, message=str(message))

    @property
    def is_failed(self) -> bool:
        return self.state is PaperState.FAILED

    @property
    def rank(self) -> Optional[int]:
        """Position in the pipeline order; None for FAILED."""
        return _PAPER_ORDER.get(self.state)

    def can_advance_to(self, new: "PaperStatus") -> bool:
        """
        True if moving from this status to `new` keeps the paper monotonic:
        never backwards, and never out of FAILED.
        """
        if self.is_failed:
            return False
        if new.is_failed:
            return True
        return new.rank >= self.rank  # type: ignore[operator]

    def __str__(self) -> str:
        if self.is_failed:
            return f"Failed: {self.message}"
        return self.state.value


@dataclass(frozen=True)
class ClaimStatus:
    """Tagged claim verification status; only FAILED carries a message."""

    state: ClaimState
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if self.state is ClaimState.FAILED and self.message is None:
            raise ValueError("Failed status requires a message")
        if self.state is not ClaimState.FAILED and self.message is not None:
            raise ValueError(f"{self.state.value} status cannot carry a message")

    @classmethod
    def of(cls, state: ClaimState) -> "ClaimStatus":
        return cls(state=state)

    @classmethod
    def pending(cls) -> "ClaimStatus":
        return cls(state=ClaimState.PENDING)

    @classmethod
    def failed(cls, message: str) -> "ClaimStatus":
        return cls(state=ClaimState.FAILED, message=str(message))

    @property
    def is_failed(self) -> bool:
        return self.state is ClaimState.FAILED

    def __str__(self) -> str:
        if self.is_failed:
            return f"Failed: {self.message}"
        return self.state.value
