# lit_curation/errors.py

from __future__ import annotations

from typing import Optional


class CurationError(Exception):
    """Base class for errors raised by the curation engine."""


class PreconditionError(CurationError, ValueError):
    """
    An operation was requested without its required input
    (empty topic, no usable keywords, blank claim text, ...).

    Raised before any external call is made; no state is mutated.
    """


class SessionBusyError(CurationError):
    """A batch was requested while another one is still running."""

    def __init__(self, running: Optional[str] = None) -> None:
        message = "A batch is already running"
        if running:
            message = f"{message} ({running})"
        super().__init__(message)
        self.running = running


class UnknownStageError(CurationError, KeyError):
    """A stage name / ordinal did not resolve to one of the six stages."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown stage"


class UnknownItemError(CurationError, KeyError):
    """No paper/claim with the given id exists in the collection."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown item"


class DuplicateItemError(CurationError):
    """An item with the same id is already present in the collection."""


class StatusTransitionError(CurationError):
    """
    A paper status change would move backwards, or leave the absorbing
    Failed state without an explicit requeue.
    """
