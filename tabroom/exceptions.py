"""Errors raised by the tabroom services. Routes translate them to HTTP responses."""
from __future__ import annotations

from typing import Optional


class TabroomError(ValueError):
    """Base class for all operator-facing service errors."""


class NotFoundError(TabroomError):
    """A referenced tournament, round, debate or pool entry does not exist."""


class InsufficientInputError(TabroomError):
    """Setup data is missing (no rooms, no eligible teams, no breaking teams).

    Raised before anything is written; fix the setup data and retry.
    """


class DraftValidationError(TabroomError):
    """A draft pairing or ballot is inconsistent and cannot be written."""


class ConfirmationRequired(TabroomError):
    """The action is destructive or leaves pairings unchaired.

    Repeat the call with the named confirmation flag set to proceed.
    """

    def __init__(self, message: str, flag: str):
        super().__init__(message)
        self.flag = flag


class ProgressionError(TabroomError):
    """An elimination step was requested before its preconditions hold."""

    def __init__(self, message: str, round_id: Optional[int] = None, round_name: Optional[str] = None):
        super().__init__(message)
        self.round_id = round_id
        self.round_name = round_name
