"""Errors raised while loading question banks."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .sources import SheetMetadata, SheetOption

__all__ = [
    "QuizError",
    "SourceUnavailable",
    "NoQuestionsFound",
    "SheetSelectionRequired",
]


class QuizError(RuntimeError):
    """Base class for failures reported at the load boundary."""


class SourceUnavailable(QuizError):
    """A CSV or sheet index could not be downloaded."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class NoQuestionsFound(QuizError):
    """A source parsed cleanly but produced no usable questions."""

    def __init__(
        self,
        message: str = "No valid questions were found in the CSV file.",
        *,
        source: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.source = source


class SheetSelectionRequired(Exception):
    """The link points at a multi-sheet workbook and no sheet was chosen.

    Not a failure: callers catch it, ask which sheets to load, and resolve
    the link again with the chosen gids.
    """

    def __init__(
        self,
        sheets: Sequence["SheetOption"],
        metadata: Optional[Mapping[str, "SheetMetadata"]] = None,
    ) -> None:
        super().__init__(
            f"Select one or more of {len(sheets)} published sheets."
        )
        self.sheets = tuple(sheets)
        self.metadata = dict(metadata or {})
