"""Turn loosely formatted spreadsheet rows into canonical questions.

Parsing is lenient: a row without a prompt or without any option text is
skipped without complaint. Only a batch that yields nothing at all is an
error (:class:`~drill_deck.quiz.errors.NoQuestionsFound`).
"""

from __future__ import annotations

import csv
import io
import re
from typing import Iterable, List, Mapping, Optional

from .errors import NoQuestionsFound
from .models import Option, Question
from .randomness import RandomSource, SystemRandomSource, fisher_yates

__all__ = [
    "OPTION_SLOTS",
    "DEFAULT_MODULE",
    "DEFAULT_SUBMODULE",
    "parse_csv_rows",
    "parse_tags",
    "normalize_row",
    "normalize_rows",
]

OPTION_SLOTS = ("a", "b", "c", "d")
DEFAULT_MODULE = "General"
DEFAULT_SUBMODULE = "Core"

_TAG_SPLIT = re.compile(r"[,;]+")

RawRow = Mapping[str, Optional[str]]


def parse_csv_rows(text: str) -> List[dict[str, str]]:
    """Parse CSV ``text`` with a header row into dicts.

    Header names are trimmed and lower-cased. Rows whose cells are all blank
    are dropped, as are cells that overflow the header.
    """

    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    rows: List[dict[str, str]] = []
    for raw in reader:
        row = {
            _normalize_key(key): value
            for key, value in raw.items()
            if isinstance(key, str) and isinstance(value, str)
        }
        if any(value.strip() for value in row.values()):
            rows.append(row)
    return rows


def parse_tags(raw: Optional[str]) -> tuple[str, ...]:
    """Split a comma/semicolon separated tag cell into distinct tags."""

    seen: dict[str, None] = {}
    for part in _TAG_SPLIT.split(_clean(raw)):
        tag = part.strip()
        if tag:
            seen.setdefault(tag, None)
    return tuple(seen)


def normalize_row(
    row: RawRow, index: int, rng: RandomSource
) -> Optional[Question]:
    """Build a :class:`Question` from ``row`` or return ``None`` to skip it."""

    fields = {
        _normalize_key(key): value
        for key, value in row.items()
        if isinstance(key, str)
    }
    prompt = _clean(fields.get("question"))
    if not prompt:
        return None

    present: List[tuple[str, str]] = []
    for slot in OPTION_SLOTS:
        label = _clean(fields.get(f"option_{slot}")) or _clean(fields.get(slot))
        if label:
            present.append((slot, label))
    if not present:
        return None

    requested = _clean(fields.get("correct")).lower()
    slots = [slot for slot, _ in present]
    correct_slot = requested if requested in slots else slots[0]

    # Shuffle by original slot, then hand out fresh letters in order.
    fisher_yates(present, rng)
    options = tuple(
        Option(id=OPTION_SLOTS[position], label=label)
        for position, (_, label) in enumerate(present)
    )
    shuffled_slots = [slot for slot, _ in present]
    correct_option = OPTION_SLOTS[shuffled_slots.index(correct_slot)]

    return Question(
        id=f"{rng.token()}-{index}",
        module=_clean(fields.get("module")) or DEFAULT_MODULE,
        submodule=_clean(fields.get("submodule")) or DEFAULT_SUBMODULE,
        prompt=prompt,
        options=options,
        correct_option=correct_option,
        explanation=_clean(fields.get("explanation")) or None,
        difficulty=_clean(fields.get("difficulty")) or None,
        tags=parse_tags(fields.get("tags")),
    )


def normalize_rows(
    rows: Iterable[RawRow],
    rng: Optional[RandomSource] = None,
    *,
    source: Optional[str] = None,
) -> List[Question]:
    """Normalize every row, dropping malformed ones.

    Raises :class:`NoQuestionsFound` when no row survives.
    """

    rng = rng or SystemRandomSource()
    questions: List[Question] = []
    for index, row in enumerate(rows):
        question = normalize_row(row, index, rng)
        if question is not None:
            questions.append(question)
    if not questions:
        raise NoQuestionsFound(source=source)
    return questions


def _normalize_key(key: str) -> str:
    return key.strip().lower()


def _clean(value: Optional[str]) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()
