"""Score a finished session into a :class:`~drill_deck.quiz.models.Summary`.

Everything here is a pure function of the questions, the answer map and the
session metadata; calling :func:`build_summary` twice with the same inputs
yields equal summaries.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import (
    GroupStat,
    Question,
    QuestionResult,
    QuizMode,
    Summary,
    Timing,
)

__all__ = [
    "STRENGTH_THRESHOLD",
    "FOCUS_THRESHOLD",
    "MAX_HIGHLIGHTS",
    "build_summary",
    "build_question_results",
    "group_by_submodule",
    "group_by_tag",
    "pick_strengths",
    "pick_focus",
    "format_percent",
]

STRENGTH_THRESHOLD = 0.75
FOCUS_THRESHOLD = 0.6
MAX_HIGHLIGHTS = 3


def build_summary(
    questions: Sequence[Question],
    answers: Mapping[str, str],
    *,
    mode: QuizMode,
    timing: Optional[Timing] = None,
) -> Summary:
    results = build_question_results(questions, answers)
    total = len(results)
    correct = sum(1 for result in results if result.was_correct)
    skipped = sum(1 for result in results if result.skipped)

    by_submodule = group_by_submodule(questions, answers)
    by_tag = group_by_tag(questions, answers)
    highlight_groups = by_submodule or by_tag

    return Summary(
        mode=mode,
        total=total,
        correct=correct,
        incorrect=total - correct - skipped,
        skipped=skipped,
        accuracy=(correct / total) if total else 0.0,
        strengths=pick_strengths(highlight_groups),
        focus=pick_focus(highlight_groups),
        by_submodule=by_submodule,
        by_tag=by_tag,
        questions=results,
        timing=timing,
    )


def build_question_results(
    questions: Sequence[Question], answers: Mapping[str, str]
) -> Tuple[QuestionResult, ...]:
    results: List[QuestionResult] = []
    for question in questions:
        selected = answers.get(question.id) or None
        chosen = question.option(selected)
        results.append(
            QuestionResult(
                question_id=question.id,
                prompt=question.prompt,
                module=question.module,
                submodule=question.submodule,
                tags=tuple(question.tags),
                selected=selected,
                selected_label=chosen.label if chosen else None,
                correct_answer=question.correct_option,
                correct_label=question.correct.label,
                was_correct=question.is_correct(selected),
                difficulty=question.difficulty,
                explanation=question.explanation,
            )
        )
    return tuple(results)


def group_by_submodule(
    questions: Sequence[Question], answers: Mapping[str, str]
) -> Tuple[GroupStat, ...]:
    """Accuracy per (module, submodule), best first."""

    tallies: Dict[Tuple[str, str], List[int]] = {}
    for question in questions:
        tally = tallies.setdefault((question.module, question.submodule), [0, 0])
        _count(tally, question, answers)
    stats = (
        GroupStat(
            label=submodule,
            correct=correct,
            total=total,
            module=module,
            submodule=submodule,
        )
        for (module, submodule), (correct, total) in tallies.items()
    )
    return _rank(stats)


def group_by_tag(
    questions: Sequence[Question], answers: Mapping[str, str]
) -> Tuple[GroupStat, ...]:
    """Accuracy per tag, best first. A question counts once per tag."""

    tallies: Dict[str, List[int]] = {}
    for question in questions:
        for tag in question.tags:
            _count(tallies.setdefault(tag, [0, 0]), question, answers)
    stats = (
        GroupStat(label=tag, correct=correct, total=total)
        for tag, (correct, total) in tallies.items()
    )
    return _rank(stats)


def pick_strengths(groups: Sequence[GroupStat]) -> Tuple[str, ...]:
    return _highlight(
        group for group in groups if group.accuracy >= STRENGTH_THRESHOLD
    )


def pick_focus(groups: Sequence[GroupStat]) -> Tuple[str, ...]:
    # Same best-first order as strengths: the mildest weak spots lead.
    return _highlight(
        group for group in groups if group.accuracy < FOCUS_THRESHOLD
    )


def format_percent(fraction: float) -> str:
    """Render ``fraction`` as a percentage rounded to a tenth, e.g. ``66.7``.

    Halves round up and whole numbers drop the trailing ``.0``.
    """

    tenths = math.floor(fraction * 1000 + 0.5) / 10
    return f"{tenths:g}"


def _count(
    tally: List[int], question: Question, answers: Mapping[str, str]
) -> None:
    if question.is_correct(answers.get(question.id)):
        tally[0] += 1
    tally[1] += 1


def _rank(stats: Iterable[GroupStat]) -> Tuple[GroupStat, ...]:
    # sorted() is stable, so ties keep first-seen order.
    return tuple(sorted(stats, key=lambda stat: stat.accuracy, reverse=True))


def _highlight(groups: Iterable[GroupStat]) -> Tuple[str, ...]:
    picked: List[str] = []
    for group in groups:
        if group.total < 1:
            continue
        picked.append(f"{group.label} ({format_percent(group.accuracy)}%)")
        if len(picked) == MAX_HIGHLIGHTS:
            break
    return tuple(picked)
