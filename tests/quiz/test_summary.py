from __future__ import annotations

from fixtures import make_question

from drill_deck.quiz.models import QuizMode, Timing
from drill_deck.quiz.summary import (
    MAX_HIGHLIGHTS,
    build_summary,
    format_percent,
    group_by_tag,
)


def test_submodule_groups_are_sorted_best_first():
    questions = [
        make_question("q1", submodule="X"),
        make_question("q2", submodule="X"),
        make_question("q3", submodule="Y"),
    ]
    answers = {"q1": "a", "q2": "b", "q3": "a"}

    summary = build_summary(questions, answers, mode=QuizMode.LEARNING)

    assert [g.label for g in summary.by_submodule] == ["Y", "X"]
    assert [g.accuracy for g in summary.by_submodule] == [1.0, 0.5]
    assert summary.by_submodule[1].module == "Networking"
    assert summary.strengths == ("Y (100%)",)
    assert summary.focus == ("X (50%)",)


def test_counts_partition_the_question_set():
    questions = [make_question(f"q{i}") for i in range(5)]
    answers = {"q0": "a", "q1": "b", "q2": "a"}

    summary = build_summary(questions, answers, mode=QuizMode.TIMED)

    assert summary.total == 5
    assert (summary.correct, summary.incorrect, summary.skipped) == (2, 1, 2)
    assert summary.correct + summary.incorrect + summary.skipped == summary.total
    assert summary.answered == 3
    assert summary.accuracy == 0.4
    skipped = [r for r in summary.questions if r.skipped]
    assert [r.question_id for r in skipped] == ["q3", "q4"]
    assert all(not r.was_correct for r in skipped)


def test_results_carry_labels_and_explanations():
    question = make_question("q1", correct="b", explanation="Bravo wins.")

    summary = build_summary([question], {"q1": "c"}, mode=QuizMode.LEARNING)

    (result,) = summary.questions
    assert result.selected == "c"
    assert result.selected_label == "Charlie"
    assert result.correct_answer == "b"
    assert result.correct_label == "Bravo"
    assert result.explanation == "Bravo wins."
    assert result.was_correct is False


def test_summary_is_deterministic():
    questions = [
        make_question("q1", tags=("dns",)),
        make_question("q2", submodule="Switching", tags=("dns", "vlan")),
    ]
    answers = {"q1": "a"}
    timing = Timing(elapsed_seconds=30, limit_seconds=60)

    first = build_summary(questions, answers, mode=QuizMode.TIMED, timing=timing)
    second = build_summary(
        questions, answers, mode=QuizMode.TIMED, timing=timing
    )

    assert first == second
    assert first.timing == timing


def test_each_tag_is_counted_independently():
    questions = [
        make_question("q1", tags=("dns", "udp")),
        make_question("q2", tags=("dns",)),
    ]

    groups = group_by_tag(questions, {"q1": "a", "q2": "b"})

    stats = {g.label: (g.correct, g.total) for g in groups}
    assert stats == {"dns": (1, 2), "udp": (1, 1)}
    assert [g.label for g in groups] == ["udp", "dns"]


def test_highlights_are_capped():
    questions = [
        make_question(f"q{i}", submodule=f"S{i}") for i in range(5)
    ]
    all_right = {q.id: "a" for q in questions}
    all_wrong = {q.id: "b" for q in questions}

    strong = build_summary(questions, all_right, mode=QuizMode.LEARNING)
    weak = build_summary(questions, all_wrong, mode=QuizMode.LEARNING)

    assert len(strong.strengths) == MAX_HIGHLIGHTS
    assert strong.focus == ()
    assert strong.strengths[0] == "S0 (100%)"
    assert len(weak.focus) == MAX_HIGHLIGHTS
    assert weak.strengths == ()


def test_middle_band_is_neither_strength_nor_focus():
    questions = [make_question(f"q{i}", submodule="Mid") for i in range(3)]

    summary = build_summary(
        questions, {"q0": "a", "q1": "a", "q2": "b"}, mode=QuizMode.LEARNING
    )

    assert summary.strengths == ()
    assert summary.focus == ()


def test_empty_question_set():
    summary = build_summary([], {}, mode=QuizMode.LEARNING)

    assert summary.total == 0
    assert summary.accuracy == 0.0
    assert summary.by_submodule == ()
    assert summary.strengths == ()
    assert summary.focus == ()


def test_format_percent_rounds_to_tenths():
    assert format_percent(2 / 3) == "66.7"
    assert format_percent(0.5) == "50"
    assert format_percent(1.0) == "100"
    assert format_percent(0.125) == "12.5"
    assert format_percent(0.0) == "0"
