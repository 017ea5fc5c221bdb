from ._main import build_arg_parser
from .engine import QuizEngine, Reveal
from .errors import (
    NoQuestionsFound,
    QuizError,
    SheetSelectionRequired,
    SourceUnavailable,
)
from .models import (
    GroupStat,
    Option,
    Question,
    QuestionLayout,
    QuestionResult,
    QuizMode,
    SessionStatus,
    Summary,
    Timing,
)
from .normalizer import normalize_row, normalize_rows, parse_csv_rows
from .session import QuizSessionResult, render_summary, run_quiz_session
from .sources import (
    LoadSettings,
    load_question_bank,
    parse_sheet_link,
    resolve_sources,
)
from .summary import build_summary
from .view import QuestionView, QuizApp

__all__ = [
    "build_arg_parser",
    "QuizEngine",
    "Reveal",
    "QuizError",
    "SourceUnavailable",
    "NoQuestionsFound",
    "SheetSelectionRequired",
    "QuizMode",
    "QuestionLayout",
    "SessionStatus",
    "Option",
    "Question",
    "GroupStat",
    "QuestionResult",
    "Timing",
    "Summary",
    "parse_csv_rows",
    "normalize_row",
    "normalize_rows",
    "LoadSettings",
    "parse_sheet_link",
    "resolve_sources",
    "load_question_bank",
    "build_summary",
    "run_quiz_session",
    "render_summary",
    "QuizSessionResult",
    "QuizApp",
    "QuestionView",
]
