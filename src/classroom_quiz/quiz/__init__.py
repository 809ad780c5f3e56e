from ._main import build_arg_parser, build_catalog, build_sink
from .answers import AnswerStore, AnswerStoreFrozen
from .catalog import (
    CatalogContext,
    DataUnavailable,
    FileQuizCatalog,
    HttpQuizCatalog,
    QuizCatalog,
    filter_quizzes,
    find_quiz,
)
from .config import QuizConfig, QuizConfigError, load_config
from .models import (
    CompletionTrigger,
    InvalidQuizDefinition,
    Question,
    QuestionKind,
    QuizDefinition,
    ScoreResult,
    Session,
    SessionState,
    validate_quiz,
)
from .results import (
    AttemptRecord,
    BufferedResultSink,
    HttpResultSink,
    JsonlResultSink,
    ResultSink,
    ResultSinkError,
)
from .runner import InvalidTransition, QuizRunner
from .scoring import feedback_message, letter_grade, percentage, score
from .timer import LoopSessionTimer, SessionTimer, format_remaining
from .view import QuestionView, QuizApp

__all__ = [
    "build_arg_parser",
    "build_catalog",
    "build_sink",
    "AnswerStore",
    "AnswerStoreFrozen",
    "CatalogContext",
    "DataUnavailable",
    "FileQuizCatalog",
    "HttpQuizCatalog",
    "QuizCatalog",
    "filter_quizzes",
    "find_quiz",
    "QuizConfig",
    "QuizConfigError",
    "load_config",
    "CompletionTrigger",
    "InvalidQuizDefinition",
    "Question",
    "QuestionKind",
    "QuizDefinition",
    "ScoreResult",
    "Session",
    "SessionState",
    "validate_quiz",
    "AttemptRecord",
    "BufferedResultSink",
    "HttpResultSink",
    "JsonlResultSink",
    "ResultSink",
    "ResultSinkError",
    "InvalidTransition",
    "QuizRunner",
    "score",
    "percentage",
    "letter_grade",
    "feedback_message",
    "LoopSessionTimer",
    "SessionTimer",
    "format_remaining",
    "QuizApp",
    "QuestionView",
]
