"""Shared testing fixtures for the classroom_quiz test suite."""

from .quizzes import make_question, make_quiz, make_record  # noqa: F401
from .timers import ManualTimer, ManualTimerFactory  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "ManualTimer",
    "ManualTimerFactory",
    "WorkspaceBuilder",
    "build_tree",
    "make_question",
    "make_quiz",
    "make_record",
]
