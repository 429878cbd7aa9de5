"""
Timed trivia quiz session: state, transitions, countdown, scoring and screen guard.
"""
from .access_guard import GuardDecision, guard
from .models import AnswerRecord, Difficulty, Question, QuestionType, QuizConfiguration, Screen, SessionState
from .scoring import percentage, progress, score
from .session_reducer import initial_state, transition

__version__ = "1.0.0"

__all__ = [
    "AnswerRecord",
    "Difficulty",
    "GuardDecision",
    "Question",
    "QuestionType",
    "QuizConfiguration",
    "Screen",
    "SessionState",
    "guard",
    "initial_state",
    "percentage",
    "progress",
    "score",
    "transition",
]
