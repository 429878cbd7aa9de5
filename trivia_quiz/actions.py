"""
Actions accepted by the session transition function.

Every state change is expressed as one of these values and applied through
``session_reducer.transition``.
"""
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .models import AnswerRecord, Question, QuizConfiguration


@dataclass(frozen=True)
class SetConfiguration:
    configuration: QuizConfiguration


@dataclass(frozen=True)
class SetLoading:
    is_loading: bool


@dataclass(frozen=True)
class SetError:
    message: Optional[str]


@dataclass(frozen=True)
class SetQuestions:
    questions: Tuple[Question, ...]

    def __post_init__(self):
        # Accept any sequence but store an immutable copy
        object.__setattr__(self, 'questions', tuple(self.questions))


@dataclass(frozen=True)
class StartSession:
    pass


@dataclass(frozen=True)
class SetCurrentQuestion:
    index: int


@dataclass(frozen=True)
class RecordAnswer:
    record: AnswerRecord


@dataclass(frozen=True)
class CompleteSession:
    pass


@dataclass(frozen=True)
class ResetSession:
    pass


QuizAction = Union[
    SetConfiguration,
    SetLoading,
    SetError,
    SetQuestions,
    StartSession,
    SetCurrentQuestion,
    RecordAnswer,
    CompleteSession,
    ResetSession,
]
