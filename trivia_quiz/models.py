"""
Core data models for the trivia quiz session.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class Difficulty(Enum):
    """Difficulty levels accepted by the question source."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(Enum):
    """Question formats accepted by the question source."""
    MULTIPLE = "multiple"
    BOOLEAN = "boolean"


class Screen(Enum):
    """Screens the UI shell can show."""
    CONFIGURE = "configure"
    ATTEMPT = "attempt"
    RESULTS = "results"


@dataclass(frozen=True)
class QuizConfiguration:
    """Settings for the next quiz attempt."""
    question_count: int = 10
    category_id: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    question_type: Optional[QuestionType] = None

    def to_api_params(self) -> dict:
        """Build question source request parameters, omitting unset filters."""
        params = {'amount': self.question_count}
        if self.category_id is not None:
            params['category'] = self.category_id
        if self.difficulty is not None:
            params['difficulty'] = self.difficulty.value
        if self.question_type is not None:
            params['type'] = self.question_type.value
        return params


@dataclass(frozen=True)
class Question:
    """A display-ready question with a fixed option order."""
    id: str
    category_label: str
    difficulty_label: str
    prompt: str
    correct_answer: str
    distractors: Tuple[str, ...] = ()
    presented_options: Tuple[str, ...] = ()

    def is_correct(self, option: Optional[str]) -> bool:
        return option is not None and option == self.correct_answer


@dataclass(frozen=True)
class AnswerRecord:
    """The recorded answer for one question."""
    question_id: str
    chosen_option: Optional[str]
    is_correct: bool


@dataclass(frozen=True)
class SessionState:
    """Complete state of a single quiz attempt."""
    configuration: QuizConfiguration = field(default_factory=QuizConfiguration)
    questions: Tuple[Question, ...] = ()
    current_index: int = 0
    answers: Tuple[AnswerRecord, ...] = ()
    is_loading_questions: bool = False
    load_error: Optional[str] = None
    has_started: bool = False
    is_completed: bool = False

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def is_in_progress(self) -> bool:
        return self.has_started and not self.is_completed

    def answer_for(self, question_id: str) -> Optional[AnswerRecord]:
        for record in self.answers:
            if record.question_id == question_id:
                return record
        return None
