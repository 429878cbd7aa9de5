"""
Pure state transitions for a quiz session.

``transition`` never mutates its input and never raises; an action it does
not recognise returns the state unchanged.
"""
import logging
from dataclasses import replace
from typing import Optional

from .actions import (
    CompleteSession,
    RecordAnswer,
    ResetSession,
    SetConfiguration,
    SetCurrentQuestion,
    SetError,
    SetLoading,
    SetQuestions,
    StartSession,
)
from .models import AnswerRecord, QuizConfiguration, SessionState

logger = logging.getLogger(__name__)


def initial_state(configuration: Optional[QuizConfiguration] = None) -> SessionState:
    """
    Build a fresh session state.

    Args:
        configuration: Configuration to carry into the new state, defaults if None

    Returns:
        SessionState with every other field at its initial value
    """
    if configuration is None:
        configuration = QuizConfiguration()
    return SessionState(configuration=configuration)


def upsert_answer(answers, record: AnswerRecord):
    """Replace the answer for ``record.question_id`` in place, or append it."""
    updated = list(answers)
    for position, existing in enumerate(updated):
        if existing.question_id == record.question_id:
            updated[position] = record
            return tuple(updated)
    updated.append(record)
    return tuple(updated)


def transition(state: SessionState, action) -> SessionState:
    """
    Apply a single action to a session state.

    Args:
        state: Current session state
        action: One of the action values from ``trivia_quiz.actions``

    Returns:
        The next session state
    """
    if isinstance(action, SetConfiguration):
        new_state = replace(state, configuration=action.configuration)

    elif isinstance(action, SetLoading):
        new_state = replace(state, is_loading_questions=bool(action.is_loading))

    elif isinstance(action, SetError):
        new_state = replace(state, load_error=action.message)

    elif isinstance(action, SetQuestions):
        new_state = replace(
            state,
            questions=tuple(action.questions),
            current_index=0,
            answers=(),
            is_completed=False,
        )

    elif isinstance(action, StartSession):
        new_state = replace(state, has_started=True, is_completed=False, load_error=None)

    elif isinstance(action, SetCurrentQuestion):
        # Range is checked by the dispatcher, not here
        new_state = replace(state, current_index=action.index)

    elif isinstance(action, RecordAnswer):
        new_state = replace(state, answers=upsert_answer(state.answers, action.record))

    elif isinstance(action, CompleteSession):
        new_state = replace(state, is_completed=True, has_started=False)

    elif isinstance(action, ResetSession):
        new_state = initial_state(state.configuration)

    else:
        logger.debug(f"Ignoring unrecognised action {action!r}")
        return state

    logger.debug(f"Applied {type(action).__name__}")
    return new_state
