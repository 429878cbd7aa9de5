"""
Score and progress derivations over a session state.

All functions are read-only and return degenerate zero values before any
question has been loaded.
"""
import math
from typing import Dict, List

from .models import SessionState


def score(state: SessionState) -> int:
    """Number of correctly answered questions."""
    return sum(1 for record in state.answers if record.is_correct)


def progress(state: SessionState) -> int:
    """1-based position of the current question, bounded by the question count."""
    return min(state.current_index + 1, len(state.questions))


def percentage(state: SessionState) -> int:
    """
    Score as a whole percentage of the question count.

    Halves round up, so 2 of 3 is 67 and 1 of 2 is 50.
    """
    total = len(state.questions)
    if total == 0:
        return 0
    return int(math.floor(100 * score(state) / max(1, total) + 0.5))


def score_message(percent: int) -> str:
    """Encouragement line for a final percentage."""
    if percent >= 80:
        return "Excellent work!"
    if percent >= 60:
        return "Good job!"
    if percent >= 40:
        return "Not bad, could be better!"
    return "Keep practicing!"


def answered_count(state: SessionState) -> int:
    return len(state.answers)


def remaining_count(state: SessionState) -> int:
    return max(0, len(state.questions) - len(state.answers))


def results_summary(state: SessionState) -> List[Dict[str, object]]:
    """
    Build one row per question for the results screen.

    Returns:
        List of dictionaries in question order with position, prompt, chosen
        option, correct answer, correctness and whether it was answered
    """
    rows = []
    for position, question in enumerate(state.questions, start=1):
        record = state.answer_for(question.id)
        rows.append({
            'position': position,
            'question_id': question.id,
            'prompt': question.prompt,
            'chosen_option': record.chosen_option if record else None,
            'correct_answer': question.correct_answer,
            'is_correct': bool(record and record.is_correct),
            'answered': record is not None,
        })
    return rows
