"""
Turns raw question source results into display-ready questions.

Text decoding and option shuffling happen exactly once here, so every later
render of a question shows the same text in the same option order.
"""
import html
import logging
import random
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import Question

logger = logging.getLogger(__name__)

REQUIRED_RESULT_FIELDS = ('question', 'correct_answer', 'incorrect_answers')


def decode_text(text: Optional[str]) -> str:
    """
    Decode HTML entities in question source text.

    Plain text is returned unchanged.
    """
    if not text:
        return ""
    if '&' not in text:
        return text
    return html.unescape(text)


def shuffle_answers(
    correct_answer: str,
    distractors: Iterable[str],
    rng: Optional[random.Random] = None
) -> List[str]:
    """
    Combine the correct answer with its distractors in random order.

    Args:
        correct_answer: The correct option
        distractors: The incorrect options
        rng: Random source, module-level random if None

    Returns:
        New list containing exactly the correct answer and the distractors
    """
    options = list(distractors) + [correct_answer]
    (rng or random).shuffle(options)
    return options


def build_question(index: int, result: Dict[str, Any], rng: Optional[random.Random] = None) -> Question:
    """
    Build a single Question from one raw result.

    Raises:
        ValueError: If a required field is missing
    """
    missing = [name for name in REQUIRED_RESULT_FIELDS if name not in result]
    if missing:
        raise ValueError(f"Question result {index} is missing fields: {', '.join(missing)}")

    correct_answer = decode_text(result['correct_answer'])
    distractors = tuple(decode_text(option) for option in result['incorrect_answers'])

    return Question(
        id=f"question-{index}",
        category_label=decode_text(result.get('category', '')),
        difficulty_label=str(result.get('difficulty', '')),
        prompt=decode_text(result['question']),
        correct_answer=correct_answer,
        distractors=distractors,
        presented_options=tuple(shuffle_answers(correct_answer, distractors, rng)),
    )


def build_questions(results: Iterable[Dict[str, Any]], rng: Optional[random.Random] = None) -> Tuple[Question, ...]:
    """
    Build the question set for a session.

    Args:
        results: Raw result dictionaries from the question source
        rng: Random source used for option shuffling

    Returns:
        Tuple of questions with ids ``question-0`` .. ``question-n``

    Raises:
        ValueError: If any result is malformed; no partial set is returned
    """
    questions = tuple(build_question(index, result, rng) for index, result in enumerate(results))
    logger.debug(f"Built {len(questions)} questions from question source results")
    return questions
