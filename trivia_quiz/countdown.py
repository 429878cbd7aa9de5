"""
Per-question countdown for the quiz attempt.

The controller watches session state changes, counts down while the current
question is unanswered, and on expiry records whatever draft option is
selected before moving the session on. It never touches state directly; all
effects go through the dispatch callable it is given.
"""
import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .actions import CompleteSession, RecordAnswer, SetCurrentQuestion
from .models import AnswerRecord, Question, SessionState

logger = logging.getLogger(__name__)

DEFAULT_DURATION = 30
DEFAULT_FEEDBACK_DELAY = 1.5
DEFAULT_TICK_INTERVAL = 1.0


class CountdownPhase(Enum):
    """Phases of the per-question countdown."""
    IDLE = "idle"
    RUNNING = "running"
    EXPIRED = "expired"


class CountdownLifecycleLogger:
    """Structured logging for countdown lifecycle events."""

    @staticmethod
    def log_countdown_start(question_id: str, duration: int) -> None:
        logger.info(
            f"Countdown lifecycle: START - Question {question_id}, Duration {duration}",
            extra={
                'event_type': 'countdown_start',
                'question_id': question_id,
                'duration': duration,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_countdown_tick(question_id: str, remaining: int, duration: int) -> None:
        """Log tick events (throttled to avoid spam)."""
        if remaining % 10 == 0 or remaining <= 5:
            logger.debug(
                f"Countdown lifecycle: TICK - Question {question_id}, Remaining {remaining}/{duration}",
                extra={
                    'event_type': 'countdown_tick',
                    'question_id': question_id,
                    'remaining': remaining,
                    'duration': duration,
                    'timestamp': time.time()
                }
            )

    @staticmethod
    def log_phase_transition(question_id: Optional[str], from_phase: CountdownPhase,
                             to_phase: CountdownPhase, reason: str = None) -> None:
        logger.info(
            f"Countdown lifecycle: STATE_TRANSITION - Question {question_id}, "
            f"{from_phase.value} -> {to_phase.value}" + (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'countdown_state_transition',
                'question_id': question_id,
                'from_state': from_phase.value,
                'to_state': to_phase.value,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_progression(question_id: str, action_name: str, delay: float) -> None:
        logger.debug(
            f"Countdown lifecycle: PROGRESSION - Question {question_id}, {action_name} after {delay}s",
            extra={
                'event_type': 'countdown_progression',
                'question_id': question_id,
                'action': action_name,
                'delay': delay,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_stale_event(question_id: Optional[str], details: str) -> None:
        logger.warning(
            f"Countdown lifecycle: STALE_EVENT - Question {question_id}: {details}",
            extra={
                'event_type': 'countdown_stale_event',
                'question_id': question_id,
                'details': details,
                'timestamp': time.time()
            }
        )


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class CountdownController:
    """
    Drives the per-question time limit and answer progression.

    Phases:
        IDLE: nothing is being timed (no question, answered, or session not in progress)
        RUNNING: counting down for the current question
        EXPIRED: transient, while the automatic answer is being recorded

    Ticks are delivered by an asyncio task when ``auto_tick`` is true;
    otherwise the owner calls ``tick()`` itself.
    """

    def __init__(
        self,
        dispatch: Callable[[Any], None],
        get_state: Callable[[], SessionState],
        duration: int = DEFAULT_DURATION,
        feedback_delay: float = DEFAULT_FEEDBACK_DELAY,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        auto_tick: bool = True
    ):
        """
        Initialize the countdown controller.

        Args:
            dispatch: Callable that applies an action to the session
            get_state: Callable returning the current session state
            duration: Ticks allowed per question
            feedback_delay: Seconds between recording an answer and moving on
            tick_interval: Seconds per tick when ticking automatically
            auto_tick: Whether to run the asyncio tick task
        """
        if duration < 1:
            raise ValueError("Countdown duration must be at least 1")

        self._dispatch = dispatch
        self._get_state = get_state
        self.duration = duration
        self.feedback_delay = feedback_delay
        self.tick_interval = tick_interval
        self.auto_tick = auto_tick

        self._phase = CountdownPhase.IDLE
        self._remaining = duration
        self._question_id: Optional[str] = None
        self._questions = None
        self._draft: Optional[str] = None

        self._tick_task: Optional[asyncio.Task] = None
        self._progression_task: Optional[asyncio.Task] = None
        self._tick_listeners: List[Callable[[int], Any]] = []

    @property
    def phase(self) -> CountdownPhase:
        return self._phase

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def draft(self) -> Optional[str]:
        return self._draft

    @property
    def question_id(self) -> Optional[str]:
        return self._question_id

    @property
    def is_progression_pending(self) -> bool:
        return self._progression_task is not None and not self._progression_task.done()

    def add_tick_listener(self, listener: Callable[[int], Any]) -> None:
        """Register a callback invoked with the remaining time after every tick."""
        self._tick_listeners.append(listener)

    def _set_phase(self, phase: CountdownPhase, reason: str = None) -> None:
        if phase is not self._phase:
            CountdownLifecycleLogger.log_phase_transition(self._question_id, self._phase, phase, reason)
        self._phase = phase

    # State observation

    def on_state_change(self, previous: SessionState, current: SessionState) -> None:
        """
        React to a session transition.

        Starts, restarts or stops the countdown so that it only ever runs for
        an unanswered current question of an in-progress session.
        """
        if not current.is_in_progress:
            if self._phase is not CountdownPhase.IDLE or self._tick_task or self._progression_task:
                self._retire("session no longer in progress")
            return

        question = current.current_question
        if question is None:
            self._halt("no current question")
            self._question_id = None
            return

        question_changed = question.id != self._question_id or current.questions is not self._questions
        if question_changed:
            self._draft = None

        if current.answer_for(question.id) is not None:
            if self._phase is CountdownPhase.RUNNING:
                self._halt("answer recorded")
            self._question_id = question.id
            self._questions = current.questions
            return

        if question_changed or self._phase is CountdownPhase.IDLE:
            self._begin(question, current)

    def _begin(self, question: Question, state: SessionState) -> None:
        self._cancel_tick_task()
        self._question_id = question.id
        self._questions = state.questions
        self._remaining = self.duration
        self._draft = None
        self._set_phase(CountdownPhase.RUNNING, "question presented")
        CountdownLifecycleLogger.log_countdown_start(question.id, self.duration)

        if self.auto_tick:
            self._tick_task = asyncio.get_running_loop().create_task(self._run_ticks(question.id))

    def _halt(self, reason: str) -> None:
        """Stop counting for the current question without touching pending progression."""
        self._cancel_tick_task()
        self._set_phase(CountdownPhase.IDLE, reason)

    def _retire(self, reason: str) -> None:
        """Stop everything: ticking, pending progression and the draft."""
        self._cancel_tick_task()
        self._cancel_progression_task()
        self._set_phase(CountdownPhase.IDLE, reason)
        self._question_id = None
        self._questions = None
        self._draft = None
        self._remaining = self.duration

    def stop(self) -> None:
        """Cancel all pending wake-ups, e.g. on shutdown."""
        self._retire("stopped")

    def _cancel_tick_task(self) -> None:
        task = self._tick_task
        self._tick_task = None
        if task is not None and not task.done() and task is not _current_task():
            logger.debug(f"Cancelling tick task for question {self._question_id}")
            task.cancel()

    def _cancel_progression_task(self) -> None:
        task = self._progression_task
        self._progression_task = None
        if task is not None and not task.done() and task is not _current_task():
            logger.debug(f"Cancelling pending progression for question {self._question_id}")
            task.cancel()

    # Ticking

    async def _run_ticks(self, question_id: str) -> None:
        try:
            while self._phase is CountdownPhase.RUNNING and self._question_id == question_id:
                await asyncio.sleep(self.tick_interval)
                if self._phase is not CountdownPhase.RUNNING or self._question_id != question_id:
                    break
                self.tick()
        except asyncio.CancelledError:
            logger.debug(f"Tick task cancelled for question {question_id}")
            raise

    def tick(self) -> bool:
        """
        Advance the countdown by one unit.

        Returns:
            True if the tick was counted, False if it was a no-op
        """
        if self._phase is not CountdownPhase.RUNNING:
            return False

        state = self._get_state()
        question = state.current_question
        if not state.is_in_progress or question is None or question.id != self._question_id:
            CountdownLifecycleLogger.log_stale_event(self._question_id, "tick for a question that is no longer current")
            self._halt("stale tick")
            return False

        self._remaining -= 1
        CountdownLifecycleLogger.log_countdown_tick(question.id, self._remaining, self.duration)

        for listener in list(self._tick_listeners):
            listener(self._remaining)

        if self._remaining <= 0:
            self._expire(state, question)
        return True

    def _expire(self, state: SessionState, question: Question) -> None:
        self._remaining = 0
        self._set_phase(CountdownPhase.EXPIRED, "time ran out")
        chosen = self._draft
        self._cancel_tick_task()
        self._set_phase(CountdownPhase.IDLE, "automatic answer submitted")
        self._record_and_progress(state, question, chosen)

    # Answers

    def select(self, option: Optional[str]) -> bool:
        """
        Set the draft option for the current question.

        Returns:
            True if the draft was updated
        """
        if self._phase is not CountdownPhase.RUNNING:
            return False
        question = self._get_state().current_question
        if question is None or question.id != self._question_id:
            return False
        if option is not None and option not in question.presented_options:
            logger.debug(f"Ignoring draft {option!r}: not an option of {question.id}")
            return False
        self._draft = option
        return True

    def confirm(self, option: Optional[str] = None) -> Optional[AnswerRecord]:
        """
        Manually confirm an answer for the current question.

        Args:
            option: Option to confirm, the current draft if None

        Returns:
            The recorded answer, or None if nothing was recorded
        """
        if self._phase is not CountdownPhase.RUNNING:
            logger.debug(f"Ignoring confirmation in phase {self._phase.value}")
            return None

        if option is not None and not self.select(option):
            return None

        chosen = self._draft
        if chosen is None:
            return None

        state = self._get_state()
        question = state.current_question
        self._halt("answer confirmed")
        return self._record_and_progress(state, question, chosen)

    def _record_and_progress(self, state: SessionState, question: Question,
                             chosen: Optional[str]) -> AnswerRecord:
        record = AnswerRecord(
            question_id=question.id,
            chosen_option=chosen,
            is_correct=question.is_correct(chosen),
        )
        self._dispatch(RecordAnswer(record))
        self._schedule_progression(question.id, state.current_index)
        return record

    # Progression

    def _schedule_progression(self, question_id: str, index: int) -> None:
        self._cancel_progression_task()

        if self.feedback_delay <= 0:
            self._progress(question_id, index)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; progressing without feedback delay")
            self._progress(question_id, index)
            return

        self._progression_task = loop.create_task(self._delayed_progress(question_id, index))

    async def _delayed_progress(self, question_id: str, index: int) -> None:
        try:
            await asyncio.sleep(self.feedback_delay)
        except asyncio.CancelledError:
            logger.debug(f"Progression after {question_id} cancelled")
            raise
        self._progression_task = None
        self._progress(question_id, index)

    def _progress(self, question_id: str, index: int) -> None:
        state = self._get_state()
        question = state.current_question
        if (not state.is_in_progress or state.current_index != index
                or question is None or question.id != question_id):
            CountdownLifecycleLogger.log_stale_event(question_id, "progression for a session that has moved on")
            return

        if index >= len(state.questions) - 1:
            CountdownLifecycleLogger.log_progression(question_id, "CompleteSession", self.feedback_delay)
            self._dispatch(CompleteSession())
        else:
            CountdownLifecycleLogger.log_progression(question_id, "SetCurrentQuestion", self.feedback_delay)
            self._dispatch(SetCurrentQuestion(index + 1))

    def snapshot(self) -> Dict[str, Any]:
        """Current countdown status for display."""
        return {
            'phase': self._phase.value,
            'remaining': self._remaining,
            'duration': self.duration,
            'question_id': self._question_id,
            'draft': self._draft,
            'progression_pending': self.is_progression_pending,
        }
