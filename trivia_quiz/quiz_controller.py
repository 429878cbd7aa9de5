"""
Quiz session controller.
Owns the session state, serializes every action through one queue, and runs
the configure -> fetch -> start sequence against the question source.
"""
import logging
import random
from collections import deque
from typing import Any, Callable, Dict, List, Optional

from .access_guard import GuardDecision, guard, landing_screen, resolve_screen
from .actions import (
    ResetSession,
    SetConfiguration,
    SetCurrentQuestion,
    SetError,
    SetLoading,
    SetQuestions,
    StartSession,
)
from .config_manager import ConfigManager
from .countdown import CountdownController
from .models import AnswerRecord, QuizConfiguration, Screen, SessionState
from .question_builder import build_questions
from .scoring import percentage, progress, results_summary, score
from .session_reducer import initial_state, transition
from .trivia_client import TriviaClient, TriviaServiceError

StateListener = Callable[[SessionState, SessionState], None]


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class InvalidQuestionIndexError(QuizControllerError):
    """Raised when progression targets an index outside the loaded question set."""
    pass


class SessionNotInProgressError(QuizControllerError):
    """Raised when an attempt-only operation is used outside an attempt."""
    pass


class QuizController:
    """
    Orchestrates a single quiz session.

    The controller is the only writer of the session state. Actions passed
    to ``dispatch`` are applied one at a time in dispatch order; actions
    dispatched by listeners while another action is being applied are
    queued behind it.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        trivia_client: TriviaClient,
        configuration: Optional[QuizConfiguration] = None,
        rng: Optional[random.Random] = None,
        auto_tick: bool = True
    ):
        """
        Initialize the quiz controller.

        Args:
            config_manager: Instance for validation and pacing settings
            trivia_client: Question source client
            configuration: Initial quiz configuration, config manager default if None
            rng: Random source for option shuffling
            auto_tick: Whether the countdown runs its own asyncio tick task
        """
        self.logger = logging.getLogger(__name__)
        self.config_manager = config_manager
        self.trivia_client = trivia_client
        self._rng = rng

        if configuration is None:
            configuration = config_manager.get_default_configuration()
        self._state = initial_state(configuration)

        self._queue = deque()
        self._dispatching = False
        # Bumped on every start and reset; a fetch only lands if its token is still current
        self._load_token = 0
        self._listeners: List[StateListener] = []

        self.countdown = CountdownController(
            self.dispatch,
            lambda: self._state,
            duration=config_manager.get_timer_duration(),
            feedback_delay=config_manager.get_feedback_delay(),
            auto_tick=auto_tick,
        )
        self.subscribe(self.countdown.on_state_change)

        self.logger.info("QuizController initialized")

    # State access

    @property
    def current_state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener called with ``(previous, current)`` after every action.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Any) -> None:
        """
        Apply an action to the session state.

        Raises:
            InvalidQuestionIndexError: If a SetCurrentQuestion index is outside
                the loaded question set; the state is left unchanged
        """
        self._queue.append(action)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._queue:
                next_action = self._queue.popleft()
                self._check_preconditions(next_action)
                if isinstance(next_action, ResetSession):
                    self._load_token += 1
                previous = self._state
                self._state = transition(previous, next_action)
                for listener in list(self._listeners):
                    listener(previous, self._state)
        except Exception:
            dropped = len(self._queue)
            self._queue.clear()
            if dropped:
                self.logger.error(f"Dropped {dropped} queued actions after dispatch failure")
            raise
        finally:
            self._dispatching = False

    def _check_preconditions(self, action: Any) -> None:
        if isinstance(action, SetCurrentQuestion):
            total = len(self._state.questions)
            if not 0 <= action.index < total:
                self.logger.error(f"Rejected question index {action.index} for {total} questions")
                raise InvalidQuestionIndexError(
                    f"Question index {action.index} is outside 0..{total - 1}"
                )

    # Derived views

    def score(self) -> int:
        return score(self._state)

    def progress(self) -> int:
        return progress(self._state)

    def percentage(self) -> int:
        return percentage(self._state)

    def guard(self, screen) -> GuardDecision:
        return guard(self._state, screen)

    def resolve_screen(self, screen) -> Screen:
        return resolve_screen(self._state, screen)

    def results(self) -> List[Dict[str, Any]]:
        return results_summary(self._state)

    # Configuration

    def configure(
        self,
        question_count: Any = None,
        category_id: Any = None,
        difficulty: Any = None,
        question_type: Any = None
    ) -> Dict[str, Any]:
        """
        Replace the quiz configuration from raw user input.

        Returns:
            Dictionary with success status and user-friendly message
        """
        if not self.guard(Screen.CONFIGURE).admitted:
            return {
                'success': False,
                'error': "Configuration is locked while a quiz is in progress",
                'user_message': "❌ Finish or reset the current quiz before changing settings"
            }

        result = self.config_manager.build_configuration(
            question_count=question_count,
            category_id=category_id,
            difficulty=difficulty,
            question_type=question_type,
        )
        if result['success']:
            self.dispatch(SetConfiguration(result['configuration']))
            self.logger.info(f"Configuration set: {result['configuration']}")
        return result

    async def load_categories(self) -> Dict[str, Any]:
        """
        Fetch the category list from the question source.

        Returns:
            Dictionary with success status and ``categories`` on success
        """
        try:
            response = await self.trivia_client.fetch_categories()
        except TriviaServiceError as e:
            self.logger.error(f"Failed to load categories: {e}")
            return {
                'success': False,
                'error': str(e),
                'user_message': "❌ Failed to load categories. Please try again later."
            }
        return {'success': True, 'categories': response['categories']}

    # Session lifecycle

    async def start_quiz(self) -> Dict[str, Any]:
        """
        Validate the configuration, fetch questions and start the attempt.

        Configuration and fetch failures are reported in the returned
        dictionary and, for fetch failures, in the state's ``load_error``.
        The session is only started once a complete question set is loaded.

        Returns:
            Dictionary with success status, messages and session info
        """
        state = self._state

        if state.is_in_progress:
            return {
                'success': False,
                'error': "Quiz already in progress",
                'user_message': "❌ A quiz is already running. Use /quiz_reset to abandon it first."
            }

        if state.is_loading_questions:
            return {
                'success': False,
                'error': "Questions are already loading",
                'user_message': "⏳ Questions are already being loaded"
            }

        validation = self.config_manager.validate_configuration(state.configuration)
        if not validation['valid']:
            error_msg = "; ".join(validation['issues'])
            self.logger.error(f"Refusing to start quiz with invalid configuration: {error_msg}")
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid configuration: {error_msg}"
            }

        configuration = state.configuration
        self._load_token += 1
        token = self._load_token
        self.dispatch(SetError(None))
        self.dispatch(SetLoading(True))

        try:
            results = await self.trivia_client.fetch_questions(configuration.to_api_params())
            questions = build_questions(results, self._rng)
        except (TriviaServiceError, ValueError) as e:
            message = f"Failed to load questions: {e}"
            self.logger.error(message)
            if self._is_current_load(token):
                self.dispatch(SetLoading(False))
                self.dispatch(SetError(message))
            return {
                'success': False,
                'error': message,
                'user_message': "❌ Failed to load questions. Please try again."
            }

        if not self._is_current_load(token) or self._state.configuration != configuration:
            # Reset, restarted or reconfigured while the request was in flight
            if self._is_current_load(token):
                self.dispatch(SetLoading(False))
            self.logger.warning("Discarding fetched questions: session changed during loading")
            return {
                'success': False,
                'error': "Session changed while questions were loading",
                'user_message': "⚠️ The quiz was reset while questions were loading"
            }

        self.dispatch(SetQuestions(questions))
        self.dispatch(SetLoading(False))
        self.dispatch(StartSession())

        self.logger.info(f"Quiz started with {len(questions)} questions")
        return {
            'success': True,
            'message': f"Quiz started with {len(questions)} questions",
            'session_info': self.get_session_progress(),
        }

    def _is_current_load(self, token: int) -> bool:
        return token == self._load_token and self._state.is_loading_questions

    def select_option(self, option: Optional[str]) -> bool:
        """Set the draft option for the current question."""
        self._require_in_progress("select an option")
        return self.countdown.select(option)

    def confirm_answer(self, option: Optional[str] = None) -> Optional[AnswerRecord]:
        """
        Confirm an answer for the current question.

        Args:
            option: Option to confirm, the current draft if None

        Returns:
            The recorded answer, or None if nothing could be recorded

        Raises:
            SessionNotInProgressError: If no attempt is in progress
        """
        self._require_in_progress("confirm an answer")
        return self.countdown.confirm(option)

    def reset(self) -> None:
        """Discard the attempt, keeping the configuration."""
        self.dispatch(ResetSession())
        self.logger.info("Quiz session reset")

    async def shutdown(self) -> None:
        """Cancel pending countdown work and close the question source client."""
        self.countdown.stop()
        await self.trivia_client.close()

    def _require_in_progress(self, operation: str) -> None:
        if not self._state.is_in_progress:
            raise SessionNotInProgressError(f"Cannot {operation}: no quiz in progress")

    # Reporting

    def get_session_progress(self) -> Dict[str, Any]:
        """
        Get progress information for the session.

        Returns:
            Dictionary with position, totals, score and flags
        """
        state = self._state
        question = state.current_question
        return {
            'current_question': self.progress(),
            'total_questions': len(state.questions),
            'question_id': question.id if question else None,
            'answered': len(state.answers),
            'score': self.score(),
            'percentage': self.percentage(),
            'has_started': state.has_started,
            'is_completed': state.is_completed,
            'is_loading': state.is_loading_questions,
            'load_error': state.load_error,
        }

    def status_snapshot(self) -> Dict[str, Any]:
        """Session progress plus countdown status."""
        snapshot = self.get_session_progress()
        snapshot['screen'] = landing_screen(self._state).value
        snapshot['countdown'] = self.countdown.snapshot()
        return snapshot
