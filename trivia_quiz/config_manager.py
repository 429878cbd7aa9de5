"""
Configuration manager for quiz settings and application parameters.
"""
import logging
from typing import Any, Dict, List, Optional

from .models import Difficulty, QuestionType, QuizConfiguration
from .trivia_client import DEFAULT_BASE_URL


class ConfigManager:
    """Manages quiz configuration, countdown pacing and question source settings."""

    # Default configuration values
    DEFAULT_QUESTION_COUNT = 10
    DEFAULT_TIMER_DURATION = 30
    DEFAULT_FEEDBACK_DELAY = 1.5
    DEFAULT_BASE_URL = DEFAULT_BASE_URL
    DEFAULT_REQUEST_TIMEOUT = 10.0
    DEFAULT_CATEGORIES_CACHE_TTL = 600.0

    # Validation limits
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 50
    MIN_TIMER_DURATION = 5
    MAX_TIMER_DURATION = 300  # 5 minutes
    MIN_FEEDBACK_DELAY = 0.0
    MAX_FEEDBACK_DELAY = 10.0

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._default_configuration = QuizConfiguration(question_count=self.DEFAULT_QUESTION_COUNT)
        self._timer_duration = self.DEFAULT_TIMER_DURATION
        self._feedback_delay = self.DEFAULT_FEEDBACK_DELAY
        self._base_url = self.DEFAULT_BASE_URL
        self._request_timeout = self.DEFAULT_REQUEST_TIMEOUT
        self._categories_cache_ttl = self.DEFAULT_CATEGORIES_CACHE_TTL

    # Quiz configuration

    def validate_configuration(self, configuration: Any) -> Dict[str, Any]:
        """
        Check a quiz configuration against the numeric and enum constraints.

        Args:
            configuration: QuizConfiguration to check

        Returns:
            Dictionary with ``valid`` flag and a list of ``issues``
        """
        issues = []

        if not isinstance(configuration, QuizConfiguration):
            return {'valid': False, 'issues': [f"Expected QuizConfiguration, got {type(configuration).__name__}"]}

        count = configuration.question_count
        if isinstance(count, bool) or not isinstance(count, int):
            issues.append(f"Question count must be an integer, got {type(count).__name__}")
        elif count < self.MIN_QUESTION_COUNT:
            issues.append(f"Number of questions must be at least {self.MIN_QUESTION_COUNT}")
        elif count > self.MAX_QUESTION_COUNT:
            issues.append(f"Number of questions must be at most {self.MAX_QUESTION_COUNT}")

        category_id = configuration.category_id
        if category_id is not None and (isinstance(category_id, bool) or not isinstance(category_id, int)):
            issues.append(f"Category id must be an integer, got {type(category_id).__name__}")

        if configuration.difficulty is not None and not isinstance(configuration.difficulty, Difficulty):
            issues.append(f"Invalid difficulty: {configuration.difficulty}")

        if configuration.question_type is not None and not isinstance(configuration.question_type, QuestionType):
            issues.append(f"Invalid question type: {configuration.question_type}")

        return {'valid': not issues, 'issues': issues}

    def build_configuration(
        self,
        question_count: Any = None,
        category_id: Any = None,
        difficulty: Any = None,
        question_type: Any = None
    ) -> Dict[str, Any]:
        """
        Build a validated QuizConfiguration from raw user input.

        Unset arguments fall back to the default configuration's question
        count and to "any" for the optional filters.

        Returns:
            Dictionary with success status, the ``configuration`` on success,
            and error / user-friendly messages on failure
        """
        if question_count is None:
            question_count = self._default_configuration.question_count

        try:
            parsed_difficulty = Difficulty(difficulty) if difficulty not in (None, "", "any") else None
        except ValueError:
            error_msg = f"Invalid difficulty: {difficulty}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Difficulty must be one of: easy, medium, hard"
            }

        try:
            parsed_type = QuestionType(question_type) if question_type not in (None, "", "any") else None
        except ValueError:
            error_msg = f"Invalid question type: {question_type}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Question type must be one of: multiple, boolean"
            }

        configuration = QuizConfiguration(
            question_count=question_count,
            category_id=category_id,
            difficulty=parsed_difficulty,
            question_type=parsed_type,
        )

        validation = self.validate_configuration(configuration)
        if not validation['valid']:
            error_msg = "; ".join(validation['issues'])
            self.logger.error(f"Rejected quiz configuration: {error_msg}")
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid configuration: {error_msg}"
            }

        return {
            'success': True,
            'configuration': configuration,
            'message': f"Configuration accepted: {configuration}",
            'user_message': "✅ Quiz configuration updated"
        }

    def get_default_configuration(self) -> QuizConfiguration:
        return self._default_configuration

    def set_default_question_count(self, count: int) -> Dict[str, Any]:
        """
        Set the question count used for new configurations.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        result = self.build_configuration(question_count=count)
        if not result['success']:
            return result

        self._default_configuration = result['configuration']
        self.logger.info(f"Default question count set to {count}")
        return {
            'success': True,
            'message': f"Default question count set to {count}",
            'user_message': f"✅ Default question count set to {count}"
        }

    # Countdown pacing

    def set_timer_duration(self, duration: int) -> Dict[str, Any]:
        """
        Set the countdown budget for each question.

        Args:
            duration: Timer duration in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(duration, bool) or not isinstance(duration, int):
            error_msg = f"Timer duration must be an integer, got {type(duration).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(duration).__name__}"
            }

        if duration < self.MIN_TIMER_DURATION:
            error_msg = f"Timer duration must be at least {self.MIN_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timer too short: Minimum is {self.MIN_TIMER_DURATION} seconds"
            }

        if duration > self.MAX_TIMER_DURATION:
            error_msg = f"Timer duration cannot exceed {self.MAX_TIMER_DURATION} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Timer too long: Maximum is {self.MAX_TIMER_DURATION} seconds ({self.MAX_TIMER_DURATION // 60} minutes)"
            }

        self._timer_duration = duration
        self.logger.info(f"Timer duration set to {duration} seconds")
        return {
            'success': True,
            'message': f"Timer duration set to {duration} seconds",
            'user_message': f"✅ Timer set to {duration} seconds"
        }

    def get_timer_duration(self) -> int:
        return self._timer_duration

    def set_feedback_delay(self, delay: float) -> Dict[str, Any]:
        """Set the pause between recording an answer and moving on."""
        if isinstance(delay, bool) or not isinstance(delay, (int, float)):
            error_msg = f"Feedback delay must be a number, got {type(delay).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(delay).__name__}"
            }

        if not self.MIN_FEEDBACK_DELAY <= delay <= self.MAX_FEEDBACK_DELAY:
            error_msg = (f"Feedback delay must be between {self.MIN_FEEDBACK_DELAY} "
                         f"and {self.MAX_FEEDBACK_DELAY} seconds")
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {error_msg}"
            }

        self._feedback_delay = float(delay)
        self.logger.info(f"Feedback delay set to {delay} seconds")
        return {
            'success': True,
            'message': f"Feedback delay set to {delay} seconds",
            'user_message': f"✅ Feedback delay set to {delay} seconds"
        }

    def get_feedback_delay(self) -> float:
        return self._feedback_delay

    # Question source

    def set_question_source(
        self,
        base_url: str,
        request_timeout: Optional[float] = None,
        categories_cache_ttl: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Set where and how questions are fetched.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(base_url, str) or not base_url.startswith(("http://", "https://")):
            error_msg = f"Question source URL must be an http(s) URL, got {base_url!r}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid question source URL"
            }

        for name, value in (('request_timeout', request_timeout), ('categories_cache_ttl', categories_cache_ttl)):
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0):
                error_msg = f"{name} must be a positive number, got {value!r}"
                self.logger.error(error_msg)
                return {
                    'success': False,
                    'error': error_msg,
                    'user_message': f"❌ Invalid {name.replace('_', ' ')}"
                }

        self._base_url = base_url.rstrip('/')
        if request_timeout is not None:
            self._request_timeout = float(request_timeout)
        if categories_cache_ttl is not None:
            self._categories_cache_ttl = float(categories_cache_ttl)

        self.logger.info(f"Question source set to {self._base_url}")
        return {
            'success': True,
            'message': f"Question source set to {self._base_url}",
            'user_message': f"✅ Question source set to {self._base_url}"
        }

    def get_question_source_settings(self) -> Dict[str, Any]:
        return {
            'base_url': self._base_url,
            'request_timeout': self._request_timeout,
            'categories_cache_ttl': self._categories_cache_ttl,
        }

    # Whole-file handling

    def apply_config(self, app_config: Dict[str, Any]) -> List[str]:
        """
        Apply the ``quiz`` and ``trivia`` sections of a loaded config file.

        Invalid entries are logged and skipped so the defaults stay in effect.

        Returns:
            List of error messages for entries that were rejected
        """
        errors = []
        quiz_config = app_config.get('quiz', {}) or {}
        trivia_config = app_config.get('trivia', {}) or {}

        results = []
        if 'default_question_count' in quiz_config:
            results.append(self.set_default_question_count(quiz_config['default_question_count']))
        if 'timer_duration' in quiz_config:
            results.append(self.set_timer_duration(quiz_config['timer_duration']))
        if 'feedback_delay' in quiz_config:
            results.append(self.set_feedback_delay(quiz_config['feedback_delay']))
        if trivia_config:
            results.append(self.set_question_source(
                trivia_config.get('base_url', self._base_url),
                trivia_config.get('request_timeout'),
                trivia_config.get('categories_cache_ttl'),
            ))

        for result in results:
            if not result['success']:
                errors.append(result['error'])

        if errors:
            self.logger.warning(f"Configuration applied with {len(errors)} rejected entries")
        else:
            self.logger.info("Configuration applied successfully")
        return errors

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._default_configuration = QuizConfiguration(question_count=self.DEFAULT_QUESTION_COUNT)
        self._timer_duration = self.DEFAULT_TIMER_DURATION
        self._feedback_delay = self.DEFAULT_FEEDBACK_DELAY
        self._base_url = self.DEFAULT_BASE_URL
        self._request_timeout = self.DEFAULT_REQUEST_TIMEOUT
        self._categories_cache_ttl = self.DEFAULT_CATEGORIES_CACHE_TTL
        self.logger.info("All settings reset to default values")

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Quiz Settings:\n"
            f"• Default questions: {self._default_configuration.question_count}\n"
            f"• Timer: {self._timer_duration} seconds per question\n"
            f"• Feedback delay: {self._feedback_delay} seconds\n"
            f"• Question source: {self._base_url}"
        )


def describe_configuration(configuration: QuizConfiguration, category_name: Optional[str] = None) -> str:
    """Short human-readable description of a quiz configuration."""
    if configuration.category_id is None:
        category = "any"
    else:
        category = category_name or f"#{configuration.category_id}"
    difficulty = configuration.difficulty.value if configuration.difficulty else "any"
    question_type = configuration.question_type.value if configuration.question_type else "any"
    return (
        f"Questions: {configuration.question_count}\n"
        f"Category: {category}\n"
        f"Difficulty: {difficulty}\n"
        f"Type: {question_type}"
    )
