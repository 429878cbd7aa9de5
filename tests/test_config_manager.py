"""
Unit tests for ConfigManager.
"""
import unittest

from trivia_quiz.config_manager import ConfigManager, describe_configuration
from trivia_quiz.models import Difficulty, QuestionType, QuizConfiguration


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager class."""

    def setUp(self):
        self.config_manager = ConfigManager()

    def test_initialization(self):
        self.assertEqual(self.config_manager.get_default_configuration(), QuizConfiguration(question_count=10))
        self.assertEqual(self.config_manager.get_timer_duration(), 30)
        self.assertEqual(self.config_manager.get_feedback_delay(), 1.5)
        settings = self.config_manager.get_question_source_settings()
        self.assertEqual(settings['base_url'], "https://opentdb.com")
        self.assertEqual(settings['request_timeout'], 10.0)
        self.assertEqual(settings['categories_cache_ttl'], 600.0)

    def test_build_configuration_valid(self):
        result = self.config_manager.build_configuration(
            question_count=15, category_id=9, difficulty="hard", question_type="boolean"
        )

        self.assertTrue(result['success'])
        configuration = result['configuration']
        self.assertEqual(configuration.question_count, 15)
        self.assertEqual(configuration.category_id, 9)
        self.assertEqual(configuration.difficulty, Difficulty.HARD)
        self.assertEqual(configuration.question_type, QuestionType.BOOLEAN)

    def test_build_configuration_any_filters(self):
        result = self.config_manager.build_configuration(difficulty="any", question_type="")

        self.assertTrue(result['success'])
        configuration = result['configuration']
        self.assertEqual(configuration.question_count, 10)
        self.assertIsNone(configuration.category_id)
        self.assertIsNone(configuration.difficulty)
        self.assertIsNone(configuration.question_type)

    def test_build_configuration_count_bounds(self):
        self.assertTrue(self.config_manager.build_configuration(question_count=1)['success'])
        self.assertTrue(self.config_manager.build_configuration(question_count=50)['success'])

        result = self.config_manager.build_configuration(question_count=0)
        self.assertFalse(result['success'])
        self.assertIn("at least 1", result['error'])

        result = self.config_manager.build_configuration(question_count=51)
        self.assertFalse(result['success'])
        self.assertIn("at most 50", result['error'])

    def test_build_configuration_invalid_types(self):
        self.assertFalse(self.config_manager.build_configuration(question_count="10")['success'])
        self.assertFalse(self.config_manager.build_configuration(question_count=True)['success'])
        self.assertFalse(self.config_manager.build_configuration(category_id="nine")['success'])

    def test_build_configuration_invalid_difficulty(self):
        result = self.config_manager.build_configuration(difficulty="impossible")
        self.assertFalse(result['success'])
        self.assertEqual(result['user_message'], "❌ Difficulty must be one of: easy, medium, hard")

    def test_build_configuration_invalid_type(self):
        result = self.config_manager.build_configuration(question_type="essay")
        self.assertFalse(result['success'])
        self.assertIn("multiple, boolean", result['user_message'])

    def test_validate_configuration(self):
        self.assertTrue(self.config_manager.validate_configuration(QuizConfiguration())['valid'])

        validation = self.config_manager.validate_configuration(QuizConfiguration(question_count=-3))
        self.assertFalse(validation['valid'])
        self.assertEqual(len(validation['issues']), 1)

        self.assertFalse(self.config_manager.validate_configuration({'question_count': 10})['valid'])

    def test_set_default_question_count(self):
        result = self.config_manager.set_default_question_count(20)
        self.assertTrue(result['success'])
        self.assertEqual(self.config_manager.get_default_configuration().question_count, 20)

        result = self.config_manager.set_default_question_count(100)
        self.assertFalse(result['success'])
        self.assertEqual(self.config_manager.get_default_configuration().question_count, 20)

    def test_set_timer_duration_valid(self):
        result = self.config_manager.set_timer_duration(45)
        self.assertTrue(result['success'])
        self.assertEqual(self.config_manager.get_timer_duration(), 45)
        self.assertIn("45 seconds", result['message'])

    def test_set_timer_duration_invalid(self):
        result = self.config_manager.set_timer_duration(3)
        self.assertFalse(result['success'])
        self.assertIn("Minimum is 5 seconds", result['user_message'])

        result = self.config_manager.set_timer_duration(400)
        self.assertFalse(result['success'])
        self.assertIn("Maximum is 300 seconds", result['user_message'])

        result = self.config_manager.set_timer_duration("30")
        self.assertFalse(result['success'])
        self.assertIn("Expected a number", result['user_message'])

        self.assertEqual(self.config_manager.get_timer_duration(), 30)

    def test_set_feedback_delay(self):
        self.assertTrue(self.config_manager.set_feedback_delay(0)['success'])
        self.assertEqual(self.config_manager.get_feedback_delay(), 0.0)

        self.assertFalse(self.config_manager.set_feedback_delay(-1)['success'])
        self.assertFalse(self.config_manager.set_feedback_delay(11)['success'])
        self.assertFalse(self.config_manager.set_feedback_delay(None)['success'])
        self.assertEqual(self.config_manager.get_feedback_delay(), 0.0)

    def test_set_question_source(self):
        result = self.config_manager.set_question_source("http://localhost:8080/", 5, 60)
        self.assertTrue(result['success'])
        settings = self.config_manager.get_question_source_settings()
        self.assertEqual(settings['base_url'], "http://localhost:8080")
        self.assertEqual(settings['request_timeout'], 5.0)
        self.assertEqual(settings['categories_cache_ttl'], 60.0)

        self.assertFalse(self.config_manager.set_question_source("ftp://example.com")['success'])
        self.assertFalse(self.config_manager.set_question_source("https://example.com", request_timeout=0)['success'])

    def test_apply_config(self):
        errors = self.config_manager.apply_config({
            'quiz': {'default_question_count': 5, 'timer_duration': 20, 'feedback_delay': 0.5},
            'trivia': {'base_url': "https://trivia.example", 'request_timeout': 3}
        })

        self.assertEqual(errors, [])
        self.assertEqual(self.config_manager.get_default_configuration().question_count, 5)
        self.assertEqual(self.config_manager.get_timer_duration(), 20)
        self.assertEqual(self.config_manager.get_feedback_delay(), 0.5)
        self.assertEqual(self.config_manager.get_question_source_settings()['base_url'], "https://trivia.example")

    def test_apply_config_reports_rejected_entries(self):
        errors = self.config_manager.apply_config({'quiz': {'timer_duration': 1, 'feedback_delay': 2}})

        self.assertEqual(len(errors), 1)
        self.assertEqual(self.config_manager.get_timer_duration(), 30)
        self.assertEqual(self.config_manager.get_feedback_delay(), 2.0)

    def test_apply_empty_config(self):
        self.assertEqual(self.config_manager.apply_config({}), [])

    def test_reset_to_defaults(self):
        self.config_manager.set_timer_duration(60)
        self.config_manager.set_default_question_count(25)
        self.config_manager.reset_to_defaults()

        self.assertEqual(self.config_manager.get_timer_duration(), 30)
        self.assertEqual(self.config_manager.get_default_configuration().question_count, 10)

    def test_get_settings_summary(self):
        self.config_manager.set_timer_duration(45)
        summary = self.config_manager.get_settings_summary()

        self.assertIn("Quiz Settings:", summary)
        self.assertIn("Timer: 45 seconds per question", summary)


class TestDescribeConfiguration(unittest.TestCase):
    """Test cases for the configuration description."""

    def test_any_filters(self):
        text = describe_configuration(QuizConfiguration())
        self.assertIn("Questions: 10", text)
        self.assertIn("Category: any", text)
        self.assertIn("Difficulty: any", text)

    def test_named_category(self):
        configuration = QuizConfiguration(question_count=5, category_id=9, difficulty=Difficulty.EASY)
        text = describe_configuration(configuration, "General Knowledge")
        self.assertIn("Category: General Knowledge", text)
        self.assertIn("Difficulty: easy", text)
        self.assertIn("Category: #9", describe_configuration(configuration))


if __name__ == '__main__':
    unittest.main()
