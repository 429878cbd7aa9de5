"""
Integration tests: controller, countdown and question source client working
together on complete quiz sessions.
"""
import asyncio
import random
import unittest
from unittest.mock import AsyncMock, MagicMock

from trivia_quiz.config_manager import ConfigManager
from trivia_quiz.models import Screen
from trivia_quiz.quiz_controller import QuizController
from trivia_quiz.trivia_client import TriviaClient
from tests.test_fixtures import TestFixtures
from tests.test_trivia_client import FakeResponse


def make_routing_session(routes):
    """Fake aiohttp session answering GETs by path suffix."""
    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()

    def get(url, params=None):
        for suffix, response in routes.items():
            if url.endswith(suffix):
                return response
        raise AssertionError(f"Unexpected URL {url}")

    session.get.side_effect = get
    return session


class TestCompleteSessionFlow(unittest.IsolatedAsyncioTestCase):
    """Test complete quiz sessions from configuration to results."""

    async def asyncSetUp(self):
        self.config_manager = ConfigManager()
        self.config_manager.set_timer_duration(5)
        self.config_manager.set_feedback_delay(0.01)

        self.session = make_routing_session({
            "/api.php": FakeResponse(payload=TestFixtures.create_question_response()),
            "/api_category.php": FakeResponse(payload=TestFixtures.create_category_response()),
        })
        self.client = TriviaClient(base_url="https://trivia.example", session=self.session)
        self.controller = QuizController(self.config_manager, self.client, rng=random.Random(5))
        self.controller.countdown.tick_interval = 0.02

        self.transitions = []
        self.controller.subscribe(lambda previous, current: self.transitions.append(current))

    async def asyncTearDown(self):
        await self.controller.shutdown()

    async def wait_for(self, predicate, timeout=3.0):
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate():
            if asyncio.get_running_loop().time() > deadline:
                self.fail("Condition not reached before timeout")
            await asyncio.sleep(0.005)

    async def test_answer_every_question(self):
        categories = await self.controller.load_categories()
        self.assertTrue(categories['success'])

        self.assertTrue(self.controller.configure(question_count=2, category_id=17)['success'])
        result = await self.controller.start_quiz()
        self.assertTrue(result['success'])
        self.assertEqual(self.controller.resolve_screen(Screen.CONFIGURE), Screen.ATTEMPT)

        first = self.controller.current_state.questions[0]
        self.controller.confirm_answer(first.correct_answer)
        await self.wait_for(lambda: self.controller.current_state.current_index == 1)

        second = self.controller.current_state.questions[1]
        self.controller.confirm_answer(second.distractors[0])
        await self.wait_for(lambda: self.controller.current_state.is_completed)

        self.assertEqual(self.controller.score(), 1)
        self.assertEqual(self.controller.percentage(), 50)
        self.assertEqual(self.controller.resolve_screen(Screen.ATTEMPT), Screen.RESULTS)
        self.assertTrue(all(not (s.has_started and s.is_completed) for s in self.transitions))

    async def test_timeouts_complete_the_session(self):
        await self.controller.start_quiz()

        await self.wait_for(lambda: self.controller.current_state.is_completed)

        state = self.controller.current_state
        self.assertEqual(len(state.answers), 2)
        self.assertTrue(all(record.chosen_option is None for record in state.answers))
        self.assertEqual(self.controller.score(), 0)

    async def test_reset_mid_attempt_then_restart(self):
        await self.controller.start_quiz()
        self.controller.confirm_answer(self.controller.current_state.questions[0].correct_answer)

        self.controller.reset()
        await asyncio.sleep(0.05)

        state = self.controller.current_state
        self.assertFalse(state.has_started)
        self.assertEqual(state.answers, ())
        self.assertEqual(self.controller.resolve_screen(Screen.ATTEMPT), Screen.CONFIGURE)

        result = await self.controller.start_quiz()
        self.assertTrue(result['success'])
        self.assertEqual(self.controller.current_state.current_index, 0)

    async def test_not_enough_questions(self):
        self.session.get.side_effect = lambda url, params=None: FakeResponse(
            payload=TestFixtures.create_question_response(1)
        )

        result = await self.controller.start_quiz()

        self.assertFalse(result['success'])
        state = self.controller.current_state
        self.assertIn("Not enough questions", state.load_error)
        self.assertEqual(self.controller.resolve_screen(Screen.ATTEMPT), Screen.CONFIGURE)


if __name__ == '__main__':
    unittest.main()
