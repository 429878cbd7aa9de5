"""
Unit tests for the session transition function.
"""
import unittest

from trivia_quiz.actions import (
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
from trivia_quiz.models import AnswerRecord, QuizConfiguration, SessionState
from trivia_quiz.session_reducer import initial_state, transition
from tests.test_fixtures import TestFixtures


class TestInitialState(unittest.TestCase):
    """Test cases for the initial session state."""

    def test_defaults(self):
        state = initial_state()
        self.assertEqual(state.configuration, QuizConfiguration(question_count=10))
        self.assertEqual(state.questions, ())
        self.assertEqual(state.current_index, 0)
        self.assertEqual(state.answers, ())
        self.assertFalse(state.is_loading_questions)
        self.assertIsNone(state.load_error)
        self.assertFalse(state.has_started)
        self.assertFalse(state.is_completed)

    def test_configuration_carried(self):
        configuration = TestFixtures.create_sample_configuration()
        self.assertIs(initial_state(configuration).configuration, configuration)


class TestTransitions(unittest.TestCase):
    """Test cases for each action."""

    def setUp(self):
        self.questions = TestFixtures.create_sample_questions(3)
        self.state = initial_state()

    def test_set_configuration(self):
        configuration = TestFixtures.create_sample_configuration()
        new_state = transition(self.state, SetConfiguration(configuration))
        self.assertEqual(new_state.configuration, configuration)

    def test_set_loading(self):
        self.assertTrue(transition(self.state, SetLoading(True)).is_loading_questions)
        self.assertFalse(transition(self.state, SetLoading(False)).is_loading_questions)

    def test_set_error_and_clear(self):
        errored = transition(self.state, SetError("Failed to load questions"))
        self.assertEqual(errored.load_error, "Failed to load questions")
        self.assertIsNone(transition(errored, SetError(None)).load_error)

    def test_set_questions_resets_progress(self):
        state = transition(self.state, SetQuestions(self.questions))
        state = transition(state, StartSession())
        state = transition(state, RecordAnswer(TestFixtures.correct_record(self.questions[0])))
        state = transition(state, SetCurrentQuestion(2))

        new_questions = TestFixtures.create_sample_questions(2)
        reloaded = transition(state, SetQuestions(new_questions))

        self.assertEqual(reloaded.questions, tuple(new_questions))
        self.assertEqual(reloaded.current_index, 0)
        self.assertEqual(reloaded.answers, ())
        self.assertFalse(reloaded.is_completed)

    def test_set_questions_from_arbitrary_index(self):
        state = SessionState(
            questions=tuple(TestFixtures.create_sample_questions(5)),
            current_index=4,
            answers=(AnswerRecord("question-0", "Right 0", True),),
        )
        reloaded = transition(state, SetQuestions(self.questions))
        self.assertEqual(reloaded.current_index, 0)
        self.assertEqual(reloaded.answers, ())

    def test_start_session(self):
        state = transition(self.state, SetError("previous failure"))
        started = transition(state, StartSession())
        self.assertTrue(started.has_started)
        self.assertFalse(started.is_completed)
        self.assertIsNone(started.load_error)

    def test_set_current_question(self):
        state = transition(self.state, SetQuestions(self.questions))
        self.assertEqual(transition(state, SetCurrentQuestion(1)).current_index, 1)

    def test_complete_session(self):
        state = TestFixtures.create_started_state()
        completed = transition(state, CompleteSession())
        self.assertTrue(completed.is_completed)
        self.assertFalse(completed.has_started)

    def test_start_after_complete_clears_completion(self):
        state = transition(TestFixtures.create_started_state(), CompleteSession())
        restarted = transition(state, StartSession())
        self.assertTrue(restarted.has_started)
        self.assertFalse(restarted.is_completed)

    def test_unknown_action_returns_same_state(self):
        self.assertIs(transition(self.state, object()), self.state)
        self.assertIs(transition(self.state, "SET_CONFIG"), self.state)
        self.assertIs(transition(self.state, None), self.state)


class TestRecordAnswer(unittest.TestCase):
    """Test cases for answer upsert semantics."""

    def setUp(self):
        self.state = TestFixtures.create_started_state()

    def test_append_new_answers(self):
        state = transition(self.state, RecordAnswer(AnswerRecord("question-0", "A", True)))
        state = transition(state, RecordAnswer(AnswerRecord("question-1", "B", False)))
        self.assertEqual([record.question_id for record in state.answers], ["question-0", "question-1"])

    def test_upsert_replaces_existing(self):
        state = transition(self.state, RecordAnswer(AnswerRecord("q1", "A", True)))
        state = transition(state, RecordAnswer(AnswerRecord("q1", "B", False)))
        self.assertEqual(state.answers, (AnswerRecord("q1", "B", False),))

    def test_upsert_keeps_position(self):
        state = transition(self.state, RecordAnswer(AnswerRecord("question-0", "A", False)))
        state = transition(state, RecordAnswer(AnswerRecord("question-1", "B", False)))
        state = transition(state, RecordAnswer(AnswerRecord("question-0", "C", True)))
        self.assertEqual(state.answers[0], AnswerRecord("question-0", "C", True))
        self.assertEqual(state.answers[1].question_id, "question-1")
        self.assertEqual(len(state.answers), 2)

    def test_duplicate_dispatch_is_deterministic(self):
        record = AnswerRecord("question-0", None, False)
        once = transition(self.state, RecordAnswer(record))
        twice = transition(once, RecordAnswer(record))
        self.assertEqual(once, twice)


class TestResetSession(unittest.TestCase):
    """Test cases for resetting a session."""

    def test_reset_preserves_configuration_only(self):
        configuration = TestFixtures.create_sample_configuration()
        state = transition(initial_state(), SetConfiguration(configuration))
        state = transition(state, SetQuestions(TestFixtures.create_sample_questions(2)))
        state = transition(state, StartSession())
        state = transition(state, RecordAnswer(AnswerRecord("question-0", "x", False)))
        state = transition(state, SetError("oops"))
        state = transition(state, SetLoading(True))

        reset = transition(state, ResetSession())

        self.assertEqual(reset, initial_state(configuration))

    def test_reset_is_idempotent(self):
        state = transition(TestFixtures.create_started_state(), CompleteSession())
        once = transition(state, ResetSession())
        twice = transition(once, ResetSession())
        self.assertEqual(once, twice)


class TestPurityAndInvariants(unittest.TestCase):
    """Test cases for purity and state invariants across action sequences."""

    def _all_actions(self):
        questions = TestFixtures.create_sample_questions(3)
        return [
            SetConfiguration(TestFixtures.create_sample_configuration()),
            SetLoading(True),
            SetLoading(False),
            SetError("failure"),
            SetError(None),
            SetQuestions(questions),
            StartSession(),
            SetCurrentQuestion(1),
            RecordAnswer(TestFixtures.correct_record(questions[0])),
            RecordAnswer(TestFixtures.wrong_record(questions[0])),
            CompleteSession(),
            ResetSession(),
        ]

    def test_transition_is_pure(self):
        state = TestFixtures.create_started_state()
        snapshot = SessionState(**{name: getattr(state, name) for name in state.__dataclass_fields__})

        for action in self._all_actions():
            first = transition(state, action)
            second = transition(state, action)
            self.assertEqual(first, second, f"{type(action).__name__} is not deterministic")
            self.assertEqual(state, snapshot, f"{type(action).__name__} modified its input")

    def test_started_and_completed_never_both_true(self):
        actions = self._all_actions()
        # Walk every ordered pair of actions from a few starting points
        starts = [initial_state(), TestFixtures.create_started_state()]
        for start in starts:
            for first in actions:
                for second in actions:
                    state = transition(transition(start, first), second)
                    self.assertFalse(state.has_started and state.is_completed)
                    if state.is_completed:
                        self.assertFalse(state.has_started)

    def test_answers_unique_by_question(self):
        questions = TestFixtures.create_sample_questions(3)
        state = TestFixtures.create_started_state()
        for question in questions * 3:
            state = transition(state, RecordAnswer(TestFixtures.wrong_record(question)))
        ids = [record.question_id for record in state.answers]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertLessEqual(len(state.answers), len(state.questions))


if __name__ == '__main__':
    unittest.main()
