"""Quiz Engine: Session state machine for a single quiz attempt."""

import logging
import math
import random
import time
from typing import Any, Callable, List, Optional, Sequence

from bilgibite_quiz.evaluation_engine import EvaluationEngine
from bilgibite_quiz.feedback_generator import FeedbackGenerator, QuizFeedback
from bilgibite_quiz.questions import Question, restore_question

logger = logging.getLogger(__name__)

DEFAULT_LIVES = 5
SECONDS_PER_QUESTION = 60
MAX_STREAK_MULTIPLIER = 2.0
STREAK_BONUS = 0.1
PERFECT_TIME_THRESHOLD = 10


class InvalidStateError(RuntimeError):
    """Raised when an operation needs a current question and there is none."""


class AnsweredQuestion:
    """One entry of the append-only answer log."""

    def __init__(self, question_id: str, is_correct: bool, time_spent: float, user_answer: Any):
        self.question_id = question_id
        self.is_correct = is_correct
        self.time_spent = time_spent
        self.user_answer = user_answer

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "is_correct": self.is_correct,
            "time_spent": self.time_spent,
            "user_answer": self.user_answer,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnsweredQuestion":
        return cls(data["question_id"], data["is_correct"], data["time_spent"], data.get("user_answer"))


class QuizState:
    """Complete state of a quiz session.

    Instances handed out by the engine are snapshots: mutating them does not
    affect the running session. ``to_dict`` / ``from_dict`` form the
    serialization boundary for callers that want to persist a session.
    """

    def __init__(self, questions: List[Question], lives: int, time_remaining: float,
                 start_time: float, current_question_index: int = 0, score: int = 0,
                 streak: int = 0, xp_gained: int = 0,
                 answered_questions: Optional[List[AnsweredQuestion]] = None,
                 is_completed: bool = False):
        self.questions = questions
        self.current_question_index = current_question_index
        self.score = score
        self.lives = lives
        self.streak = streak
        self.xp_gained = xp_gained
        self.time_remaining = time_remaining
        self.start_time = start_time
        self.answered_questions = answered_questions if answered_questions is not None else []
        self.is_completed = is_completed

    def copy(self) -> "QuizState":
        return QuizState(
            questions=list(self.questions),
            lives=self.lives,
            time_remaining=self.time_remaining,
            start_time=self.start_time,
            current_question_index=self.current_question_index,
            score=self.score,
            streak=self.streak,
            xp_gained=self.xp_gained,
            answered_questions=[AnsweredQuestion(a.question_id, a.is_correct, a.time_spent, a.user_answer)
                                for a in self.answered_questions],
            is_completed=self.is_completed,
        )

    def to_dict(self) -> dict:
        return {
            "questions": [q.to_dict() for q in self.questions],
            "current_question_index": self.current_question_index,
            "score": self.score,
            "lives": self.lives,
            "streak": self.streak,
            "xp_gained": self.xp_gained,
            "time_remaining": self.time_remaining,
            "start_time": self.start_time,
            "answered_questions": [a.to_dict() for a in self.answered_questions],
            "is_completed": self.is_completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuizState":
        return cls(
            questions=[restore_question(q) for q in data["questions"]],
            lives=data["lives"],
            time_remaining=data["time_remaining"],
            start_time=data["start_time"],
            current_question_index=data.get("current_question_index", 0),
            score=data.get("score", 0),
            streak=data.get("streak", 0),
            xp_gained=data.get("xp_gained", 0),
            answered_questions=[AnsweredQuestion.from_dict(a)
                                for a in data.get("answered_questions", [])],
            is_completed=data.get("is_completed", False),
        )


class PerformanceMetrics:
    """Read-only aggregate of a session, computed on demand."""

    def __init__(self, total_score: int, xp_gained: int, accuracy: int, best_streak: int,
                 total_time: float, average_time_per_question: float, lives_remaining: int,
                 questions_completed: int, perfect_questions: int):
        self.total_score = total_score
        self.xp_gained = xp_gained
        self.accuracy = accuracy
        self.best_streak = best_streak
        self.total_time = total_time
        self.average_time_per_question = average_time_per_question
        self.lives_remaining = lives_remaining
        self.questions_completed = questions_completed
        self.perfect_questions = perfect_questions

    def to_dict(self) -> dict:
        return {
            "total_score": self.total_score,
            "xp_gained": self.xp_gained,
            "accuracy": self.accuracy,
            "best_streak": self.best_streak,
            "total_time": self.total_time,
            "average_time_per_question": self.average_time_per_question,
            "lives_remaining": self.lives_remaining,
            "questions_completed": self.questions_completed,
            "perfect_questions": self.perfect_questions,
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class QuizEngine:
    """Sequences questions and tracks score, streak, lives, XP and time.

    The engine is synchronous and single-writer: every operation runs to
    completion and notifies subscribers before returning. Running out of lives
    does not complete the session; callers check ``is_game_over()`` after each
    submission and decide whether to keep going.

    Subscribers that call back into a mutating operation trigger a nested
    notification round. Nothing guards against unbounded recursion.
    """

    def __init__(self, questions: Sequence[Question], initial_lives: int = DEFAULT_LIVES,
                 seconds_per_question: int = SECONDS_PER_QUESTION,
                 rng: Optional[random.Random] = None,
                 evaluation_engine: Optional[EvaluationEngine] = None,
                 feedback_generator: Optional[FeedbackGenerator] = None,
                 shuffle: bool = True):
        if not questions:
            raise InvalidStateError("A quiz session needs at least one question")
        if isinstance(initial_lives, bool) or not isinstance(initial_lives, int) or initial_lives < 1:
            raise ValueError(f"initial_lives must be a positive integer, got {initial_lives!r}")

        self._init_collaborators(rng, evaluation_engine, feedback_generator)

        ordered = list(questions)
        if shuffle:
            self._rng.shuffle(ordered)

        self._state = QuizState(
            questions=ordered,
            lives=initial_lives,
            time_remaining=len(ordered) * seconds_per_question,
            start_time=time.time(),
        )
        logger.info(f"Quiz session started: {len(ordered)} questions, {initial_lives} lives")

    def _init_collaborators(self, rng, evaluation_engine, feedback_generator):
        self._rng = rng or random.Random()
        self._evaluator = evaluation_engine or EvaluationEngine()
        self._feedback = feedback_generator or FeedbackGenerator(rng=self._rng)
        self._listeners: List[tuple] = []
        self._next_token = 0

    @classmethod
    def from_state(cls, state: QuizState, rng: Optional[random.Random] = None,
                   evaluation_engine: Optional[EvaluationEngine] = None,
                   feedback_generator: Optional[FeedbackGenerator] = None) -> "QuizEngine":
        """Resume a session from a snapshot without reshuffling."""
        if not state.questions:
            raise InvalidStateError("A quiz session needs at least one question")
        engine = cls.__new__(cls)
        engine._init_collaborators(rng, evaluation_engine, feedback_generator)
        engine._state = state.copy()
        logger.info(f"Quiz session resumed: question {state.current_question_index + 1}/"
                    f"{len(state.questions)}, {state.lives} lives")
        return engine

    # Subscriptions

    def subscribe(self, callback: Callable[[QuizState], None]) -> Callable[[], None]:
        """Register ``callback``; returns a function that removes this registration."""
        token = self._next_token
        self._next_token += 1
        self._listeners.append((token, callback))

        def unsubscribe():
            self._listeners = [(t, cb) for t, cb in self._listeners if t != token]

        return unsubscribe

    def _notify_listeners(self):
        snapshot = self.get_state()
        for _, callback in list(self._listeners):
            callback(snapshot)

    # Queries

    def get_state(self) -> QuizState:
        return self._state.copy()

    def get_current_question(self) -> Optional[Question]:
        if self._state.is_completed:
            return None
        index = self._state.current_question_index
        if 0 <= index < len(self._state.questions):
            return self._state.questions[index]
        return None

    def get_progress(self) -> int:
        total = len(self._state.questions)
        return _round_half_up((self._state.current_question_index + 1) / total * 100)

    def get_accuracy(self) -> int:
        answered = self._state.answered_questions
        if not answered:
            return 0
        correct = sum(1 for a in answered if a.is_correct)
        return _round_half_up(correct / len(answered) * 100)

    def is_game_over(self) -> bool:
        return self._state.lives <= 0 or self._state.is_completed

    def get_best_streak(self) -> int:
        best = current = 0
        for answer in self._state.answered_questions:
            current = current + 1 if answer.is_correct else 0
            best = max(best, current)
        return best

    def get_performance_metrics(self) -> PerformanceMetrics:
        answered = self._state.answered_questions
        total_time = time.time() - self._state.start_time
        return PerformanceMetrics(
            total_score=self._state.score,
            xp_gained=self._state.xp_gained,
            accuracy=self.get_accuracy(),
            best_streak=self.get_best_streak(),
            total_time=total_time,
            average_time_per_question=total_time / max(len(answered), 1),
            lives_remaining=self._state.lives,
            questions_completed=len(answered),
            perfect_questions=sum(1 for a in answered
                                  if a.is_correct and a.time_spent < PERFECT_TIME_THRESHOLD),
        )

    # Mutations

    def _require_current_question(self) -> Question:
        question = self.get_current_question()
        if question is None:
            raise InvalidStateError("No current question available")
        return question

    def _lose_life(self):
        self._state.lives = max(self._state.lives - 1, 0)
        self._state.streak = 0

    def submit_answer(self, user_answer: Any) -> QuizFeedback:
        """Judge ``user_answer`` against the current question and update the session."""
        question = self._require_current_question()
        time_spent = time.time() - self._state.start_time
        is_correct = self._evaluator.evaluate(question, user_answer)

        xp_gained = 0
        hearts_lost = 0
        if is_correct:
            multiplier = min(self._state.streak * STREAK_BONUS + 1, MAX_STREAK_MULTIPLIER)
            xp_gained = math.floor(question.points * multiplier)
            self._state.score += question.points
            self._state.streak += 1
            self._state.xp_gained += xp_gained
        else:
            self._lose_life()
            hearts_lost = 1

        self._state.answered_questions.append(
            AnsweredQuestion(question.id, is_correct, time_spent, user_answer))

        feedback = self._feedback.generate(
            is_correct, question, xp_gained=xp_gained,
            streak_count=self._state.streak, hearts_lost=hearts_lost)
        logger.debug(f"Answer for {question.id}: correct={is_correct}, xp={xp_gained}, "
                     f"streak={self._state.streak}, lives={self._state.lives}")

        self._notify_listeners()
        return feedback

    def next_question(self) -> bool:
        """Advance to the next question; returns False once the session is complete."""
        if self._state.current_question_index < len(self._state.questions) - 1:
            self._state.current_question_index += 1
            self._notify_listeners()
            return True
        self._complete()
        return False

    def skip_question(self) -> bool:
        """Skip the current question at the cost of a life, then advance."""
        question = self._require_current_question()
        self._lose_life()
        self._state.answered_questions.append(AnsweredQuestion(question.id, False, 0, None))
        logger.debug(f"Skipped {question.id}, lives={self._state.lives}")
        return self.next_question()

    def update_timer(self, seconds: float):
        """Set the remaining time; zero or less completes the session."""
        self._state.time_remaining = seconds
        if seconds <= 0 and not self._state.is_completed:
            logger.info("Time is up")
            self._state.is_completed = True
        self._notify_listeners()

    def _complete(self):
        if not self._state.is_completed:
            logger.info(f"Quiz completed: score={self._state.score}, xp={self._state.xp_gained}")
        self._state.is_completed = True
        self._notify_listeners()
