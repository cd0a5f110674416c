"""Feedback Generator: Turkish feedback messages, intros and session summaries."""

import logging
import random
from typing import Optional

logger = logging.getLogger(__name__)

SUCCESS_MESSAGES = [
    "Harika!",
    "Mükemmel!",
    "Süper!",
    "Bravo!",
    "Çok iyi!",
    "Doğru!",
    "İnanılmaz!",
    "Muhteşem!",
]

FAILURE_MESSAGES = [
    "Bir daha dene!",
    "Neredeyse!",
    "Devam et!",
    "Pes etme!",
    "Bir dahaki sefere!",
    "Pratik yapalım!",
]


class QuizFeedback:
    """Result of a single answer submission."""

    def __init__(self, is_correct: bool, message: str, explanation: Optional[str],
                 xp_gained: int, streak_count: int, hearts_lost: Optional[int] = None):
        self.is_correct = is_correct
        self.message = message
        self.explanation = explanation
        self.xp_gained = xp_gained
        self.streak_count = streak_count
        self.hearts_lost = hearts_lost  # None when no heart was lost

    def to_dict(self) -> dict:
        return {
            "is_correct": self.is_correct,
            "message": self.message,
            "explanation": self.explanation,
            "xp_gained": self.xp_gained,
            "streak_count": self.streak_count,
            "hearts_lost": self.hearts_lost,
        }


class FeedbackGenerator:
    """Builds feedback values and the text shown around each question."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def success_message(self) -> str:
        return self._rng.choice(SUCCESS_MESSAGES)

    def failure_message(self) -> str:
        return self._rng.choice(FAILURE_MESSAGES)

    def generate(self, is_correct: bool, question, xp_gained: int, streak_count: int,
                 hearts_lost: int = 0) -> QuizFeedback:
        """Build the feedback for one submission."""
        message = self.success_message() if is_correct else self.failure_message()
        return QuizFeedback(
            is_correct=is_correct,
            message=message,
            explanation=question.explanation,
            xp_gained=xp_gained,
            streak_count=streak_count,
            hearts_lost=hearts_lost if hearts_lost > 0 else None,
        )

    def generate_intro(self, question, question_num: int, total: int) -> str:
        """Generate intro text for a question."""
        return f"Soru {question_num}/{total}. {question.prompt}"

    def generate_session_summary(self, metrics) -> str:
        """Generate end-of-session summary from performance metrics."""
        accuracy = metrics.accuracy
        summary = (
            f"Test bitti! {metrics.questions_completed} soru cevapladın, "
            f"doğruluk oranın %{accuracy}. "
            f"Puan: {metrics.total_score}, kazanılan XP: {metrics.xp_gained}, "
            f"en uzun seri: {metrics.best_streak}. "
        )
        if accuracy >= 80:
            summary += "Olağanüstü bir performans!"
        elif accuracy >= 60:
            summary += "İyi iş! Pratik yapmaya devam et."
        else:
            summary += "Çalışmaya devam, pratikle gelişeceksin!"
        logger.debug(f"Session summary: {summary}")
        return summary
