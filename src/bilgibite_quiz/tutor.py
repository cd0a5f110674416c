"""Main Tutor Orchestrator: Text-mode quiz loop driving a QuizEngine."""

import argparse
import logging
import re
import time
from pathlib import Path
from typing import Any, Optional

import yaml

from bilgibite_quiz.questions import (
    FILL_BLANK,
    MATCHING,
    MULTIPLE_CHOICE,
    ORDERING,
    TRUE_FALSE,
    Question,
)

logger = logging.getLogger(__name__)

SKIP_COMMANDS = {"geç", "gec", "pas", "skip", "next", "pass"}
QUIT_COMMANDS = {"çık", "cik", "bitir", "quit", "exit", "stop"}
REPEAT_COMMANDS = {"tekrar", "tekrarla", "repeat"}
EXPLAIN_COMMANDS = {"açıkla", "acikla", "explain"}

TRUE_WORDS = {"doğru", "dogru", "d", "evet", "e", "true", "t"}
FALSE_WORDS = {"yanlış", "yanlis", "y", "hayır", "hayir", "h", "false", "f"}


def turkish_lower(text: str) -> str:
    return text.replace("I", "ı").replace("İ", "i").lower()


def _coerce(value: str) -> Any:
    value = value.strip()
    if re.fullmatch(r"-?\d+", value):
        return int(value)
    return value


class Tutor:
    """
    Console front end for a quiz session.
    Renders questions, parses typed answers and commands, drives the engine's
    timer and stores the final metrics when a session manager is given.
    """

    def __init__(
        self,
        quiz_engine,
        feedback_generator,
        session_manager=None,
        llm_core=None,
        max_retries: int = 2,
    ):
        self.engine = quiz_engine
        self.feedback = feedback_generator
        self.session = session_manager
        self.llm = llm_core
        self.max_retries = max_retries
        state = self.engine.get_state()
        self._time_budget = state.time_remaining
        self._last_state = state
        self._unsubscribe = self.engine.subscribe(self._on_state_change)

    def _on_state_change(self, state):
        if state.lives != self._last_state.lives:
            logger.debug(f"Lives: {self._last_state.lives} -> {state.lives}")
        self._last_state = state

    def speak(self, text: str):
        print(f"\n[BilgiBite]: {text}")

    def listen(self) -> str:
        try:
            return input("\n[Sen]: ").strip()
        except (EOFError, KeyboardInterrupt):
            return ""

    def status_line(self) -> str:
        state = self._last_state
        return (f"Can: {'♥' * state.lives or '-'} | Puan: {state.score} | "
                f"XP: {state.xp_gained} | Seri: {state.streak} | "
                f"İlerleme: %{self.engine.get_progress()}")

    def handle_special_commands(self, text: str) -> Optional[str]:
        """Map a typed command to 'skip', 'quit', 'repeat' or 'explain'."""
        word = re.sub(r"[^\w\s]", "", turkish_lower(text)).strip()
        if word in SKIP_COMMANDS:
            return "skip"
        if word in QUIT_COMMANDS:
            return "quit"
        if word in REPEAT_COMMANDS:
            return "repeat"
        if word in EXPLAIN_COMMANDS:
            return "explain"
        return None

    def parse_answer(self, question: Question, text: str) -> Any:
        """Turn typed text into the answer shape the question type expects; None if unparseable."""
        text = text.strip()
        if not text:
            return None

        if question.type == MULTIPLE_CHOICE:
            count = len(question.options)
            if re.fullmatch(r"[A-Za-z]", text):
                index = ord(text.upper()) - ord("A")
            elif re.fullmatch(r"\d+", text):
                index = int(text) - 1
            else:
                return None
            if index < 0 or (count and index >= count):
                return None
            return index

        if question.type == TRUE_FALSE:
            word = turkish_lower(text).rstrip(".!")
            if word in TRUE_WORDS:
                return True
            if word in FALSE_WORDS:
                return False
            return None

        if question.type == FILL_BLANK:
            return text

        if question.type == MATCHING:
            pairs = {}
            for part in text.split(","):
                match = re.fullmatch(r"\s*([^=:]+?)\s*[=:]\s*(.+?)\s*", part)
                if not match:
                    return None
                pairs[match.group(1)] = _coerce(match.group(2))
            return pairs

        if question.type == ORDERING:
            items = [p for p in re.split(r"[,\s]+", text) if p]
            return [_coerce(item) for item in items]

        return text

    def show_question(self, question: Question, question_num: int, total: int):
        self.speak(self.feedback.generate_intro(question, question_num, total))
        if question.type == MULTIPLE_CHOICE:
            for i, option in enumerate(question.options):
                print(f"  {chr(ord('A') + i)}) {option}")
        elif question.type == TRUE_FALSE:
            print("  (doğru / yanlış)")
        elif question.type == MATCHING:
            print("  Eşleştir: " + ", ".join(str(k) for k in question.correct_pairs))
            print("  Seçenekler: " + ", ".join(sorted(str(v) for v in question.correct_pairs.values())))
            print("  (ör. anahtar=seçenek, anahtar=seçenek)")
        elif question.type == ORDERING:
            print("  Sırala: " + ", ".join(str(item) for item in question.items))

    def explain(self, question: Question):
        if self.llm and self.llm.is_available():
            explanation = self.llm.generate_explanation(question)
            if explanation:
                self.speak(explanation)
                return
        if question.explanation:
            self.speak(question.explanation)
        else:
            self.speak("Bu soru için açıklama yok.")

    def tick_timer(self):
        """Feed the remaining time to the engine."""
        elapsed = time.time() - self.engine.get_state().start_time
        self.engine.update_timer(max(int(self._time_budget - elapsed), 0))

    def run_question(self, question: Question, question_num: int, total: int) -> bool:
        """Run a single question interaction. Returns False if the user quits."""
        self.show_question(question, question_num, total)

        attempts = 0
        while True:
            text = self.listen()
            self.tick_timer()
            if self.engine.is_game_over():
                self.speak("Süre doldu!")
                return True
            command = self.handle_special_commands(text) if text else None
            if command == "quit":
                return False
            if command == "repeat":
                self.show_question(question, question_num, total)
                continue
            if command == "explain":
                self.explain(question)
                continue
            if command == "skip":
                self.engine.skip_question()
                self.speak("Soru geçildi, bir can kaybettin.")
                self.tick_timer()
                return True

            answer = self.parse_answer(question, text) if text else None
            if answer is None:
                attempts += 1
                if attempts > self.max_retries:
                    self.speak("Cevap alınamadı, sonraki soruya geçiyoruz.")
                    self.engine.skip_question()
                    self.tick_timer()
                    return True
                self.speak("Cevabını anlayamadım. Tekrar dene ya da 'geç' yaz.")
                continue

            feedback = self.engine.submit_answer(answer)
            text_out = feedback.message
            if feedback.is_correct:
                text_out += f" +{feedback.xp_gained} XP (seri: {feedback.streak_count})"
            elif feedback.hearts_lost:
                text_out += f" -{feedback.hearts_lost} can"
            self.speak(text_out)
            if feedback.explanation:
                print(f"  Açıklama: {feedback.explanation}")
            print(f"  {self.status_line()}")

            self.tick_timer()
            if not self.engine.is_game_over():
                self.engine.next_question()
            return True

    def run(self):
        """Run the full quiz session and return its performance metrics."""
        total = len(self.engine.get_state().questions)
        self.speak(
            f"BilgiBite'a hoş geldin! Bu testte {total} soru var, "
            f"{self._last_state.lives} canın ile başlıyorsun. Başlayalım!"
        )

        while not self.engine.is_game_over():
            question = self.engine.get_current_question()
            if question is None:
                break
            question_num = self.engine.get_state().current_question_index + 1
            if not self.run_question(question, question_num, total):
                self.speak("Test erken bitirildi. Görüşmek üzere!")
                break

        state = self.engine.get_state()
        if state.lives <= 0 and not state.is_completed:
            self.speak("Canların bitti!")

        metrics = self.engine.get_performance_metrics()
        if self.session is not None:
            self.session.save_session(metrics, state.answered_questions,
                                      completed=state.is_completed)
        self.speak(self.feedback.generate_session_summary(metrics))

        logger.info(f"Session finished: {metrics.to_dict()}")
        self._unsubscribe()
        return metrics


def load_config(path: str) -> dict:
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def main(argv=None):
    parser = argparse.ArgumentParser(description="BilgiBite sınav hazırlık testi")
    parser.add_argument("--config", default="config.yaml", help="Config file path")
    parser.add_argument("--questions", default="data/questions.json", help="Question bank path")
    parser.add_argument("--lives", type=int, default=None, help="Starting lives")
    parser.add_argument("--db", default=None, help="SQLite database for session history")
    parser.add_argument("--explain", action="store_true", help="Enable local LLM explanations")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    config = load_config(args.config)
    quiz_cfg = config.get("quiz", {})
    session_cfg = config.get("session", {})
    llm_cfg = config.get("llm", {})

    from bilgibite_quiz.feedback_generator import FeedbackGenerator
    from bilgibite_quiz.llm_core import LLMCore
    from bilgibite_quiz.questions import load_questions
    from bilgibite_quiz.quiz_engine import QuizEngine
    from bilgibite_quiz.session_manager import SessionManager

    questions = load_questions(args.questions)
    feedback_gen = FeedbackGenerator()
    engine = QuizEngine(
        questions,
        initial_lives=args.lives or quiz_cfg.get("initial_lives", 5),
        seconds_per_question=quiz_cfg.get("seconds_per_question", 60),
        feedback_generator=feedback_gen,
    )
    llm_core = LLMCore(
        model=llm_cfg.get("model", "llama3.2"),
        base_url=llm_cfg.get("base_url", "http://localhost:11434"),
        enabled=args.explain or llm_cfg.get("enabled", False),
    )
    session_mgr = SessionManager(db_path=args.db or session_cfg.get("db_path", "bilgibite_sessions.db"))

    tutor = Tutor(
        quiz_engine=engine,
        feedback_generator=feedback_gen,
        session_manager=session_mgr,
        llm_core=llm_core,
    )
    return tutor.run()


if __name__ == "__main__":
    main()
