"""Tests for the Tutor console runner."""
import pytest
from unittest.mock import MagicMock, patch
from bilgibite_quiz.feedback_generator import FeedbackGenerator
from bilgibite_quiz.questions import (
    FillBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    OrderingQuestion,
    TrueFalseQuestion,
)
from bilgibite_quiz.quiz_engine import QuizEngine
from bilgibite_quiz.tutor import Tutor, load_config


MC_QUESTION = MultipleChoiceQuestion(
    "q1", "Türkiye'nin başkenti neresidir?", options=["İstanbul", "Ankara", "İzmir"],
    correct_answer=1, explanation="Ankara 1923'ten beri başkenttir.",
)
TF_QUESTION = TrueFalseQuestion("q2", "Ağrı Dağı en yüksek dağdır, doğru mu?", correct_answer=True)
FB_QUESTION = FillBlankQuestion("q3", "Mavi Camii ____ şehrindedir.", correct_answers=["İstanbul"])


def make_tutor(questions=None, lives=5, session_manager=None, llm_core=None):
    engine = QuizEngine(questions or [MC_QUESTION, TF_QUESTION, FB_QUESTION],
                        initial_lives=lives, shuffle=False)
    tutor = Tutor(
        quiz_engine=engine,
        feedback_generator=FeedbackGenerator(),
        session_manager=session_manager,
        llm_core=llm_core,
    )
    tutor.speak = MagicMock()
    return tutor


@pytest.fixture
def tutor():
    return make_tutor()


# --- Commands ---

@pytest.mark.parametrize("text,expected", [
    ("geç", "skip"),
    ("Pas", "skip"),
    ("next.", "skip"),
    ("ÇIK", "quit"),
    ("exit!", "quit"),
    ("tekrar", "repeat"),
    ("AÇIKLA", "explain"),
    ("Ankara", None),
    ("geçmiş", None),
])
def test_handle_special_commands(tutor, text, expected):
    assert tutor.handle_special_commands(text) == expected


# --- Answer parsing ---

def test_parse_multiple_choice_letter_and_number(tutor):
    assert tutor.parse_answer(MC_QUESTION, "b") == 1
    assert tutor.parse_answer(MC_QUESTION, "3") == 2
    assert tutor.parse_answer(MC_QUESTION, "D") is None
    assert tutor.parse_answer(MC_QUESTION, "0") is None
    assert tutor.parse_answer(MC_QUESTION, "Ankara") is None


def test_parse_true_false(tutor):
    assert tutor.parse_answer(TF_QUESTION, "Doğru") is True
    assert tutor.parse_answer(TF_QUESTION, "evet") is True
    assert tutor.parse_answer(TF_QUESTION, "YANLIŞ") is False
    assert tutor.parse_answer(TF_QUESTION, "belki") is None


def test_parse_fill_blank_keeps_text(tutor):
    assert tutor.parse_answer(FB_QUESTION, "istanbul") == "istanbul"


def test_parse_matching(tutor):
    question = MatchingQuestion("m1", "Eşleştir", correct_pairs={"a": 1, "b": "x"})
    assert tutor.parse_answer(question, "a=1, b : x") == {"a": 1, "b": "x"}
    assert tutor.parse_answer(question, "a 1") is None


def test_parse_ordering(tutor):
    question = OrderingQuestion("o1", "Sırala", correct_order=[2, 3, 1])
    assert tutor.parse_answer(question, "2, 3, 1") == [2, 3, 1]
    assert tutor.parse_answer(question, "b a") == ["b", "a"]


# --- run_question ---

def test_run_question_correct_answer_advances(tutor):
    tutor.listen = MagicMock(return_value="b")
    assert tutor.run_question(MC_QUESTION, 1, 3) is True
    state = tutor.engine.get_state()
    assert state.score == 10
    assert state.current_question_index == 1


def test_run_question_quit_ends_session(tutor):
    tutor.listen = MagicMock(return_value="çık")
    assert tutor.run_question(MC_QUESTION, 1, 3) is False
    assert tutor.engine.get_state().answered_questions == []


def test_run_question_skip_costs_life(tutor):
    tutor.listen = MagicMock(return_value="geç")
    assert tutor.run_question(MC_QUESTION, 1, 3) is True
    state = tutor.engine.get_state()
    assert state.lives == 4
    assert state.current_question_index == 1
    tutor.speak.assert_any_call("Soru geçildi, bir can kaybettin.")


def test_run_question_repeat_does_not_consume_retries(tutor):
    tutor.listen = MagicMock(side_effect=["tekrar", "tekrar", "tekrar", "b"])
    assert tutor.run_question(MC_QUESTION, 1, 3) is True
    assert tutor.engine.get_state().score == 10


def test_run_question_unparseable_answers_exhaust_retries(tutor):
    tutor.listen = MagicMock(return_value="")
    assert tutor.run_question(MC_QUESTION, 1, 3) is True
    assert tutor.listen.call_count == 3
    assert tutor.engine.get_state().lives == 4
    tutor.speak.assert_any_call("Cevap alınamadı, sonraki soruya geçiyoruz.")


def test_run_question_wrong_answer_does_not_advance_when_out_of_lives():
    tutor = make_tutor(lives=1)
    tutor.listen = MagicMock(return_value="a")
    tutor.run_question(MC_QUESTION, 1, 3)
    state = tutor.engine.get_state()
    assert state.lives == 0
    assert state.current_question_index == 0
    assert tutor.engine.is_game_over() is True


def test_explain_uses_llm_when_available():
    llm = MagicMock()
    llm.is_available.return_value = True
    llm.generate_explanation.return_value = "Ankara, Kurtuluş Savaşı'nın merkeziydi."
    tutor = make_tutor(llm_core=llm)
    tutor.listen = MagicMock(side_effect=["açıkla", "b"])
    tutor.run_question(MC_QUESTION, 1, 3)
    tutor.speak.assert_any_call("Ankara, Kurtuluş Savaşı'nın merkeziydi.")


def test_explain_falls_back_to_question_explanation(tutor):
    tutor.explain(MC_QUESTION)
    tutor.speak.assert_called_with(MC_QUESTION.explanation)


def test_state_updates_reach_status_line(tutor):
    tutor.listen = MagicMock(return_value="b")
    tutor.run_question(MC_QUESTION, 1, 3)
    assert "Puan: 10" in tutor.status_line()


def test_tick_timer_completes_when_budget_spent(tutor):
    start = tutor.engine.get_state().start_time
    with patch("bilgibite_quiz.tutor.time.time", return_value=start + 500):
        tutor.tick_timer()
    state = tutor.engine.get_state()
    assert state.time_remaining == 0
    assert state.is_completed is True


# --- run ---

def test_run_full_session_saves_metrics():
    session = MagicMock()
    tutor = make_tutor(session_manager=session)
    tutor.listen = MagicMock(side_effect=["b", "doğru", "  istanbul "])
    metrics = tutor.run()
    assert metrics.total_score == 30
    assert metrics.accuracy == 100
    assert tutor.engine.get_state().is_completed is True
    session.save_session.assert_called_once()
    _, kwargs = session.save_session.call_args
    assert kwargs["completed"] is True


def test_run_stops_when_lives_run_out():
    session = MagicMock()
    tutor = make_tutor(lives=1, session_manager=session)
    tutor.listen = MagicMock(return_value="a")
    metrics = tutor.run()
    assert metrics.lives_remaining == 0
    assert metrics.questions_completed == 1
    assert tutor.listen.call_count == 1
    _, kwargs = session.save_session.call_args
    assert kwargs["completed"] is False


def test_run_quit_early():
    tutor = make_tutor()
    tutor.listen = MagicMock(return_value="quit")
    metrics = tutor.run()
    assert metrics.questions_completed == 0
    tutor.speak.assert_any_call("Test erken bitirildi. Görüşmek üzere!")


# --- Config ---

def test_load_config_missing_file(tmp_path):
    assert load_config(str(tmp_path / "none.yaml")) == {}


def test_load_config_reads_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("quiz:\n  initial_lives: 3\n", encoding="utf-8")
    assert load_config(str(path)) == {"quiz": {"initial_lives": 3}}


def test_answer_after_time_budget_is_not_scored():
    tutor = make_tutor(questions=[MC_QUESTION, TF_QUESTION])
    start = tutor.engine.get_state().start_time
    tutor.listen = MagicMock(return_value="b")
    with patch("bilgibite_quiz.tutor.time.time", return_value=start + 500):
        assert tutor.run_question(MC_QUESTION, 1, 2) is True
    state = tutor.engine.get_state()
    assert state.score == 0
    assert state.answered_questions == []
    assert state.is_completed is True
    tutor.speak.assert_any_call("Süre doldu!")


def test_matching_question_lists_choices(tutor, capsys):
    question = MatchingQuestion("m1", "Eserleri yazarlarıyla eşleştirin.", correct_pairs={
        "Çalıkuşu": "Reşat Nuri Güntekin",
        "Yaban": "Yakup Kadri Karaosmanoğlu",
    })
    tutor.show_question(question, 1, 1)
    out = capsys.readouterr().out
    assert "Çalıkuşu" in out
    assert "Reşat Nuri Güntekin" in out
    assert "Yakup Kadri Karaosmanoğlu" in out
