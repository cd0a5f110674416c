"""Tests for the LLMCore module."""
import json
from unittest.mock import MagicMock, patch
from bilgibite_quiz.llm_core import LLMCore, describe_answer
from bilgibite_quiz.questions import (
    FillBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    OrderingQuestion,
    TrueFalseQuestion,
)


MC_QUESTION = MultipleChoiceQuestion(
    "q1", "Cumhuriyet hangi yıl ilan edildi?", options=["1920", "1923"], correct_answer=1,
)


def make_response(payload, status=200):
    resp = MagicMock()
    resp.status = status
    resp.read.return_value = json.dumps(payload).encode("utf-8")
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    return resp


def test_disabled_llm_is_unavailable():
    llm = LLMCore(enabled=False)
    assert llm.is_available() is False
    assert llm.generate("merhaba") == ""


def test_unreachable_server_is_unavailable():
    llm = LLMCore(enabled=True)
    with patch("urllib.request.urlopen", side_effect=OSError("connection refused")):
        assert llm.is_available() is False


def test_generate_explanation_posts_prompt():
    llm = LLMCore(enabled=True, model="llama3.2")
    responses = [make_response({"models": []}), make_response({"response": " 1923'te ilan edildi. "})]
    with patch("urllib.request.urlopen", side_effect=responses) as mock_open:
        text = llm.generate_explanation(MC_QUESTION)

    assert text == "1923'te ilan edildi."
    request = mock_open.call_args_list[1][0][0]
    payload = json.loads(request.data.decode("utf-8"))
    assert payload["model"] == "llama3.2"
    assert "B) 1923" in payload["prompt"]
    assert payload["stream"] is False


def test_generate_failure_marks_unavailable():
    llm = LLMCore(enabled=True)
    with patch("urllib.request.urlopen", side_effect=[make_response({}), OSError("timeout")]):
        assert llm.generate("soru") == ""
    assert llm.is_available() is False


def test_describe_answer_per_type():
    assert describe_answer(MC_QUESTION) == "B) 1923"
    assert describe_answer(TrueFalseQuestion("t", "p", correct_answer=False)) == "Yanlış"
    assert describe_answer(FillBlankQuestion("f", "p", correct_answers=["su", "water"])) == "su / water"
    assert describe_answer(MatchingQuestion("m", "p", correct_pairs={"a": 1})) == "a = 1"
    assert describe_answer(OrderingQuestion("o", "p", correct_order=[2, 1])) == "2, 1"
