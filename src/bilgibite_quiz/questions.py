"""Question Store: Typed question variants and question bank loading."""

import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MULTIPLE_CHOICE = "multiple-choice"
TRUE_FALSE = "true-false"
FILL_BLANK = "fill-blank"
MATCHING = "matching"
ORDERING = "ordering"

QUESTION_TYPES = (MULTIPLE_CHOICE, TRUE_FALSE, FILL_BLANK, MATCHING, ORDERING)

DEFAULT_POINTS = 10
DEFAULT_TIME_LIMIT = 60

TRUE_FALSE_CUES = ("doğru mu", "yanlış mı")


class QuestionFormatError(ValueError):
    """Raised when a question record cannot be turned into a typed question."""


class Question:
    """Common fields shared by every question type."""

    type = "unknown"

    def __init__(self, id: str, prompt: str, points: int = DEFAULT_POINTS,
                 explanation: Optional[str] = None, time_limit: Optional[int] = None,
                 subject: Optional[str] = None, difficulty: Optional[str] = None,
                 topic: Optional[str] = None, type: Optional[str] = None):
        if points is None:
            points = DEFAULT_POINTS
        if points < 0:
            raise QuestionFormatError(f"Question {id!r} has negative points: {points}")
        self.id = id
        self.prompt = prompt
        self.points = points
        self.explanation = explanation
        self.time_limit = time_limit
        self.subject = subject
        self.difficulty = difficulty
        self.topic = topic
        if type is not None:
            self.type = type

    def answer_key(self) -> dict:
        return {}

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type,
            "prompt": self.prompt,
            "points": self.points,
            "explanation": self.explanation,
            "time_limit": self.time_limit,
            "subject": self.subject,
            "difficulty": self.difficulty,
            "topic": self.topic,
        }
        data.update(self.answer_key())
        return data

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r}, type={self.type!r})"


class MultipleChoiceQuestion(Question):
    type = MULTIPLE_CHOICE

    def __init__(self, id: str, prompt: str, options: List[str], correct_answer: int, **kwargs):
        super().__init__(id, prompt, **kwargs)
        self.options = list(options)
        self.correct_answer = correct_answer

    def answer_key(self) -> dict:
        return {"options": list(self.options), "correct_answer": self.correct_answer}


class TrueFalseQuestion(Question):
    type = TRUE_FALSE

    def __init__(self, id: str, prompt: str, correct_answer: bool, **kwargs):
        super().__init__(id, prompt, **kwargs)
        self.correct_answer = correct_answer

    def answer_key(self) -> dict:
        return {"correct_answer": self.correct_answer}


class FillBlankQuestion(Question):
    type = FILL_BLANK

    def __init__(self, id: str, prompt: str, correct_answers: List[str], **kwargs):
        super().__init__(id, prompt, **kwargs)
        if not correct_answers:
            raise QuestionFormatError(f"Fill-blank question {id!r} has no accepted answers")
        self.correct_answers = list(correct_answers)

    def answer_key(self) -> dict:
        return {"correct_answers": list(self.correct_answers)}


class MatchingQuestion(Question):
    type = MATCHING

    def __init__(self, id: str, prompt: str, correct_pairs: Dict[str, Any], **kwargs):
        super().__init__(id, prompt, **kwargs)
        self.correct_pairs = dict(correct_pairs)

    def answer_key(self) -> dict:
        return {"correct_pairs": dict(self.correct_pairs)}


class OrderingQuestion(Question):
    type = ORDERING

    def __init__(self, id: str, prompt: str, correct_order: List[Any],
                 items: Optional[List[Any]] = None, **kwargs):
        super().__init__(id, prompt, **kwargs)
        self.correct_order = list(correct_order)
        self.items = list(items) if items is not None else list(correct_order)

    def answer_key(self) -> dict:
        return {"items": list(self.items), "correct_order": list(self.correct_order)}


QUESTION_CLASSES = {
    MULTIPLE_CHOICE: MultipleChoiceQuestion,
    TRUE_FALSE: TrueFalseQuestion,
    FILL_BLANK: FillBlankQuestion,
    MATCHING: MatchingQuestion,
    ORDERING: OrderingQuestion,
}


def _first(record: dict, *keys, default=None):
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default


def _normalize_type(raw: str) -> str:
    # The web app stores types as multiple_choice / true_false.
    return str(raw).strip().lower().replace("_", "-")


def _turkish_lower(text: str) -> str:
    return text.replace("I", "ı").replace("İ", "i").lower()


def infer_question_type(prompt: str) -> str:
    """Guess the type of a generic record from Turkish phrase cues in its prompt."""
    lowered = _turkish_lower(prompt)
    if any(cue in lowered for cue in TRUE_FALSE_CUES):
        return TRUE_FALSE
    return MULTIPLE_CHOICE


def question_from_dict(record: dict) -> Question:
    """Build a typed question from a loosely shaped record.

    Accepts the snake_case keys used in JSON banks as well as the camelCase
    keys produced by the web app (``questionText``, ``correctAnswer`` and the
    ``interactiveData`` blob).
    """
    if not isinstance(record, dict):
        raise QuestionFormatError(f"Question record must be a mapping, got {type(record).__name__}")

    qid = _first(record, "id", "question_id", "questionId")
    if qid is None or str(qid) == "":
        raise QuestionFormatError("Question record is missing an id")
    qid = str(qid)

    prompt = _first(record, "prompt", "question_text", "questionText", "question")
    if not prompt:
        raise QuestionFormatError(f"Question {qid!r} has no prompt text")

    raw_type = _first(record, "type", "question_type", "questionType")
    if raw_type is None:
        raise QuestionFormatError(f"Question {qid!r} has no type")
    qtype = _normalize_type(raw_type)
    if qtype not in QUESTION_CLASSES:
        raise QuestionFormatError(f"Question {qid!r} has unsupported type {raw_type!r}")

    interactive = record.get("interactiveData") or record.get("interactive_data") or {}
    if not isinstance(interactive, dict):
        raise QuestionFormatError(f"Question {qid!r} has malformed interactive data")

    points = _first(record, "points", default=DEFAULT_POINTS)
    if not isinstance(points, int) or isinstance(points, bool):
        raise QuestionFormatError(f"Question {qid!r} has non-integer points: {points!r}")

    common = {
        "points": points,
        "explanation": _first(record, "explanation"),
        "time_limit": _first(record, "time_limit", "timeLimit"),
        "subject": _first(record, "subject"),
        "difficulty": _first(record, "difficulty"),
        "topic": _first(record, "topic"),
    }

    if qtype == MULTIPLE_CHOICE:
        options = _first(record, "options", default=[])
        correct = _first(record, "correct_answer", "correctAnswer")
        if not isinstance(correct, int) or isinstance(correct, bool):
            raise QuestionFormatError(f"Question {qid!r} needs an integer correct option index")
        if options and not 0 <= correct < len(options):
            raise QuestionFormatError(f"Question {qid!r} correct index {correct} out of range")
        return MultipleChoiceQuestion(qid, prompt, options=options, correct_answer=correct, **common)

    if qtype == TRUE_FALSE:
        correct = _first(record, "correct_answer", "correctAnswer")
        if not isinstance(correct, bool):
            raise QuestionFormatError(f"Question {qid!r} needs a boolean correct answer")
        return TrueFalseQuestion(qid, prompt, correct_answer=correct, **common)

    if qtype == FILL_BLANK:
        accepted = _first(record, "correct_answers", "correctAnswers",
                          default=_first(interactive, "correctAnswers", "correct_answers"))
        if accepted is None:
            single = _first(record, "correct_answer", "correctAnswer",
                            default=_first(interactive, "correctAnswer", "correct_answer"))
            accepted = [single] if single is not None else []
        if isinstance(accepted, str):
            accepted = [accepted]
        if not all(isinstance(a, str) for a in accepted):
            raise QuestionFormatError(f"Question {qid!r} has non-text accepted answers")
        return FillBlankQuestion(qid, prompt, correct_answers=accepted, **common)

    if qtype == MATCHING:
        pairs = _first(record, "correct_pairs", "correctPairs",
                       default=_first(interactive, "correctPairs", "correct_pairs"))
        if not isinstance(pairs, dict) or not pairs:
            raise QuestionFormatError(f"Question {qid!r} needs a non-empty pair mapping")
        return MatchingQuestion(qid, prompt, correct_pairs=pairs, **common)

    order = _first(record, "correct_order", "correctOrder",
                   default=_first(interactive, "correctOrder", "correct_order"))
    if not isinstance(order, list) or not order:
        raise QuestionFormatError(f"Question {qid!r} needs a non-empty correct order")
    items = _first(record, "items", default=_first(interactive, "items"))
    return OrderingQuestion(qid, prompt, correct_order=order, items=items, **common)


def restore_question(record: dict) -> Question:
    """Rebuild a question from ``Question.to_dict`` output.

    Known types go through the strict parser. Any other type comes back as a
    plain ``Question`` carrying that type, so saved sessions holding such
    questions can still be restored.
    """
    raw_type = record.get("type") if isinstance(record, dict) else None
    if raw_type is None or _normalize_type(raw_type) in QUESTION_CLASSES:
        return question_from_dict(record)
    if record.get("id") is None:
        raise QuestionFormatError("Question record is missing an id")
    return Question(
        str(record["id"]),
        record.get("prompt", ""),
        points=record.get("points", DEFAULT_POINTS),
        explanation=record.get("explanation"),
        time_limit=record.get("time_limit"),
        subject=record.get("subject"),
        difficulty=record.get("difficulty"),
        topic=record.get("topic"),
        type=raw_type,
    )


def convert_record(record: dict) -> Question:
    """Convert a generic question record, inferring the type when it is absent."""
    if not isinstance(record, dict):
        raise QuestionFormatError(f"Question record must be a mapping, got {type(record).__name__}")
    record = dict(record)
    raw_type = _first(record, "type", "question_type", "questionType")
    if raw_type is None:
        prompt = _first(record, "prompt", "question_text", "questionText", "question") or ""
        record["type"] = infer_question_type(prompt)
    elif _normalize_type(raw_type) == MULTIPLE_CHOICE:
        prompt = _first(record, "prompt", "question_text", "questionText", "question") or ""
        record["type"] = infer_question_type(prompt)

    if _normalize_type(record.get("type", raw_type)) == TRUE_FALSE:
        for key in ("correct_answer", "correctAnswer"):
            value = record.get(key)
            if isinstance(value, int) and not isinstance(value, bool):
                # Generic records store the index of the "Doğru" / "Yanlış" option.
                record[key] = value == 0
    record.setdefault("time_limit", DEFAULT_TIME_LIMIT)
    return question_from_dict(record)


def load_questions(path: str) -> List[Question]:
    """Load a JSON question bank and convert every record."""
    with open(path, "r", encoding="utf-8") as f:
        records = json.load(f)
    if not isinstance(records, list):
        raise QuestionFormatError(f"Question bank {path} must contain a JSON list")
    questions = []
    for i, record in enumerate(records):
        try:
            questions.append(convert_record(record))
        except QuestionFormatError as e:
            logger.error(f"Invalid question #{i} in {path}: {e}")
            raise
    logger.info(f"Loaded {len(questions)} questions from {path}")
    return questions
