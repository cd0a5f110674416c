"""LLM Core: Optional AI explanations from a local LLM via Ollama."""

import json
import logging
import urllib.request
from typing import Optional

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Sen Türk sınavlarına (YKS, KPSS, ALES) hazırlanan öğrencilere yardım eden "
    "sabırlı bir öğretmensin. Kısa, açık ve Türkçe cevap ver."
)


class LLMCore:
    """Interfaces with a local LLM via Ollama to explain questions on demand."""

    def __init__(self, model: str = "llama3.2", base_url: str = "http://localhost:11434",
                 enabled: bool = False, timeout: float = 10.0):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.enabled = enabled
        self.timeout = timeout
        self._available: Optional[bool] = None

    def is_available(self) -> bool:
        """Check if the Ollama server is reachable."""
        if not self.enabled:
            return False
        if self._available is not None:
            return self._available
        try:
            with urllib.request.urlopen(f"{self.base_url}/api/tags", timeout=2) as resp:
                self._available = resp.status == 200
        except OSError as e:
            logger.debug(f"Ollama not reachable at {self.base_url}: {e}")
            self._available = False
        return self._available

    def generate(self, prompt: str, system: str = SYSTEM_PROMPT) -> str:
        """Generate a response from the LLM; empty string when unavailable."""
        if not self.is_available():
            return ""
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        if system:
            payload["system"] = system

        req = urllib.request.Request(
            f"{self.base_url}/api/generate",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                result = json.loads(resp.read().decode("utf-8"))
                return result.get("response", "").strip()
        except (OSError, ValueError) as e:
            logger.error(f"LLM generate error: {e}")
            self._available = False
            return ""

    def generate_explanation(self, question) -> str:
        """Explain a question and its correct answer in a few sentences."""
        lines = [f"Soru: {question.prompt}"]
        options = getattr(question, "options", None)
        if options:
            lines.append("Seçenekler: " + "; ".join(
                f"{chr(ord('A') + i)}) {opt}" for i, opt in enumerate(options)))
        lines.append(f"Doğru cevap: {describe_answer(question)}")
        if question.explanation:
            lines.append(f"Mevcut açıklama: {question.explanation}")
        lines.append("Bu sorunun çözümünü 2-3 cümleyle bir öğrenciye açıkla.")
        return self.generate("\n".join(lines))


def describe_answer(question) -> str:
    """Human-readable rendering of a question's answer key."""
    data = question.answer_key()
    if "options" in data:
        index = data["correct_answer"]
        options = data["options"]
        label = chr(ord("A") + index)
        return f"{label}) {options[index]}" if 0 <= index < len(options) else label
    if "correct_answers" in data:
        return " / ".join(data["correct_answers"])
    if "correct_pairs" in data:
        return ", ".join(f"{k} = {v}" for k, v in data["correct_pairs"].items())
    if "correct_order" in data:
        return ", ".join(str(item) for item in data["correct_order"])
    if "correct_answer" in data:
        return "Doğru" if data["correct_answer"] else "Yanlış"
    return ""
