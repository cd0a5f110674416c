#!/usr/bin/env python3
"""Demo entry point for the BilgiBite quiz."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from bilgibite_quiz.tutor import main


if __name__ == "__main__":
    main()
