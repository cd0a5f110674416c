"""Session Manager: Stores finished quiz sessions in SQLite."""

import json
import sqlite3
import time
import uuid
import logging
from contextlib import closing
from typing import Dict, List

logger = logging.getLogger(__name__)

EMPTY_STATS = {
    "total_sessions": 0,
    "total_score": 0,
    "total_xp": 0,
    "avg_accuracy": 0.0,
    "best_streak": 0,
    "questions_answered": 0,
}


class SessionManager:
    """Persists final performance metrics and answer logs to SQLite.

    Database failures are logged and reported as empty results; they never
    abort the quiz that is being saved.
    """

    def __init__(self, db_path: str = "bilgibite_sessions.db"):
        self.db_path = db_path
        self._init_db()

    def _connect(self):
        return closing(sqlite3.connect(self.db_path))

    def _init_db(self):
        """Initialize the SQLite database."""
        with self._connect() as conn:
            c = conn.cursor()
            c.execute("""
                CREATE TABLE IF NOT EXISTS quiz_sessions (
                    session_id TEXT PRIMARY KEY,
                    finished_at REAL,
                    completed INTEGER,
                    total_score INTEGER,
                    xp_gained INTEGER,
                    accuracy INTEGER,
                    best_streak INTEGER,
                    total_time REAL,
                    average_time REAL,
                    lives_remaining INTEGER,
                    questions_completed INTEGER,
                    perfect_questions INTEGER
                )
            """)
            c.execute("""
                CREATE TABLE IF NOT EXISTS answered_questions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id TEXT,
                    position INTEGER,
                    question_id TEXT,
                    is_correct INTEGER,
                    time_spent REAL,
                    user_answer TEXT,
                    FOREIGN KEY (session_id) REFERENCES quiz_sessions(session_id)
                )
            """)
            conn.commit()
        logger.info(f"Session DB initialized at {self.db_path}")

    def save_session(self, metrics, answered_questions, completed: bool = True) -> str:
        """Save a finished session; returns the generated session id."""
        session_id = str(uuid.uuid4())
        try:
            # Answers the engine accepted may not be JSON types (sets, objects).
            answer_rows = [
                (session_id, i, a.question_id, int(a.is_correct), a.time_spent,
                 json.dumps(a.user_answer, ensure_ascii=False, default=str))
                for i, a in enumerate(answered_questions)
            ]
            with self._connect() as conn:
                c = conn.cursor()
                c.execute("""
                    INSERT INTO quiz_sessions
                    (session_id, finished_at, completed, total_score, xp_gained, accuracy,
                     best_streak, total_time, average_time, lives_remaining,
                     questions_completed, perfect_questions)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    session_id, time.time(), int(completed), metrics.total_score,
                    metrics.xp_gained, metrics.accuracy, metrics.best_streak,
                    metrics.total_time, metrics.average_time_per_question,
                    metrics.lives_remaining, metrics.questions_completed,
                    metrics.perfect_questions,
                ))
                c.executemany("""
                    INSERT INTO answered_questions
                    (session_id, position, question_id, is_correct, time_spent, user_answer)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, answer_rows)
                conn.commit()
            logger.info(f"Saved session {session_id}")
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"Failed to save session: {e}")
        return session_id

    def get_history(self, limit: int = 10) -> List[Dict]:
        """Return the most recent sessions, newest first."""
        try:
            with self._connect() as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(
                    "SELECT * FROM quiz_sessions ORDER BY finished_at DESC, rowid DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to read session history: {e}")
            return []
        return [dict(row) for row in rows]

    def get_answers(self, session_id: str) -> List[Dict]:
        """Return the answer log of a stored session in submission order."""
        try:
            with self._connect() as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(
                    "SELECT question_id, is_correct, time_spent, user_answer FROM answered_questions "
                    "WHERE session_id = ? ORDER BY position",
                    (session_id,),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to read answers for {session_id}: {e}")
            return []
        return [
            {
                "question_id": row["question_id"],
                "is_correct": bool(row["is_correct"]),
                "time_spent": row["time_spent"],
                "user_answer": json.loads(row["user_answer"]),
            }
            for row in rows
        ]

    def get_stats(self) -> dict:
        """Aggregate statistics over all stored sessions."""
        try:
            with self._connect() as conn:
                row = conn.execute("""
                    SELECT COUNT(*), COALESCE(SUM(total_score), 0), COALESCE(SUM(xp_gained), 0),
                           COALESCE(AVG(accuracy), 0), COALESCE(MAX(best_streak), 0),
                           COALESCE(SUM(questions_completed), 0)
                    FROM quiz_sessions
                """).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to read session stats: {e}")
            return dict(EMPTY_STATS)
        return {
            "total_sessions": row[0],
            "total_score": row[1],
            "total_xp": row[2],
            "avg_accuracy": float(row[3]),
            "best_streak": row[4],
            "questions_answered": row[5],
        }
