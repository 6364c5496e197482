# ============================================================================
# Answer Evaluation Service
# ============================================================================
"""
Server-side grading. ``is_correct`` on a practice answer always comes from
here, never from the client.

- mcq: exactly one selected option, and it is the keyed one
- mrq: the selected set equals the keyed set (order and repeats ignored)
- short_answer: case-insensitive match after trimming and collapsing spaces
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
import re
import logging

from app.models.curriculum import Question

logger = logging.getLogger(__name__)


class QuestionType(str, Enum):
    MCQ = "mcq"
    MRQ = "mrq"
    SHORT_ANSWER = "short_answer"


@dataclass
class EvaluationResult:
    is_correct: bool
    correct_options: Optional[List[int]] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


class AnswerEvaluator:
    """Grades a submitted answer against a question's answer key"""

    def evaluate(
        self,
        question: Question,
        selected_options: Optional[List[int]] = None,
        text_answer: Optional[str] = None
    ) -> EvaluationResult:
        question_type = QuestionType(question.question_type)

        if question_type == QuestionType.MCQ:
            is_correct = self._evaluate_mcq(question, selected_options)
        elif question_type == QuestionType.MRQ:
            is_correct = self._evaluate_mrq(question, selected_options)
        else:
            is_correct = self._evaluate_short_answer(question, text_answer)

        return EvaluationResult(
            is_correct=is_correct,
            correct_options=list(question.correct_options or []) or None,
            correct_answer=question.answer,
            explanation=question.explanation,
        )

    def _evaluate_mcq(self, question: Question, selected: Optional[List[int]]) -> bool:
        if not selected or len(set(selected)) != 1:
            return False
        return set(selected) == set(question.correct_options or [])

    def _evaluate_mrq(self, question: Question, selected: Optional[List[int]]) -> bool:
        if not selected:
            return False
        return set(selected) == set(question.correct_options or [])

    def _evaluate_short_answer(self, question: Question, text_answer: Optional[str]) -> bool:
        if not text_answer or not question.answer:
            return False
        return self._normalize(text_answer) == self._normalize(question.answer)

    @staticmethod
    def _normalize(text: str) -> str:
        return re.sub(r"\s+", " ", text.strip().lower())
