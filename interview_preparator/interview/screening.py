"""
Screening round: generated questions and per-answer coaching feedback.
"""
import logging
from typing import Any, Dict, List

from ..config import (
    SCREENING_DEFAULT_ROLE, SCREENING_DEFAULT_EXPERIENCE,
    SCREENING_DEFAULT_SKILLS, SCREENING_QUESTION_COUNT
)
from ..infrastructure.llm import VertexRestClient, LLMError
from .prompts import InterviewPrompts, parse_question_list

logger = logging.getLogger("screening")

FEEDBACK_KEYS = ("assessment", "strength", "improvement", "scoreOutOf10")


class ScreeningEngine:
    """Generates screening questions and scores answers with the LLM."""

    def __init__(self, llm_client: VertexRestClient, question_count: int = SCREENING_QUESTION_COUNT):
        self.llm_client = llm_client
        self.question_count = question_count

    def generate_questions(self, role: str = "", experience: str = "", skills: str = "") -> List[str]:
        prompt = InterviewPrompts.screening_questions(
            role or SCREENING_DEFAULT_ROLE,
            experience or SCREENING_DEFAULT_EXPERIENCE,
            skills or SCREENING_DEFAULT_SKILLS,
            self.question_count,
        )
        text = self.llm_client.generate_content(prompt, temperature=0.7)
        questions = parse_question_list(text)
        if not questions:
            raise LLMError("No questions generated")
        logger.info(f"Generated {len(questions)} screening questions")
        return questions

    def evaluate_answer(self, question: str, answer: str) -> Dict[str, Any]:
        feedback = self.llm_client.generate_json(InterviewPrompts.screening_feedback(question, answer))
        missing = [key for key in FEEDBACK_KEYS if key not in feedback]
        if missing:
            logger.warning(f"Feedback missing keys: {missing}")
        return feedback
