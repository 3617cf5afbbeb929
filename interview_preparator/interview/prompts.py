"""
Interview prompt templates.

This module contains all the prompt templates used by the backend, keeping
them separate from the business logic for easier maintenance and editing.
"""
import re
from typing import List, Sequence

from .models import Speaker, Turn


class InterviewPrompts:
    """Collection of all interview-related prompts."""

    @staticmethod
    def screening_questions(role: str, experience: str, skills: str, count: int = 5) -> str:
        """Prompt for the screening round question list."""
        return (
            f"Generate a numbered list of {count} unique and thought-provoking screening interview "
            f"questions tailored for a candidate applying for a '{role}' position with '{experience}' "
            f"experience, highlighting skills like '{skills}'. Avoid generic questions. "
            f"Each question should start with the number and a period."
        )

    @staticmethod
    def screening_feedback(question: str, answer: str) -> str:
        """Prompt for scoring a single screening answer."""
        return f"""
You are an expert interview coach. Provide feedback and a score out of 10 for the following answer. Return ONLY a JSON object with keys: assessment, strength, improvement, scoreOutOf10.

Interview Question: "{question}"
Candidate's Answer: "{answer}"
        """.strip()

    @staticmethod
    def follow_up_question(role: str, history: Sequence[Turn]) -> str:
        """Prompt for the next final-round question, given the conversation so far."""
        last_answer = ""
        for turn in reversed(history):
            if turn.speaker is Speaker.CANDIDATE:
                last_answer = turn.text
                break

        return f"""
You are an interviewer for a {role or 'software developer'} position.

Conversation so far:
{PromptFormatter.format_transcript(history)}

The candidate just answered: "{last_answer}".
Based on their response, ask a single thoughtful follow-up interview question.
Do not repeat a question that was already asked.
Make your question natural and conversational.
Return ONLY the question text without any additional context.
        """.strip()


class PromptFormatter:
    """Utility functions for formatting prompt data."""

    @staticmethod
    def format_transcript(history: Sequence[Turn]) -> str:
        lines = []
        for turn in history:
            label = "Interviewer" if turn.speaker is Speaker.INTERVIEWER else "Candidate"
            lines.append(f"{label}: {turn.text}")
        return "\n".join(lines) if lines else "(no conversation yet)"


_NUMBERING = re.compile(r"^\d+\.\s*")


def parse_question_list(text: str) -> List[str]:
    """Split a numbered LLM list into questions, dropping the numbering."""
    lines = [line.strip() for line in text.split("\n")]
    return [_NUMBERING.sub("", line).strip() for line in lines if line]
