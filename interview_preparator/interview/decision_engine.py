"""
Backend dialogue engine for the final round.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..config import OPENING_QUESTION, CLOSING_STATEMENT, FALLBACK_FOLLOW_UP, TURN_BUDGET
from ..infrastructure.llm import VertexRestClient
from .models import FollowUpQuestion, OpeningQuestion, Speaker, Turn
from .prompts import InterviewPrompts

logger = logging.getLogger("decision_engine")


def parse_history(raw: Sequence[Dict[str, Any]]) -> List[Turn]:
    """
    Convert wire history into turns.

    Raises:
        ValueError: if an entry is not {role: user|model, parts: str}
    """
    turns = []
    for entry in raw:
        if not isinstance(entry, dict) or entry.get("role") not in ("user", "model"):
            raise ValueError("Invalid history format")
        turns.append(Turn.from_wire(entry))
    return turns


class DialogueEngine:
    """
    Decides the interviewer's next line.

    The session closes once the candidate has answered `turn_budget` times;
    the closing decision is made here, from the history, not by the model.
    """

    def __init__(self, llm_client: VertexRestClient, synthesizer=None,
                 turn_budget: int = TURN_BUDGET,
                 opening_question: str = OPENING_QUESTION,
                 closing_statement: str = CLOSING_STATEMENT,
                 fallback_question: str = FALLBACK_FOLLOW_UP):
        self.llm_client = llm_client
        self.synthesizer = synthesizer
        self.turn_budget = turn_budget
        self.opening_question = opening_question
        self.closing_statement = closing_statement
        self.fallback_question = fallback_question

    def opening(self, role: Optional[str] = None) -> OpeningQuestion:
        logger.info(f"Opening final round for role: {role or '(unspecified)'}")
        return OpeningQuestion(text=self.opening_question, audio=self._synthesize(self.opening_question))

    def next_question(self, history: Sequence[Turn], role: Optional[str] = None) -> FollowUpQuestion:
        """
        Produce the follow-up question, or the closing statement once the
        budget is spent.

        Raises:
            LLMError: when the model request fails
        """
        answers = sum(1 for turn in history if turn.speaker is Speaker.CANDIDATE)
        is_closing = answers >= self.turn_budget

        if is_closing:
            text = self.closing_statement
            logger.info(f"Turn budget reached ({answers}/{self.turn_budget}), closing")
        else:
            prompt = InterviewPrompts.follow_up_question(role or "software developer", history)
            text = self.llm_client.generate_content(prompt, temperature=0.7).strip()
            if not text:
                logger.warning("LLM returned no question, using fallback")
                text = self.fallback_question
            logger.info(f"Follow-up {answers}/{self.turn_budget}: {text}")

        return FollowUpQuestion(text=text, audio=self._synthesize(text), is_closing=is_closing)

    def _synthesize(self, text: str) -> Optional[bytes]:
        if self.synthesizer is None:
            return None
        return self.synthesizer.synthesize(text)
