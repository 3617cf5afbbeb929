# API Request/Response Models
"""
Pydantic models for the backend wire format.

Field names follow the browser client's JSON (camelCase), so the same
backend serves both the web UI and the console client.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Request Models
# ============================================================================

class HistoryEntry(BaseModel):
    """One transcript turn: role is "user" (candidate) or "model" (interviewer)."""
    role: str
    parts: str = ""


class NextQuestionRequest(BaseModel):
    history: Optional[List[HistoryEntry]] = None
    role: Optional[str] = None


class ScreeningAnswerRequest(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None


# ============================================================================
# Response Models
# ============================================================================

class FirstQuestionResponse(BaseModel):
    firstQuestionText: str
    audioData: Optional[str] = Field(None, description="Base64 WAV audio, or null when synthesis failed")


class TranscriptResponse(BaseModel):
    transcript: str
    keywords: List[Any] = Field(default_factory=list)


class NextQuestionResponse(BaseModel):
    role: str = "model"
    nextQuestion: str
    audioData: Optional[str] = None
    isClosing: bool = False


class ScreeningQuestionsResponse(BaseModel):
    questions: List[str]


class ScreeningFeedbackResponse(BaseModel):
    feedback: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str
    version: str


class ErrorResponse(BaseModel):
    error: str
