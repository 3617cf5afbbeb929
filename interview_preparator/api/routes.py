# API Routes
"""
FastAPI route handlers for the screening and final rounds.

Handlers are plain functions: FastAPI runs them in its threadpool, which
keeps the blocking provider calls off the event loop.
"""

import base64
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from ..interview.decision_engine import parse_history
from .dependencies import BackendServices, get_services
from .models import (
    ErrorResponse,
    FirstQuestionResponse,
    NextQuestionRequest,
    NextQuestionResponse,
    ScreeningAnswerRequest,
    ScreeningFeedbackResponse,
    ScreeningQuestionsResponse,
    TranscriptResponse,
)

logger = logging.getLogger("api.routes")

router = APIRouter(prefix="/api")

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


class ApiError(Exception):
    """An error the client should see as {"error": message}."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _encode(audio: Optional[bytes]) -> Optional[str]:
    if not audio:
        return None
    return base64.b64encode(audio).decode("ascii")


# ============================================================================
# Screening Round
# ============================================================================

@router.get(
    "/screening/start",
    response_model=ScreeningQuestionsResponse,
    responses=ERROR_RESPONSES,
    tags=["screening"],
    summary="Generate screening questions",
)
def start_screening(
    role: str = "",
    experience: str = "",
    skills: str = "",
    services: BackendServices = Depends(get_services),
) -> ScreeningQuestionsResponse:
    questions = services.screening.generate_questions(role, experience, skills)
    return ScreeningQuestionsResponse(questions=questions)


@router.post(
    "/screening/submit",
    response_model=ScreeningFeedbackResponse,
    responses=ERROR_RESPONSES,
    tags=["screening"],
    summary="Score a screening answer",
)
def submit_screening_answer(
    request: ScreeningAnswerRequest,
    services: BackendServices = Depends(get_services),
) -> ScreeningFeedbackResponse:
    if not request.question or not request.answer:
        raise ApiError(400, "Missing question or answer")
    feedback = services.screening.evaluate_answer(request.question, request.answer)
    return ScreeningFeedbackResponse(feedback=feedback)


# ============================================================================
# Final Round
# ============================================================================

@router.get(
    "/finalround/start",
    response_model=FirstQuestionResponse,
    responses=ERROR_RESPONSES,
    tags=["final round"],
    summary="Opening question with synthesized audio",
)
def start_final_round(
    role: Optional[str] = None,
    services: BackendServices = Depends(get_services),
) -> FirstQuestionResponse:
    opening = services.dialogue.opening(role)
    return FirstQuestionResponse(firstQuestionText=opening.text, audioData=_encode(opening.audio))


@router.post(
    "/finalround/submit",
    response_model=TranscriptResponse,
    responses={**ERROR_RESPONSES, 413: {"model": ErrorResponse}},
    tags=["final round"],
    summary="Transcribe a recorded answer",
)
def submit_final_round_audio(
    audio: Optional[UploadFile] = File(None),
    services: BackendServices = Depends(get_services),
) -> TranscriptResponse:
    if audio is None:
        raise ApiError(400, "No audio file uploaded")

    data = audio.file.read(services.max_upload_bytes + 1)
    if len(data) > services.max_upload_bytes:
        raise ApiError(413, "Audio file too large")
    if not data:
        raise ApiError(400, "Uploaded audio file is empty")

    logger.info(f"Received {len(data)} bytes of audio ({audio.filename})")
    result = services.transcriber.transcribe(data)
    return TranscriptResponse(transcript=result.text, keywords=result.topics)


@router.post(
    "/finalround/next",
    response_model=NextQuestionResponse,
    responses=ERROR_RESPONSES,
    tags=["final round"],
    summary="Next interviewer turn",
)
def next_final_round_question(
    request: NextQuestionRequest,
    services: BackendServices = Depends(get_services),
) -> NextQuestionResponse:
    if request.history is None:
        raise ApiError(400, "Invalid history format")
    try:
        history = parse_history([entry.model_dump() for entry in request.history])
    except ValueError:
        raise ApiError(400, "Invalid history format")

    follow_up = services.dialogue.next_question(history, request.role)
    return NextQuestionResponse(
        role="model",
        nextQuestion=follow_up.text,
        audioData=_encode(follow_up.audio),
        isClosing=follow_up.is_closing,
    )
