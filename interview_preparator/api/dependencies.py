"""
Provider wiring for the backend routes.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from ..config import Config, MAX_UPLOAD_BYTES
from ..infrastructure.audio.speech.stt import SpeechTranscriber
from ..infrastructure.audio.speech.tts import SpeechSynthesizer
from ..infrastructure.llm import VertexRestClient
from ..interview.decision_engine import DialogueEngine
from ..interview.screening import ScreeningEngine

logger = logging.getLogger("api.dependencies")


@dataclass
class BackendServices:
    """Everything the routes need, built once per application."""
    dialogue: DialogueEngine
    screening: ScreeningEngine
    transcriber: SpeechTranscriber
    synthesizer: Optional[SpeechSynthesizer] = None
    max_upload_bytes: int = MAX_UPLOAD_BYTES


def build_services(config: Config) -> BackendServices:
    """Create provider clients from configuration."""
    llm_client = VertexRestClient(
        project=config.require_project(),
        location=config.vertex_location,
        model=config.model_name,
        credentials_json=config.google_application_credentials,
    )
    synthesizer = SpeechSynthesizer(voice=config.tts_voice, language_code=config.language_code)
    transcriber = SpeechTranscriber(
        language=config.language_code,
        poll_interval=config.transcription_poll_interval,
        max_polls=config.transcription_max_polls,
    )
    logger.info(f"Backend services ready (project={config.google_cloud_project}, model={config.model_name})")
    return BackendServices(
        dialogue=DialogueEngine(llm_client, synthesizer, turn_budget=config.turn_budget),
        screening=ScreeningEngine(llm_client),
        transcriber=transcriber,
        synthesizer=synthesizer,
    )


def get_services(request: Request) -> BackendServices:
    """Dependency returning the application's services."""
    return request.app.state.services
