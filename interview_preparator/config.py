"""
Interview Preparator Configuration System
=========================================

This file contains ALL configuration for the interview preparator.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the interview
# =============================================================================

# REQUIRED for the backend server: set your Google Cloud project
GOOGLE_CLOUD_PROJECT = "your-project-id"  # Change this!
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# Final round settings
TURN_BUDGET = 5
DEFAULT_ROLE = "Software Engineer"
OPENING_QUESTION = "What is your greatest strength?"
CLOSING_STATEMENT = (
    "Thank you for your responses. That concludes our interview today. "
    "We'll be in touch soon with next steps."
)
FALLBACK_FOLLOW_UP = "Could you tell me more about your experience?"

# Backend
API_BASE_URL = "http://localhost:3001"
SERVER_HOST = "0.0.0.0"
SERVER_PORT = 3001
CORS_ORIGINS = ["http://localhost:5173"]

# Speech settings
TTS_VOICE = "en-US-Neural2-G"
LANGUAGE_CODE = "en-US"

# Logging
LOG_FILE = "./_logs/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Audio capture
SAMPLE_RATE_CAPTURE = 48000
SAMPLE_RATE_TARGET = 16000
CHANNELS = 1
FRAMES_PER_BUFFER = 1024
INPUT_DEVICE = None  # None selects the system default input
OUTPUT_DEVICE = None
TARGET_RMS = 0.06

# Level meter (mirrors a browser AnalyserNode with fftSize 256)
LEVEL_FFT_SIZE = 256
LEVEL_SAMPLE_INTERVAL = 0.05
LEVEL_MIN_DECIBELS = -100.0
LEVEL_MAX_DECIBELS = -30.0

# Playback
PLAYBACK_CHUNK_FRAMES = 1024

# Speech synthesis
TTS_SAMPLE_RATE = 16000

# Transcription job polling
TRANSCRIPTION_POLL_INTERVAL = 5.0
TRANSCRIPTION_MAX_POLLS = 60

# HTTP
REQUEST_TIMEOUT = 60
TRANSCRIPTION_REQUEST_TIMEOUT = 360
MAX_UPLOAD_BYTES = 25 * 1024 * 1024

# Screening round defaults
SCREENING_DEFAULT_ROLE = "generic software developer"
SCREENING_DEFAULT_EXPERIENCE = "unspecified experience level"
SCREENING_DEFAULT_SKILLS = "various technical skills"
SCREENING_QUESTION_COUNT = 5

# LLM
VERTEX_LOCATION = "us-central1"
MODEL_NAME = "gemini-2.5-flash-lite"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 512


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    google_cloud_project: Optional[str] = None
    google_application_credentials: Optional[str] = None
    api_base_url: str = API_BASE_URL
    server_host: str = SERVER_HOST
    server_port: int = SERVER_PORT
    cors_origins: List[str] = field(default_factory=lambda: list(CORS_ORIGINS))
    turn_budget: int = TURN_BUDGET
    default_role: str = DEFAULT_ROLE
    tts_voice: str = TTS_VOICE
    language_code: str = LANGUAGE_CODE
    transcription_poll_interval: float = TRANSCRIPTION_POLL_INTERVAL
    transcription_max_polls: int = TRANSCRIPTION_MAX_POLLS
    request_timeout: float = REQUEST_TIMEOUT
    transcription_request_timeout: float = TRANSCRIPTION_REQUEST_TIMEOUT
    vertex_location: str = VERTEX_LOCATION
    model_name: str = MODEL_NAME
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    def require_project(self) -> str:
        """Return the Google Cloud project, failing if it was never set."""
        if not self.google_cloud_project or self.google_cloud_project == "your-project-id":
            raise ValueError("Please set GOOGLE_CLOUD_PROJECT in config.py or as environment variable")
        return self.google_cloud_project


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def get_config() -> Config:
    """Load configuration, letting environment variables override the defaults above."""
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    credentials = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS

    origins = os.getenv("CORS_ORIGINS")
    cors_origins = [o.strip() for o in origins.split(",") if o.strip()] if origins else list(CORS_ORIGINS)

    return Config(
        google_cloud_project=project,
        google_application_credentials=credentials,
        api_base_url=(os.getenv("INTERVIEW_API_URL") or API_BASE_URL).rstrip("/"),
        server_host=os.getenv("SERVER_HOST") or SERVER_HOST,
        server_port=_env_int("SERVER_PORT", SERVER_PORT),
        cors_origins=cors_origins,
        turn_budget=_env_int("TURN_BUDGET", TURN_BUDGET),
        tts_voice=os.getenv("TTS_VOICE") or TTS_VOICE,
        language_code=os.getenv("LANGUAGE_CODE") or LANGUAGE_CODE,
        transcription_poll_interval=_env_float("TRANSCRIPTION_POLL_INTERVAL", TRANSCRIPTION_POLL_INTERVAL),
        transcription_max_polls=_env_int("TRANSCRIPTION_MAX_POLLS", TRANSCRIPTION_MAX_POLLS),
        request_timeout=_env_float("REQUEST_TIMEOUT", REQUEST_TIMEOUT),
        vertex_location=os.getenv("VERTEX_LOCATION") or VERTEX_LOCATION,
        model_name=os.getenv("MODEL_NAME") or MODEL_NAME,
        log_file=os.getenv("LOG_FILE") or LOG_FILE,
        log_level=(os.getenv("LOG_LEVEL") or LOG_LEVEL).upper(),
    )
